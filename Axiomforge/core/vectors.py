"""Vector helpers: validation, cosine similarity and running means.

Embeddings are plain numpy float vectors. Inputs are not assumed to be
L2-normalized, so similarity is always the full cosine.
"""

from __future__ import annotations

from typing import Any, Iterable

import numpy as np


def as_vector(embedding: Any) -> np.ndarray:
    """Coerce an embedding into a 1-D float vector.

    Raises:
        ValueError: if the embedding is missing, empty, not one-dimensional,
            or contains non-finite values.
    """
    if embedding is None:
        raise ValueError("embedding is missing")
    try:
        vec = np.asarray(embedding, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ValueError(f"embedding is not numeric: {e}") from e
    if vec.ndim != 1:
        raise ValueError(f"embedding must be one-dimensional, got shape {vec.shape}")
    if vec.size == 0:
        raise ValueError("embedding is empty")
    if not np.all(np.isfinite(vec)):
        raise ValueError("embedding contains NaN or infinite components")
    return vec


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity of two vectors of equal length (0.0 for a zero vector)."""
    if a.shape != b.shape:
        raise ValueError(f"Vector dimension mismatch: {a.shape[0]} vs {b.shape[0]}")
    na = float(np.linalg.norm(a))
    nb = float(np.linalg.norm(b))
    if na == 0.0 or nb == 0.0:
        return 0.0
    return float(np.dot(a, b) / (na * nb))


def incremental_mean(current: np.ndarray, count: int, new: np.ndarray) -> np.ndarray:
    """Mean of ``count`` vectors summarised by ``current`` plus one more vector."""
    return current + (new - current) / float(count + 1)


def mean_vector(vectors: Iterable[np.ndarray]) -> np.ndarray:
    stacked = np.vstack(list(vectors))
    return stacked.mean(axis=0)


__all__ = ["as_vector", "cosine_similarity", "incremental_mean", "mean_vector"]
