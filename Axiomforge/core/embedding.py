"""Embedding producer.

Wraps SentenceTransformers. Convergence never calls this itself: vectors are
attached to candidates at intake and travel with the signal from then on.
"""

from __future__ import annotations

import contextlib
import io
import logging
import warnings
from typing import Iterable, List, Optional

import numpy as np

from ..config.settings import EmbeddingConfig
from ..utils.errors import EmbeddingError

logger = logging.getLogger("AXIOMFORGE.Embedding")


class EmbeddingModule:
    def __init__(self, config: Optional[EmbeddingConfig] = None):
        self.config = config or EmbeddingConfig()
        self._model = None

    @property
    def dimension(self) -> int:
        return self.config.dimension

    def _ensure_loaded(self) -> None:
        if self._model is not None:
            return

        with warnings.catch_warnings():
            warnings.filterwarnings("ignore")
            logging.getLogger("transformers").setLevel(logging.ERROR)
            logging.getLogger("huggingface_hub").setLevel(logging.ERROR)

            # HF Hub writes download chatter to stderr
            with contextlib.redirect_stderr(io.StringIO()):
                try:
                    from sentence_transformers import SentenceTransformer
                    self._model = SentenceTransformer(self.config.model_name, device=self.config.device)
                except (ImportError, OSError, ValueError) as e:
                    raise EmbeddingError(
                        f"Failed to load embedding model: {e}",
                        context={"model": self.config.model_name, "device": self.config.device},
                    ) from e
        logger.info(f"Embedding model loaded: {self.config.model_name}")

    def _finish(self, vec: np.ndarray, text: str) -> np.ndarray:
        vec = np.asarray(vec, dtype=np.float64)
        if vec.ndim != 1 or vec.shape[0] != self.config.dimension:
            raise EmbeddingError(
                f"Embedding has {vec.shape} components, expected {self.config.dimension}",
                context={"text": text[:60]},
            )
        if not self.config.normalize:
            return vec
        norm = np.linalg.norm(vec)
        if norm == 0 or np.isnan(norm):
            return vec
        return vec / norm

    def embed(self, text: str) -> np.ndarray:
        if not (text or "").strip():
            raise EmbeddingError("Cannot embed empty text")
        self._ensure_loaded()
        vec = self._model.encode(text, batch_size=self.config.batch_size, show_progress_bar=False)
        return self._finish(vec, text)

    def embed_many(self, texts: Iterable[str]) -> List[np.ndarray]:
        texts = list(texts)
        if not texts:
            return []
        if any(not (t or "").strip() for t in texts):
            raise EmbeddingError("Cannot embed empty text")
        self._ensure_loaded()
        vecs = self._model.encode(texts, batch_size=self.config.batch_size, show_progress_bar=False)
        return [self._finish(v, t) for v, t in zip(vecs, texts)]


__all__ = ["EmbeddingModule"]
