"""Signal intake: confidence filter, per-source cap and classification.

Candidates come from the source walker with file/category metadata and an
extraction index. Only the classification step talks to the outside world;
`filter_candidates` is pure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.types import Dimension, Signal, SignalType, SourceRef, new_id
from ..llm.gateway import DIMENSIONS, SIGNAL_TYPES, ClassificationGateway
from ..utils.errors import ClassificationError, ConfigurationError, EmbeddingError

logger = logging.getLogger("AXIOMFORGE.Intake")


@dataclass(frozen=True)
class SignalCandidate:
    """A raw extracted fragment, not yet admitted as a Signal."""
    text: str
    source: SourceRef
    confidence: float
    index: int  # extraction order, used for stable tie-breaks
    embedding: Optional[Tuple[float, ...]] = None
    dimension: Optional[Dimension] = None
    signal_type: Optional[SignalType] = None


@dataclass
class IntakeReport:
    signals: List[Signal] = field(default_factory=list)
    below_threshold: int = 0
    over_cap: int = 0
    rejected: List[Tuple[SignalCandidate, ClassificationError]] = field(default_factory=list)

    @property
    def admitted(self) -> int:
        return len(self.signals)

    def summary(self) -> Dict[str, Any]:
        return {
            "admitted": self.admitted,
            "below_threshold": self.below_threshold,
            "over_cap": self.over_cap,
            "rejected": len(self.rejected),
        }


def filter_candidates(
    candidates: Sequence[SignalCandidate],
    confidence_threshold: float = 0.5,
    per_source_cap: int = 10,
) -> List[SignalCandidate]:
    """Drop low-confidence candidates and cap each source file.

    Within one file the cap keeps the highest confidence, ties broken by
    extraction index. Survivors are returned in their original order.
    """
    kept = [c for c in candidates if c.confidence >= confidence_threshold]

    by_file: Dict[str, List[SignalCandidate]] = {}
    for c in kept:
        by_file.setdefault(c.source.file, []).append(c)

    survivors = set()
    for group in by_file.values():
        ranked = sorted(group, key=lambda c: (-c.confidence, c.index))
        survivors.update(id(c) for c in ranked[:per_source_cap])

    return [c for c in kept if id(c) in survivors]


class SignalIntake:
    """Turns candidates into Signals ready for convergence.

    Missing dimensions and signal types are filled in through the gateway in
    one batch. A candidate whose classification fails is dropped on its own;
    the rest of the batch is unaffected.
    """

    def __init__(
        self,
        gateway: Optional[ClassificationGateway] = None,
        confidence_threshold: float = 0.5,
        per_source_cap: int = 10,
        embedder: Any = None,
    ):
        self.gateway = gateway
        self.confidence_threshold = confidence_threshold
        self.per_source_cap = per_source_cap
        self.embedder = embedder

    def _classify(self, candidates: List[SignalCandidate], report: IntakeReport) -> List[SignalCandidate]:
        requests: List[Tuple[int, str]] = []
        items = []
        for pos, c in enumerate(candidates):
            if c.dimension is None:
                requests.append((pos, "dimension"))
                items.append((c.text, DIMENSIONS))
            if c.signal_type is None:
                requests.append((pos, "signal_type"))
                items.append((c.text, SIGNAL_TYPES))

        if not items:
            return candidates
        if self.gateway is None:
            raise ConfigurationError(
                "Candidates need classification but no classifier is configured",
                context={"pending": len(items)},
            )

        results = self.gateway.classify_batch(items)

        updates: Dict[int, Dict[str, Any]] = {}
        failed: Dict[int, ClassificationError] = {}
        for (pos, attr), result in zip(requests, results):
            if result.error is not None:
                failed.setdefault(pos, result.error)
                continue
            value = Dimension(result.label) if attr == "dimension" else SignalType(result.label)
            updates.setdefault(pos, {})[attr] = value

        out: List[SignalCandidate] = []
        for pos, c in enumerate(candidates):
            if pos in failed:
                logger.warning(f"Dropping candidate from {c.source.file}: {failed[pos]}")
                report.rejected.append((c, failed[pos]))
                continue
            out.append(replace(c, **updates.get(pos, {})))
        return out

    def _embed(self, candidates: List[SignalCandidate]) -> List[SignalCandidate]:
        missing = [i for i, c in enumerate(candidates) if c.embedding is None]
        if not missing or self.embedder is None:
            return candidates
        try:
            vectors = self.embedder.embed_many([candidates[i].text for i in missing])
        except EmbeddingError:
            logger.error(f"Embedding {len(missing)} candidates failed")
            raise
        out = list(candidates)
        for i, vec in zip(missing, vectors):
            out[i] = replace(out[i], embedding=tuple(float(v) for v in vec))
        return out

    def admit(self, candidates: Sequence[SignalCandidate], start_order: int = 0) -> IntakeReport:
        """Filter, classify and number ``candidates``.

        ``start_order`` continues the creation order of signals already known
        to the caller so orders stay monotonic across runs.
        """
        report = IntakeReport()
        confident = [c for c in candidates if c.confidence >= self.confidence_threshold]
        report.below_threshold = len(candidates) - len(confident)
        filtered = filter_candidates(confident, self.confidence_threshold, self.per_source_cap)
        report.over_cap = len(confident) - len(filtered)

        classified = self._classify(filtered, report)
        ready = self._embed(classified)

        order = start_order
        for c in ready:
            report.signals.append(Signal(
                id=new_id("sig"),
                text=c.text,
                source=c.source,
                embedding=c.embedding,
                confidence=c.confidence,
                order=order,
                dimension=c.dimension,
                signal_type=c.signal_type,
            ))
            order += 1

        logger.info(f"Intake: {report.summary()}")
        return report


__all__ = ["SignalCandidate", "IntakeReport", "filter_candidates", "SignalIntake"]
