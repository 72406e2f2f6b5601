"""Convergence engine: online nearest-centroid clustering of signals.

Signals are folded into principles one at a time in creation order. The fold
is order-dependent: feeding the same signals in another order may build
different clusters. Within a dimension the fold is strictly sequential;
distinct dimensions touch disjoint principles and are folded concurrently.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .promotion import AxiomPromoter, PromotionOutcome
from .types import Axiom, Dimension, Principle, Signal
from .vectors import cosine_similarity
from ..beliefs.store import PrincipleStore
from ..utils.errors import PreconditionViolation

logger = logging.getLogger("AXIOMFORGE.Convergence")

_DIMENSION_ORDER: Dict[Optional[Dimension], int] = {d: i for i, d in enumerate(Dimension)}
_DIMENSION_ORDER[None] = len(_DIMENSION_ORDER)


@dataclass(frozen=True)
class Assignment:
    signal_id: str
    principle_id: Optional[str]
    action: str  # created | reinforced | skipped
    similarity: Optional[float] = None


@dataclass
class FoldReport:
    assignments: List[Assignment] = field(default_factory=list)
    axioms: List[Axiom] = field(default_factory=list)
    promotion_failures: List[PromotionOutcome] = field(default_factory=list)

    @property
    def created(self) -> int:
        return sum(1 for a in self.assignments if a.action == "created")

    @property
    def reinforced(self) -> int:
        return sum(1 for a in self.assignments if a.action == "reinforced")

    @property
    def skipped(self) -> int:
        return sum(1 for a in self.assignments if a.action == "skipped")


@dataclass
class _PartitionResult:
    dimension: Optional[Dimension]
    updated: List[Principle]
    new_principles: List[Principle]
    assignments: List[Assignment]
    outcomes: List[PromotionOutcome]


class ConvergenceEngine:
    """Assign signals to principles by cosine similarity to their centroids.

    - similarity >= match_threshold joins the best principle
    - equal best similarities go to the earliest created principle
    - otherwise the signal seeds a new principle
    """

    def __init__(
        self,
        promoter: Optional[AxiomPromoter] = None,
        match_threshold: float = 0.85,
        max_workers: int = 4,
    ):
        self.promoter = promoter
        self.match_threshold = match_threshold
        self.max_workers = max(1, int(max_workers))

    # ------------------------------------------------------------------ checks

    @staticmethod
    def expected_dimensionality(store: PrincipleStore, signals: Sequence[Signal]) -> Optional[int]:
        for p in store:
            if p.centroid.size:
                return int(p.centroid.shape[0])
        for s in signals:
            if s.embedding:
                return len(s.embedding)
        return None

    def validate(self, signals: Sequence[Signal], store: PrincipleStore) -> None:
        """Raise PreconditionViolation for the first signal with an unusable embedding."""
        width = self.expected_dimensionality(store, signals)
        for s in signals:
            try:
                vec = s.vector()
            except ValueError as e:
                raise PreconditionViolation(
                    f"Signal {s.id} has no usable embedding: {e}",
                    signal_id=s.id,
                    source=s.source.file,
                    context={"category": s.source.category},
                ) from e
            if width is not None and vec.shape[0] != width:
                raise PreconditionViolation(
                    f"Signal {s.id} embedding has {vec.shape[0]} components, store uses {width}",
                    signal_id=s.id,
                    source=s.source.file,
                    context={"category": s.source.category},
                )

    # -------------------------------------------------------------------- fold

    def best_match(self, signal: Signal, candidates: Sequence[Principle]) -> Tuple[Optional[Principle], float]:
        """Most similar principle among ``candidates`` (earliest order wins ties)."""
        vec = signal.vector()
        best: Optional[Principle] = None
        best_sim = float("-inf")
        for p in sorted(candidates, key=lambda p: p.order):
            sim = cosine_similarity(vec, p.centroid)
            if sim > best_sim:
                best, best_sim = p, sim
        return best, best_sim

    def _maybe_promote(self, principle: Principle, outcomes: List[PromotionOutcome]) -> None:
        if self.promoter is None or principle.is_promoted:
            return
        if not self.promoter.is_eligible(principle):
            return
        outcomes.append(self.promoter.try_promote(principle))

    def _fold_partition(
        self,
        dimension: Optional[Dimension],
        signals: List[Signal],
        existing: List[Principle],
        base_order: int,
    ) -> _PartitionResult:
        principles = list(existing)
        created: List[Principle] = []
        assignments: List[Assignment] = []
        outcomes: List[PromotionOutcome] = []

        for signal in signals:
            best, sim = self.best_match(signal, principles)
            if best is not None and sim >= self.match_threshold:
                logger.debug(
                    f"MATCH {signal.id} -> {best.id} (similarity={sim:.3f}, threshold={self.match_threshold})",
                    extra={"signal_id": signal.id, "principle_id": best.id},
                )
                best.absorb(signal, sim)
                assignments.append(Assignment(signal.id, best.id, "reinforced", sim))
                self._maybe_promote(best, outcomes)
            else:
                if best is not None:
                    logger.debug(
                        f"NO_MATCH {signal.id} (best={sim:.3f}, threshold={self.match_threshold})",
                        extra={"signal_id": signal.id},
                    )
                principle = Principle.seed(signal, order=base_order + len(created))
                principles.append(principle)
                created.append(principle)
                assignments.append(Assignment(signal.id, principle.id, "created"))
                self._maybe_promote(principle, outcomes)

        return _PartitionResult(dimension, list(existing), created, assignments, outcomes)

    def fold(self, signals: Sequence[Signal], store: PrincipleStore) -> FoldReport:
        """Fold ``signals`` into ``store`` in place.

        Signals are taken in creation order. Signals already held by a
        principle of the store are skipped. Partitions work on copies of the
        store's principles; the store only changes once every partition has
        finished, so an exception leaves it as it was.

        Raises:
            PreconditionViolation: a signal lacks a usable embedding. Nothing
                is modified in that case.
        """
        ordered = sorted(signals, key=lambda s: s.order)
        self.validate(ordered, store)

        report = FoldReport()
        seen = set()
        partitions: Dict[Optional[Dimension], List[Signal]] = {}
        for s in ordered:
            if s.id in seen or store.owner_of(s.id) is not None:
                logger.info(f"Signal {s.id} already held by {store.owner_of(s.id) or 'this batch'}, skipping")
                report.assignments.append(Assignment(s.id, store.owner_of(s.id), "skipped"))
                continue
            seen.add(s.id)
            partitions.setdefault(s.dimension, []).append(s)

        by_id = {s.id: s for s in ordered}
        dims = sorted(partitions, key=lambda d: _DIMENSION_ORDER[d])
        base_order = store.next_order
        jobs = [(d, partitions[d], [p.copy() for p in store.principles_in(d)], base_order) for d in dims]

        if len(jobs) > 1 and self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(jobs))) as executor:
                results = list(executor.map(lambda job: self._fold_partition(*job), jobs))
        else:
            results = [self._fold_partition(*job) for job in jobs]

        # Commit in dimension order so the store does not depend on scheduling.
        for result in results:
            for principle in result.updated:
                store.replace(principle)
            for principle in result.new_principles:
                principle.order = store.allocate_order()
                store.add(principle)
            for a in result.assignments:
                store.claim(store.get(a.principle_id), by_id[a.signal_id])
            for outcome in result.outcomes:
                if outcome.axiom is not None:
                    store.add_axiom(outcome.axiom)
                    report.axioms.append(outcome.axiom)
                elif outcome.error is not None:
                    report.promotion_failures.append(outcome)
            report.assignments.extend(result.assignments)

        logger.info(
            f"Fold complete: {report.created} created, {report.reinforced} reinforced, "
            f"{report.skipped} skipped, {len(report.axioms)} promoted across {len(jobs)} dimensions"
        )
        return report


__all__ = ["ConvergenceEngine", "FoldReport", "Assignment"]
