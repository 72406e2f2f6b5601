"""Store merger: fold a newly synthesized store into a baseline store.

Neither input is touched; the result is a fresh store. Baseline identifiers
and dimensions win, promotion is a monotonic union ("promoted wins"), and
every disagreement is recorded as a MergeConflict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Set, Tuple

from .store import PrincipleStore
from ..core.types import Principle, Promoted, new_id, promoted_wins
from ..core.vectors import cosine_similarity
from ..utils.errors import PreconditionViolation

logger = logging.getLogger("AXIOMFORGE.Merge")

DIMENSION_MISMATCH = "dimension-mismatch"
PRINCIPLE_OVERLAP = "principle-overlap"
PROMOTION_STATUS = "promotion-status"


@dataclass(frozen=True)
class MergeConflict:
    type: str
    principle_id: str   # principle in the merged store
    incoming_id: str    # principle of the incoming store
    details: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "principle_id": self.principle_id,
            "incoming_id": self.incoming_id,
            "details": self.details,
        }


@dataclass
class MergeReport:
    store: PrincipleStore
    conflicts: List[MergeConflict] = field(default_factory=list)
    matched: int = 0
    inserted: int = 0
    absorbed: int = 0

    def conflicts_of(self, conflict_type: str) -> List[MergeConflict]:
        return [c for c in self.conflicts if c.type == conflict_type]

    def summary(self) -> Dict[str, Any]:
        counts: Dict[str, int] = {}
        for c in self.conflicts:
            counts[c.type] = counts.get(c.type, 0) + 1
        return {
            "matched": self.matched,
            "inserted": self.inserted,
            "absorbed": self.absorbed,
            "conflicts": counts,
            "principles": len(self.store),
            "axioms": len(self.store.axioms),
        }


class StoreMerger:
    """Dual-track merge of a baseline store B with an incoming store N.

    For each principle n of N, in N's order:
      - best baseline principle b with compatible dimension and
        similarity >= merge_threshold absorbs n (ties: smaller order)
      - otherwise n is inserted under its own identifier
    """

    def __init__(self, merge_threshold: float = 0.85, allow_cross_dimension: bool = False):
        self.merge_threshold = merge_threshold
        self.allow_cross_dimension = allow_cross_dimension

    def compatible(self, b: Principle, n: Principle) -> bool:
        if self.allow_cross_dimension:
            return True
        return b.dimension is None or n.dimension is None or b.dimension == n.dimension

    def _check_widths(self, baseline: PrincipleStore, incoming: PrincipleStore) -> None:
        widths = {p.centroid.shape[0] for p in baseline} | {p.centroid.shape[0] for p in incoming}
        if len(widths) > 1:
            raise PreconditionViolation(
                "Stores use different embedding widths",
                context={"widths": sorted(widths)},
            )

    def _best_baseline(self, n: Principle, merged: PrincipleStore, baseline_ids: List[str]) -> Tuple[Optional[Principle], float]:
        best: Optional[Principle] = None
        best_sim = float("-inf")
        candidates = sorted((merged.principles[pid] for pid in baseline_ids), key=lambda p: p.order)
        for b in candidates:
            if not self.compatible(b, n):
                continue
            sim = cosine_similarity(n.centroid, b.centroid)
            if sim > best_sim:
                best, best_sim = b, sim
        return best, best_sim

    def _fold_into(
        self,
        b: Principle,
        n: Principle,
        merged: PrincipleStore,
        conflicts: List[MergeConflict],
        similarity: Optional[float],
    ) -> None:
        """Union n's signals and promotion into b (b keeps its id and dimension)."""
        held = b.signal_ids
        added = []
        for s in n.signals:
            if s.id in held:
                continue
            owner = merged.owner_of(s.id)
            if owner is not None and owner != b.id:
                conflicts.append(MergeConflict(
                    PRINCIPLE_OVERLAP, b.id, n.id,
                    f"Signal {s.id} already held by {owner}; left with its current principle",
                ))
                continue
            added.append(s)

        if added:
            b.signals.extend(added)
            b.recompute_centroid()
            for s in added:
                merged.claim(b, s)

        if b.dimension != n.dimension:
            theirs = n.dimension.value if n.dimension else "unset"
            ours = b.dimension.value if b.dimension else "unset"
            conflicts.append(MergeConflict(
                DIMENSION_MISMATCH, b.id, n.id, f"Kept {ours}, incoming was {theirs}",
            ))
            if theirs not in b.dimension_conflicts:
                b.dimension_conflicts.append(theirs)

        status, disagreed = promoted_wins(b.promotion, n.promotion)
        if disagreed:
            kept = status.axiom_id if isinstance(status, Promoted) else "none"
            conflicts.append(MergeConflict(
                PROMOTION_STATUS, b.id, n.id, f"Promoted wins: kept axiom {kept}",
            ))
        b.promotion = status

        if added or n.id != b.id:
            sim_note = f" (similarity: {similarity:.3f})" if similarity is not None else ""
            b.record("merged", f"Merged {n.id}, +{len(added)} signals{sim_note}")

    def merge(self, baseline: PrincipleStore, incoming: PrincipleStore) -> MergeReport:
        self._check_widths(baseline, incoming)

        merged = baseline.copy()
        baseline_ids = list(baseline.principles.keys())
        conflicts: List[MergeConflict] = []
        report = MergeReport(store=merged)
        id_map: Dict[str, str] = {}

        for n in sorted(incoming, key=lambda p: p.order):
            b, sim = self._best_baseline(n, merged, baseline_ids)
            if b is not None and sim >= self.merge_threshold:
                logger.debug(f"MERGE {n.id} -> {b.id} (similarity={sim:.3f}, threshold={self.merge_threshold})")
                self._fold_into(b, n, merged, conflicts, sim)
                id_map[n.id] = b.id
                report.matched += 1
                continue

            free = [s for s in n.signals if merged.owner_of(s.id) is None]
            if n.signals and not free:
                # Every signal already lives elsewhere: n collapses into that principle.
                owner = merged.get(merged.owner_of(n.signals[0].id))
                self._fold_into(owner, n, merged, conflicts, None)
                id_map[n.id] = owner.id
                report.absorbed += 1
                continue

            clone = n.copy()
            if len(free) != len(n.signals):
                taken: Set[str] = {s.id for s in n.signals} - {s.id for s in free}
                for sid in sorted(taken):
                    conflicts.append(MergeConflict(
                        PRINCIPLE_OVERLAP, merged.owner_of(sid), n.id,
                        f"Signal {sid} already held by {merged.owner_of(sid)}; left with its current principle",
                    ))
                clone.signals = free
                clone.recompute_centroid()
            if clone.id in merged:
                fresh = new_id("pri")
                logger.warning(f"Principle id {clone.id} already in baseline with a different center, inserting as {fresh}")
                clone.id = fresh
            clone.order = merged.allocate_order()
            merged.add(clone)
            id_map[n.id] = clone.id
            report.inserted += 1

        for axiom in incoming.axioms.values():
            owner_id = id_map.get(axiom.principle_id, axiom.principle_id)
            if axiom.id in merged.axioms:
                continue
            if owner_id != axiom.principle_id:
                axiom = replace(axiom, principle_id=owner_id)
            merged.add_axiom(axiom)

        merged.conflicts = list(conflicts)
        report.conflicts = conflicts
        for c in conflicts:
            logger.info(
                f"Merge conflict [{c.type}] {c.principle_id} <- {c.incoming_id}: {c.details}",
                extra={"principle_id": c.principle_id},
            )
        logger.info(f"Merge complete: {report.summary()}")
        return report


__all__ = [
    "StoreMerger",
    "MergeConflict",
    "MergeReport",
    "DIMENSION_MISMATCH",
    "PRINCIPLE_OVERLAP",
    "PROMOTION_STATUS",
]
