"""The two public entry points: `converge` and `merge`.

    store, result = converge(signals, store, "bootstrap", gateway=gateway)
    merged = merge(baseline, incoming)

`ConvergencePipeline` wires the same pieces from an AxiomforgeConfig and
adds intake in front of convergence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Tuple

from .convergence import ConvergenceEngine, FoldReport
from .gate import GreenfieldGate, ValidationResult, evaluate, run_checks
from .promotion import AxiomPromoter
from .types import GreenfieldState, Signal
from ..beliefs.merge import MergeReport, StoreMerger
from ..beliefs.store import PrincipleStore
from ..config.settings import AxiomforgeConfig
from ..extraction.intake import IntakeReport, SignalCandidate, SignalIntake
from ..llm.gateway import ClassificationGateway

logger = logging.getLogger("AXIOMFORGE.Pipeline")


def converge(
    signals: Sequence[Signal],
    store: Optional[PrincipleStore] = None,
    policy: Any = GreenfieldState.BOOTSTRAP,
    *,
    gateway: Optional[ClassificationGateway] = None,
    match_threshold: float = 0.85,
    axiom_threshold: int = 3,
    min_cross_category: int = 2,
    use_glyphs: bool = True,
    max_workers: int = 4,
) -> Tuple[PrincipleStore, ValidationResult]:
    """Fold ``signals`` into a copy of ``store`` and validate under ``policy``.

    The input store is left untouched. Without a gateway nothing is promoted.

    Raises:
        PreconditionViolation: a signal has no usable embedding.
    """
    policy = GreenfieldState.parse(policy)
    promoter = None
    if gateway is not None:
        promoter = AxiomPromoter(gateway, axiom_threshold, min_cross_category, use_glyphs)
    engine = ConvergenceEngine(promoter, match_threshold, max_workers)

    updated = store.copy() if store is not None else PrincipleStore()
    engine.fold(signals, updated)

    outcomes = run_checks(len(updated.axioms), updated.signal_count(), axiom_threshold)
    return updated, evaluate(outcomes, policy)


def merge(
    store_a: PrincipleStore,
    store_b: PrincipleStore,
    *,
    merge_threshold: float = 0.85,
    allow_cross_dimension: bool = False,
) -> PrincipleStore:
    """Merge ``store_b`` into baseline ``store_a``; conflicts land on `.conflicts`."""
    return StoreMerger(merge_threshold, allow_cross_dimension).merge(store_a, store_b).store


@dataclass
class RunReport:
    store: PrincipleStore
    result: ValidationResult
    fold: FoldReport
    intake: Optional[IntakeReport] = None


class ConvergencePipeline:
    """Intake -> convergence -> promotion -> gate, configured in one place."""

    def __init__(
        self,
        config: AxiomforgeConfig,
        gateway: Optional[ClassificationGateway] = None,
        embedder: Any = None,
    ):
        self.config = config
        self.gateway = gateway
        self.intake = SignalIntake(
            gateway,
            confidence_threshold=config.intake.confidence_threshold,
            per_source_cap=config.intake.per_source_cap,
            embedder=embedder,
        )
        promoter = None
        if gateway is not None:
            promoter = AxiomPromoter(
                gateway,
                axiom_threshold=config.promotion.axiom_threshold,
                min_cross_category=config.promotion.min_cross_category,
                use_glyphs=config.promotion.use_glyphs,
            )
        self.engine = ConvergenceEngine(
            promoter,
            match_threshold=config.convergence.match_threshold,
            max_workers=config.convergence.max_workers,
        )
        self.merger = StoreMerger(config.merge.merge_threshold, config.merge.allow_cross_dimension)
        self.gate = GreenfieldGate(GreenfieldState.parse(config.greenfield.state))

    @classmethod
    def from_config(cls, config: AxiomforgeConfig, backend: Any = None, embedder: Any = None) -> "ConvergencePipeline":
        """Build a pipeline; ``backend`` defaults to the configured LLM backend."""
        from ..llm.backends import create_backend

        backend = backend or create_backend(config)
        gateway = ClassificationGateway(
            backend,
            max_retries=config.classifier.max_retries,
            batch_size=config.classifier.batch_size,
            max_prompt_chars=config.classifier.max_prompt_chars,
            timeout_s=config.llm.timeout_s,
        )
        return cls(config, gateway, embedder)

    def converge(self, signals: Sequence[Signal], store: Optional[PrincipleStore] = None) -> RunReport:
        updated = store.copy() if store is not None else PrincipleStore()
        fold = self.engine.fold(signals, updated)
        outcomes = run_checks(len(updated.axioms), updated.signal_count(), self.config.promotion.axiom_threshold)
        result = self.gate.validate(outcomes)
        return RunReport(store=updated, result=result, fold=fold)

    def run(self, candidates: Sequence[SignalCandidate], store: Optional[PrincipleStore] = None) -> RunReport:
        start = max((s.order for p in store for s in p.signals), default=-1) + 1 if store is not None else 0
        intake = self.intake.admit(candidates, start_order=start)
        report = self.converge(intake.signals, store)
        report.intake = intake
        return report

    def merge(self, baseline: PrincipleStore, incoming: PrincipleStore) -> MergeReport:
        return self.merger.merge(baseline, incoming)


__all__ = ["converge", "merge", "ConvergencePipeline", "RunReport"]
