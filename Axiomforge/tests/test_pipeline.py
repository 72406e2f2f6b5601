"""End-to-end tests for converge() and the configured pipeline."""

import pytest

from Axiomforge.beliefs.store import PrincipleStore
from Axiomforge.config.settings import AxiomforgeConfig
from Axiomforge.core.gate import NO_AXIOMS_GENERATED
from Axiomforge.core.pipeline import ConvergencePipeline, converge
from Axiomforge.core.types import Dimension, SourceRef
from Axiomforge.core.vectors import cosine_similarity
from Axiomforge.extraction.intake import SignalCandidate
from Axiomforge.utils.errors import ConfigurationError, PreconditionViolation


class TestConverge:
    """Test the converge entry point."""

    def test_honesty_scenario(self, make_signal, canonical_gateway):
        """Test three near-identical honesty signals from three categories become one axiom."""
        signals = [
            make_signal("s1", (1.0, 0.1, 0.0), category="diary", order=0),
            make_signal("s2", (1.0, 0.0, 0.1), category="knowledge", order=1),
            make_signal("s3", (1.0, 0.05, 0.05), category="relationships", order=2),
        ]
        assert cosine_similarity(signals[0].vector(), signals[1].vector()) > 0.98

        store, result = converge(
            signals, PrincipleStore(), "enforce",
            gateway=canonical_gateway, match_threshold=0.8, axiom_threshold=3,
        )

        assert len(store) == 1
        principle = next(iter(store))
        assert principle.dimension is Dimension.HONESTY_FRAMEWORK
        assert principle.reinforcement_count == 3
        assert principle.cross_category_strength == 3
        assert principle.is_promoted
        assert len(store.axioms) == 1
        assert result.valid is True
        assert result.would_reject is None

    def test_zero_axioms_by_policy(self, make_signal, canonical_gateway):
        """Test the same empty run is valid in bootstrap and invalid in enforce."""
        signals = [make_signal(f"s{i}", (1.0, 0.0), category="diary", order=i) for i in range(3)]

        _, bootstrap = converge(signals, PrincipleStore(), "bootstrap", gateway=canonical_gateway)
        _, enforce = converge(signals, PrincipleStore(), "enforce", gateway=canonical_gateway)

        assert bootstrap.valid is True
        assert bootstrap.would_reject == NO_AXIOMS_GENERATED
        assert enforce.valid is False
        assert enforce.reason == NO_AXIOMS_GENERATED

    def test_input_store_untouched(self, make_signal):
        """Test converge returns an updated copy."""
        store = PrincipleStore()
        updated, _ = converge([make_signal("a", (1.0, 0.0))], store)
        assert len(store) == 0
        assert len(updated) == 1

    def test_single_category_cannot_be_configured_into_axiom(self, make_signal, canonical_gateway):
        """Test converge refuses a breadth requirement that lets one category promote."""
        signals = [make_signal(f"s{i}", (1.0, 0.0), category="diary", order=i) for i in range(3)]
        with pytest.raises(ConfigurationError):
            converge(signals, PrincipleStore(), gateway=canonical_gateway, min_cross_category=1)

        store, _ = converge(signals, PrincipleStore(), gateway=canonical_gateway)
        assert len(store.axioms) == 0

    def test_precondition_aborts_run(self, make_signal):
        """Test a missing embedding aborts the whole run."""
        with pytest.raises(PreconditionViolation):
            converge([make_signal("a", None)], PrincipleStore())


class TestConvergencePipeline:
    """Test the configured intake -> convergence -> gate chain."""

    def test_run_from_candidates(self, scripted):
        """Test candidates are admitted, clustered, promoted and validated."""
        def responder(prompt):
            if "one anchor" in prompt:
                return "誠"
            if "one glyph" in prompt:
                return "🧭"
            if "- honesty-framework:" in prompt:
                return "honesty-framework"
            return "value"

        config = AxiomforgeConfig()
        config.greenfield.state = "enforce"
        config.convergence.max_workers = 1
        pipeline = ConvergencePipeline.from_config(config, backend=scripted(responder=responder))

        candidates = [
            SignalCandidate(
                text=f"I say when I am unsure ({cat})",
                source=SourceRef(file=f"memory/{cat}/note.md", category=cat),
                confidence=0.9,
                index=i,
                embedding=(1.0, 0.01 * i, 0.0),
            )
            for i, cat in enumerate(["diary", "goals", "knowledge", "diary"])
        ]
        report = pipeline.run(candidates)

        assert report.intake.admitted == 4
        assert report.fold.created == 1
        assert report.fold.reinforced == 3
        assert len(report.store.axioms) == 1
        axiom = next(iter(report.store.axioms.values()))
        assert axiom.canonical.notation.startswith("🧭 誠: ")
        assert report.result.valid is True

    def test_run_continues_creation_order(self, scripted, make_signal):
        """Test new signals are numbered after those already in the store."""
        config = AxiomforgeConfig()
        pipeline = ConvergencePipeline.from_config(config, backend=scripted(responder=lambda p: "value"))
        store, _ = converge([make_signal("old", (1.0, 0.0), order=7)], PrincipleStore())
        candidate = SignalCandidate(
            text="new", source=SourceRef(file="memory/goals/x.md", category="goals"), confidence=0.9,
            index=0, embedding=(0.0, 1.0), dimension=Dimension.HONESTY_FRAMEWORK,
        )
        report = pipeline.run([candidate], store)
        assert report.intake.signals[0].order == 8
