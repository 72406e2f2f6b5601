"""Tests for axiom promotion."""

import pytest

from Axiomforge.core.promotion import AxiomPromoter, PromotionBlocker, summarize, tier_for
from Axiomforge.core.types import AxiomTier, Principle
from Axiomforge.llm.gateway import ClassificationGateway
from Axiomforge.utils.errors import ConfigurationError


def grow(make_signal, categories):
    signals = [
        make_signal(f"s{i}", (1.0, 0.0), category=c, order=i, text=f"Be honest about what I do not know {i}")
        for i, c in enumerate(categories)
    ]
    principle = Principle.seed(signals[0], order=0)
    for s in signals[1:]:
        principle.absorb(s, 1.0)
    return principle


class TestEligibility:
    """Test promotion blockers."""

    def setup_method(self):
        self.promoter = AxiomPromoter(gateway=None, axiom_threshold=3)

    def test_needs_reinforcement(self, make_signal):
        """Test N below the threshold blocks promotion."""
        blockers = self.promoter.check(grow(make_signal, ["diary", "goals"]))
        assert blockers == [PromotionBlocker.INSUFFICIENT_REINFORCEMENT]

    def test_single_category_never_promotes(self, make_signal):
        """Test one repetitive source cannot inflate a principle into an axiom."""
        blockers = self.promoter.check(grow(make_signal, ["diary"] * 6))
        assert blockers == [PromotionBlocker.INSUFFICIENT_CROSS_CATEGORY]

    def test_eligible(self, make_signal):
        """Test N >= threshold with two categories is eligible."""
        assert self.promoter.is_eligible(grow(make_signal, ["diary", "diary", "goals"]))

    def test_breadth_floor_enforced(self):
        """Test a breadth requirement below two categories is refused."""
        with pytest.raises(ConfigurationError):
            AxiomPromoter(gateway=None, min_cross_category=1)


class TestTryPromote:
    """Test canonical forms and monotonic promotion."""

    def test_creates_axiom(self, make_signal, canonical_gateway):
        """Test a promoted principle gets anchor, glyph and notation."""
        principle = grow(make_signal, ["diary", "goals", "knowledge"])
        outcome = AxiomPromoter(canonical_gateway).try_promote(principle)
        axiom = outcome.axiom
        assert outcome.promoted
        assert axiom.canonical.anchor == "誠"
        assert axiom.canonical.glyph == "💎"
        assert axiom.canonical.notation == "💎 誠: be honest about what"
        assert axiom.cross_category_strength == 3
        assert axiom.tier is AxiomTier.DOMAIN
        assert principle.is_promoted
        assert principle.promotion.axiom_id == axiom.id
        assert principle.history[-1].type == "promoted"

    def test_promoted_once(self, make_signal, canonical_gateway):
        """Test an already promoted principle is not promoted again."""
        principle = grow(make_signal, ["diary", "goals", "knowledge"])
        promoter = AxiomPromoter(canonical_gateway)
        promoter.try_promote(principle)
        again = promoter.try_promote(principle)
        assert not again.promoted
        assert PromotionBlocker.ALREADY_PROMOTED in again.blockers

    def test_classification_error_not_permanent(self, make_signal, scripted):
        """Test an out-of-vocabulary anchor fails this cycle only."""
        backend = scripted(answers=["honesty", "誠"])
        promoter = AxiomPromoter(ClassificationGateway(backend, max_retries=0), use_glyphs=False)
        principle = grow(make_signal, ["diary", "goals", "knowledge"])

        failed = promoter.try_promote(principle)
        assert failed.error is not None
        assert failed.error.raw_response == "honesty"
        assert not principle.is_promoted

        retried = promoter.try_promote(principle)
        assert retried.promoted
        assert retried.axiom.canonical.glyph is None
        assert retried.axiom.canonical.notation.startswith("誠: ")

    def test_representative_is_highest_confidence(self, make_signal, canonical_gateway):
        """Test the axiom text comes from the most confident signal."""
        principle = grow(make_signal, ["diary", "goals"])
        principle.absorb(make_signal("top", (1.0, 0.0), category="goals", order=9, confidence=0.99,
                                     text="Never pretend to know"), 1.0)
        outcome = AxiomPromoter(canonical_gateway).try_promote(principle)
        assert outcome.axiom.text == "Never pretend to know"


class TestHelpers:
    """Test tiers and summaries."""

    def test_tiers(self):
        """Test tier boundaries."""
        assert tier_for(5) is AxiomTier.CORE
        assert tier_for(3) is AxiomTier.DOMAIN
        assert tier_for(2) is AxiomTier.EMERGING

    def test_summarize(self):
        """Test the notation summary keeps the first words."""
        assert summarize("Always, ALWAYS tell the truth!") == "always always tell the"
