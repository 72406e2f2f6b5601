"""Axiom promotion.

A principle is promoted once its reinforcement count reaches the axiom
threshold and its signals come from at least two distinct source categories.
Canonical forms are picked by the classifier from closed vocabularies; a
classifier failure only postpones promotion to the next mutation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .types import Axiom, AxiomTier, CanonicalForm, Principle, Promoted, new_id, utc_now
from ..config.settings import MIN_CROSS_CATEGORY_FLOOR
from ..llm.gateway import ANCHORS, GLYPHS, ClassificationGateway
from ..utils.errors import ClassificationError, ConfigurationError

logger = logging.getLogger("AXIOMFORGE.Promotion")

CORE_TIER_N = 5
DOMAIN_TIER_N = 3
SUMMARY_WORDS = 4


class PromotionBlocker(str, Enum):
    ALREADY_PROMOTED = "already-promoted"
    INSUFFICIENT_REINFORCEMENT = "insufficient-reinforcement"
    INSUFFICIENT_CROSS_CATEGORY = "insufficient-cross-category"


@dataclass(frozen=True)
class PromotionOutcome:
    principle_id: str
    axiom: Optional[Axiom] = None
    blockers: tuple = ()
    error: Optional[ClassificationError] = None

    @property
    def promoted(self) -> bool:
        return self.axiom is not None


def tier_for(reinforcement_count: int) -> AxiomTier:
    if reinforcement_count >= CORE_TIER_N:
        return AxiomTier.CORE
    if reinforcement_count >= DOMAIN_TIER_N:
        return AxiomTier.DOMAIN
    return AxiomTier.EMERGING


def summarize(text: str, words: int = SUMMARY_WORDS) -> str:
    tokens = re.findall(r"[\w'-]+", (text or "").lower())
    return " ".join(tokens[:words])


class AxiomPromoter:
    def __init__(
        self,
        gateway: ClassificationGateway,
        axiom_threshold: int = 3,
        min_cross_category: int = 2,
        use_glyphs: bool = True,
    ):
        if min_cross_category < MIN_CROSS_CATEGORY_FLOOR:
            raise ConfigurationError(
                f"min_cross_category must be at least {MIN_CROSS_CATEGORY_FLOOR}",
                context={"value": min_cross_category},
            )
        self.gateway = gateway
        self.axiom_threshold = axiom_threshold
        self.min_cross_category = min_cross_category
        self.use_glyphs = use_glyphs

    def check(self, principle: Principle) -> List[PromotionBlocker]:
        """Reasons ``principle`` cannot be promoted now (empty when eligible)."""
        blockers: List[PromotionBlocker] = []
        if principle.is_promoted:
            blockers.append(PromotionBlocker.ALREADY_PROMOTED)
        if principle.reinforcement_count < self.axiom_threshold:
            blockers.append(PromotionBlocker.INSUFFICIENT_REINFORCEMENT)
        if principle.cross_category_strength < self.min_cross_category:
            blockers.append(PromotionBlocker.INSUFFICIENT_CROSS_CATEGORY)
        return blockers

    def is_eligible(self, principle: Principle) -> bool:
        return not self.check(principle)

    def canonical_form(self, text: str) -> CanonicalForm:
        """Ask the classifier for anchor (and glyph) of ``text``.

        Raises:
            ClassificationError: when either answer is out of vocabulary.
        """
        anchor = self.gateway.classify(text, ANCHORS, task="anchor")
        glyph = self.gateway.classify(text, GLYPHS, task="glyph") if self.use_glyphs else None
        head = f"{glyph} {anchor}" if glyph else anchor
        return CanonicalForm(anchor=anchor, notation=f"{head}: {summarize(text)}", glyph=glyph)

    def try_promote(self, principle: Principle) -> PromotionOutcome:
        """Promote ``principle`` if eligible. Mutates it on success."""
        blockers = self.check(principle)
        if blockers:
            return PromotionOutcome(principle.id, blockers=tuple(blockers))

        text = principle.text
        try:
            canonical = self.canonical_form(text)
        except ClassificationError as e:
            logger.warning(f"Promotion of {principle.id} postponed: {e}", extra={"principle_id": principle.id})
            return PromotionOutcome(principle.id, error=e)

        axiom = Axiom(
            id=new_id("axm"),
            principle_id=principle.id,
            canonical=canonical,
            reinforcement_count=principle.reinforcement_count,
            cross_category_strength=principle.cross_category_strength,
            dimension=principle.dimension,
            text=text,
            tier=tier_for(principle.reinforcement_count),
            promoted_at=utc_now(),
        )
        principle.promotion = Promoted(axiom.id)
        principle.record("promoted", f"Promoted to {axiom.id} ({canonical.notation})")
        logger.info(
            f"Promoted {principle.id} -> {axiom.id} "
            f"(N={axiom.reinforcement_count}, categories={axiom.cross_category_strength}, tier={axiom.tier.value})",
            extra={"principle_id": principle.id, "axiom_id": axiom.id},
        )
        return PromotionOutcome(principle.id, axiom=axiom)


__all__ = [
    "AxiomPromoter",
    "PromotionBlocker",
    "PromotionOutcome",
    "tier_for",
    "summarize",
]
