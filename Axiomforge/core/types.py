"""Data model: signals, principles, axioms and the greenfield policy.

A Signal is one classified text fragment. Principles cluster reinforcing
signals around a running centroid; a principle whose evidence is strong and
diverse enough is promoted to an Axiom exactly once.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Set, Tuple, Union

import numpy as np

from .vectors import as_vector, incremental_mean, mean_vector
from ..utils.errors import ConfigurationError


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


class Dimension(str, Enum):
    """Identity dimensions a signal can speak to."""
    IDENTITY_CORE = "identity-core"
    CHARACTER_TRAITS = "character-traits"
    VOICE_PRESENCE = "voice-presence"
    HONESTY_FRAMEWORK = "honesty-framework"
    BOUNDARIES_ETHICS = "boundaries-ethics"
    RELATIONSHIP_DYNAMICS = "relationship-dynamics"
    CONTINUITY_GROWTH = "continuity-growth"


class SignalType(str, Enum):
    VALUE = "value"
    BELIEF = "belief"
    PREFERENCE = "preference"
    GOAL = "goal"
    CONSTRAINT = "constraint"
    RELATIONSHIP = "relationship"
    PATTERN = "pattern"
    CORRECTION = "correction"
    BOUNDARY = "boundary"
    REINFORCEMENT = "reinforcement"


class GreenfieldState(str, Enum):
    """Validation strictness phase, chosen by the operator."""
    BOOTSTRAP = "bootstrap"
    LEARN = "learn"
    ENFORCE = "enforce"

    @classmethod
    def parse(cls, value: Union[str, "GreenfieldState"]) -> "GreenfieldState":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown greenfield state: {value!r}",
                context={"allowed": [s.value for s in cls]},
            ) from e


class AxiomTier(str, Enum):
    CORE = "core"          # N >= 5
    DOMAIN = "domain"      # N >= 3
    EMERGING = "emerging"


def _dimension_or_none(value: Any) -> Optional[Dimension]:
    if value is None or isinstance(value, Dimension):
        return value
    return Dimension(value)


@dataclass(frozen=True)
class SourceRef:
    """Where a signal came from.

    ``category`` is the grouping key (the memory directory), distinct from the
    file path: several files of one category count as a single category.
    """
    file: str
    category: str = "unknown"
    line: Optional[int] = None
    section: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"file": self.file, "category": self.category, "line": self.line, "section": self.section}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceRef":
        return cls(
            file=str(data.get("file", "")),
            category=str(data.get("category") or "unknown"),
            line=data.get("line"),
            section=data.get("section"),
        )


@dataclass(frozen=True)
class Signal:
    """One classified text fragment. Immutable once created."""
    id: str
    text: str
    source: SourceRef
    embedding: Optional[Tuple[float, ...]]
    confidence: float
    order: int  # creation order index, monotonic
    dimension: Optional[Dimension] = None
    signal_type: Optional[SignalType] = None

    def __post_init__(self) -> None:
        emb = self.embedding
        if isinstance(emb, np.ndarray):
            object.__setattr__(self, "embedding", tuple(float(v) for v in emb.tolist()))
        elif isinstance(emb, list):
            object.__setattr__(self, "embedding", tuple(emb))
        object.__setattr__(self, "dimension", _dimension_or_none(self.dimension))
        if self.signal_type is not None and not isinstance(self.signal_type, SignalType):
            object.__setattr__(self, "signal_type", SignalType(self.signal_type))

    def vector(self) -> np.ndarray:
        """Embedding as a validated numpy vector (ValueError when unusable)."""
        return as_vector(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "source": self.source.to_dict(),
            "embedding": list(self.embedding) if self.embedding is not None else None,
            "confidence": self.confidence,
            "order": self.order,
            "dimension": self.dimension.value if self.dimension else None,
            "signal_type": self.signal_type.value if self.signal_type else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Signal":
        return cls(
            id=str(data["id"]),
            text=str(data.get("text", "")),
            source=SourceRef.from_dict(data.get("source") or {}),
            embedding=data.get("embedding"),
            confidence=float(data.get("confidence", 0.0)),
            order=int(data.get("order", 0)),
            dimension=data.get("dimension"),
            signal_type=data.get("signal_type"),
        )


@dataclass(frozen=True)
class NotPromoted:
    promoted: ClassVar[bool] = False


@dataclass(frozen=True)
class Promoted:
    axiom_id: str
    promoted: ClassVar[bool] = True


PromotionStatus = Union[NotPromoted, Promoted]
NOT_PROMOTED = NotPromoted()


def promoted_wins(baseline: PromotionStatus, incoming: PromotionStatus) -> Tuple[PromotionStatus, bool]:
    """Combine two promotion states; a promoted side always survives.

    Returns the combined status and whether the two sides disagreed. When both
    are promoted the baseline axiom stays primary.
    """
    if isinstance(baseline, Promoted):
        return baseline, not isinstance(incoming, Promoted)
    if isinstance(incoming, Promoted):
        return incoming, True
    return NOT_PROMOTED, False


@dataclass(frozen=True)
class PrincipleEvent:
    type: str  # created | reinforced | merged | promoted
    timestamp: str
    details: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "timestamp": self.timestamp, "details": self.details}


@dataclass(eq=False)
class Principle:
    """A cluster of reinforcing signals sharing a semantic center.

    Reinforcement count and cross-category strength are derived from the
    member list, so they cannot drift from it.
    """
    id: str
    dimension: Optional[Dimension]
    centroid: np.ndarray
    order: int
    signals: List[Signal] = field(default_factory=list)
    promotion: PromotionStatus = NOT_PROMOTED
    dimension_conflicts: List[str] = field(default_factory=list)
    history: List[PrincipleEvent] = field(default_factory=list)

    @classmethod
    def seed(cls, signal: Signal, order: int, principle_id: Optional[str] = None) -> "Principle":
        """Create a principle whose sole member is ``signal``."""
        principle = cls(
            id=principle_id or new_id("pri"),
            dimension=signal.dimension,
            centroid=signal.vector().copy(),
            order=order,
            signals=[signal],
        )
        principle.record("created", f"Created from signal {signal.id}")
        return principle

    @property
    def reinforcement_count(self) -> int:
        return len(self.signals)

    @property
    def categories(self) -> List[str]:
        seen: List[str] = []
        for s in self.signals:
            if s.source.category not in seen:
                seen.append(s.source.category)
        return seen

    @property
    def cross_category_strength(self) -> int:
        return len({s.source.category for s in self.signals})

    @property
    def is_promoted(self) -> bool:
        return isinstance(self.promotion, Promoted)

    @property
    def signal_ids(self) -> Set[str]:
        return {s.id for s in self.signals}

    @property
    def representative(self) -> Signal:
        """Highest-confidence member; earliest wins ties."""
        return min(self.signals, key=lambda s: (-s.confidence, s.order))

    @property
    def text(self) -> str:
        return self.representative.text if self.signals else ""

    def record(self, event_type: str, details: str) -> None:
        self.history.append(PrincipleEvent(type=event_type, timestamp=utc_now(), details=details))

    def absorb(self, signal: Signal, similarity: float) -> None:
        """Append ``signal`` and fold its embedding into the running mean."""
        self.centroid = incremental_mean(self.centroid, len(self.signals), signal.vector())
        self.signals.append(signal)
        self.record("reinforced", f"Reinforced by signal {signal.id} (similarity: {similarity:.3f})")

    def recompute_centroid(self) -> None:
        self.centroid = mean_vector(s.vector() for s in self.signals)

    def copy(self) -> "Principle":
        return replace(
            self,
            centroid=self.centroid.copy(),
            signals=list(self.signals),
            dimension_conflicts=list(self.dimension_conflicts),
            history=list(self.history),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dimension": self.dimension.value if self.dimension else None,
            "centroid": [float(v) for v in self.centroid.tolist()],
            "order": self.order,
            "signals": [s.to_dict() for s in self.signals],
            "axiom_id": self.promotion.axiom_id if isinstance(self.promotion, Promoted) else None,
            "dimension_conflicts": list(self.dimension_conflicts),
            "history": [e.to_dict() for e in self.history],
            "n_count": self.reinforcement_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Principle":
        axiom_id = data.get("axiom_id")
        return cls(
            id=str(data["id"]),
            dimension=_dimension_or_none(data.get("dimension")),
            centroid=np.asarray(data.get("centroid") or [], dtype=np.float64),
            order=int(data.get("order", 0)),
            signals=[Signal.from_dict(s) for s in data.get("signals", [])],
            promotion=Promoted(axiom_id) if axiom_id else NOT_PROMOTED,
            dimension_conflicts=list(data.get("dimension_conflicts", [])),
            history=[PrincipleEvent(**e) for e in data.get("history", [])],
        )


@dataclass(frozen=True)
class CanonicalForm:
    anchor: str                  # closed CJK vocabulary
    notation: str                # e.g. "💎 誠: be honest about limits"
    glyph: Optional[str] = None  # closed emoji vocabulary

    def to_dict(self) -> Dict[str, Any]:
        return {"anchor": self.anchor, "notation": self.notation, "glyph": self.glyph}


@dataclass(frozen=True)
class Axiom:
    """Canonical, promoted form of a principle. Never revoked."""
    id: str
    principle_id: str
    canonical: CanonicalForm
    reinforcement_count: int
    cross_category_strength: int
    dimension: Optional[Dimension]
    text: str
    tier: AxiomTier
    promoted_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "principle_id": self.principle_id,
            "canonical": self.canonical.to_dict(),
            "reinforcement_count": self.reinforcement_count,
            "cross_category_strength": self.cross_category_strength,
            "dimension": self.dimension.value if self.dimension else None,
            "text": self.text,
            "tier": self.tier.value,
            "promoted_at": self.promoted_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Axiom":
        canonical = data.get("canonical") or {}
        return cls(
            id=str(data["id"]),
            principle_id=str(data["principle_id"]),
            canonical=CanonicalForm(
                anchor=str(canonical.get("anchor", "")),
                notation=str(canonical.get("notation", "")),
                glyph=canonical.get("glyph"),
            ),
            reinforcement_count=int(data.get("reinforcement_count", 0)),
            cross_category_strength=int(data.get("cross_category_strength", 0)),
            dimension=_dimension_or_none(data.get("dimension")),
            text=str(data.get("text", "")),
            tier=AxiomTier(data.get("tier", AxiomTier.EMERGING.value)),
            promoted_at=str(data.get("promoted_at", "")),
        )


__all__ = [
    "Dimension",
    "SignalType",
    "GreenfieldState",
    "AxiomTier",
    "SourceRef",
    "Signal",
    "NotPromoted",
    "Promoted",
    "PromotionStatus",
    "NOT_PROMOTED",
    "promoted_wins",
    "PrincipleEvent",
    "Principle",
    "CanonicalForm",
    "Axiom",
    "new_id",
    "utc_now",
]
