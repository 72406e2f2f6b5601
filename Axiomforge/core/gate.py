"""Greenfield gate: one set of checks, three consequences.

Checks are policy-agnostic and produce CheckOutcomes. `evaluate` is a pure
function from those outcomes and a GreenfieldState to a ValidationResult:

- bootstrap: failed rejecting checks become "would-reject" notes, result valid
- learn: same acceptance as bootstrap (notes kept as telemetry)
- enforce: the first failed rejecting check invalidates the result

States never change on their own; the operator picks one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .types import GreenfieldState, utc_now
from ..utils.errors import ValidationRejected

logger = logging.getLogger("AXIOMFORGE.Gate")

NO_AXIOMS_GENERATED = "no-axioms-generated"
EXPANSION = "expansion"
COGNITIVE_LOAD = "cognitive-load"
THRESHOLD_FLOOR = "threshold-floor"

COGNITIVE_LOAD_CAP = 30


@dataclass(frozen=True)
class CheckOutcome:
    """Result of one check. Only rejecting checks can invalidate a run."""
    check: str
    passed: bool
    rejecting: bool
    message: str = ""


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    policy: GreenfieldState
    reason: Optional[str] = None
    would_reject: Optional[str] = None
    notes: tuple = ()
    warnings: tuple = ()

    def raise_for_status(self) -> "ValidationResult":
        if not self.valid:
            raise ValidationRejected(self.reason or "rejected", context={"policy": self.policy.value})
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "policy": self.policy.value,
            "reason": self.reason,
            "would_reject": self.would_reject,
            "notes": list(self.notes),
            "warnings": list(self.warnings),
        }


def run_checks(axiom_count: int, signal_count: int, axiom_threshold: int = 3) -> List[CheckOutcome]:
    """Evaluate a converged store's totals."""
    outcomes = [
        CheckOutcome(
            NO_AXIOMS_GENERATED,
            passed=axiom_count > 0,
            rejecting=True,
            message="" if axiom_count > 0 else f"No axioms generated from {signal_count} signals",
        ),
    ]

    expansion = axiom_count > signal_count
    outcomes.append(CheckOutcome(
        EXPANSION,
        passed=not expansion,
        rejecting=False,
        message=f"Expansion instead of compression: {axiom_count} axioms > {signal_count} signals" if expansion else "",
    ))

    limit = min(signal_count * 0.5, COGNITIVE_LOAD_CAP)
    overload = axiom_count > limit
    outcomes.append(CheckOutcome(
        COGNITIVE_LOAD,
        passed=not overload,
        rejecting=False,
        message=(
            f"Exceeds cognitive load limit: {axiom_count} axioms > {limit:.0f} "
            f"(min(signals*0.5, {COGNITIVE_LOAD_CAP}))"
        ) if overload else "",
    ))

    floor = axiom_threshold <= 1
    outcomes.append(CheckOutcome(
        THRESHOLD_FLOOR,
        passed=not floor,
        rejecting=False,
        message="Axiom threshold at its floor (N>=1): every principle can promote" if floor else "",
    ))
    return outcomes


def evaluate(outcomes: Sequence[CheckOutcome], policy: GreenfieldState) -> ValidationResult:
    """Pure decision over check outcomes under ``policy``."""
    policy = GreenfieldState.parse(policy)
    failed = [o for o in outcomes if not o.passed and o.rejecting]
    warnings = tuple(o.message or o.check for o in outcomes if not o.passed and not o.rejecting)

    if not failed:
        return ValidationResult(valid=True, policy=policy, warnings=warnings)

    if policy is GreenfieldState.ENFORCE:
        return ValidationResult(
            valid=False,
            policy=policy,
            reason=failed[0].check,
            notes=tuple(o.message or o.check for o in failed),
            warnings=warnings,
        )

    return ValidationResult(
        valid=True,
        policy=policy,
        would_reject=failed[0].check,
        notes=tuple(o.message or o.check for o in failed),
        warnings=warnings,
    )


@dataclass(frozen=True)
class WouldRejectRecord:
    check: str
    policy: GreenfieldState
    message: str
    recorded_at: str


@dataclass
class GreenfieldGate:
    """Stateful wrapper around `evaluate` that keeps would-reject telemetry."""
    policy: GreenfieldState = GreenfieldState.BOOTSTRAP
    records: List[WouldRejectRecord] = field(default_factory=list)

    def set_policy(self, policy: Any) -> None:
        self.policy = GreenfieldState.parse(policy)
        logger.info(f"Greenfield policy set to {self.policy.value}")

    def validate(self, outcomes: Sequence[CheckOutcome]) -> ValidationResult:
        result = evaluate(outcomes, self.policy)
        for w in result.warnings:
            logger.warning(f"[guardrail] {w}")
        if result.would_reject:
            for o in outcomes:
                if o.rejecting and not o.passed:
                    self.records.append(WouldRejectRecord(o.check, self.policy, o.message, utc_now()))
                    logger.warning(f"Would reject ({self.policy.value}): {o.check} - {o.message}")
        elif not result.valid:
            logger.warning(f"Rejected ({self.policy.value}): {result.reason}")
        return result

    def telemetry(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for r in self.records:
            counts[r.check] = counts.get(r.check, 0) + 1
        return counts


__all__ = [
    "CheckOutcome",
    "ValidationResult",
    "WouldRejectRecord",
    "GreenfieldGate",
    "evaluate",
    "run_checks",
    "NO_AXIOMS_GENERATED",
    "EXPANSION",
    "COGNITIVE_LOAD",
    "THRESHOLD_FLOOR",
]
