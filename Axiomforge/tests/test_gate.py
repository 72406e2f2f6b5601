"""Tests for the greenfield gate."""

import pytest

from Axiomforge.core.gate import (
    COGNITIVE_LOAD, EXPANSION, NO_AXIOMS_GENERATED, CheckOutcome, GreenfieldGate, evaluate, run_checks,
)
from Axiomforge.core.types import GreenfieldState
from Axiomforge.utils.errors import ConfigurationError, ValidationRejected


class TestRunChecks:
    """Test the policy-agnostic checks."""

    def test_zero_axioms_fails_rejecting_check(self):
        """Test an empty result fails the no-axioms check."""
        outcomes = {o.check: o for o in run_checks(axiom_count=0, signal_count=12)}
        assert not outcomes[NO_AXIOMS_GENERATED].passed
        assert outcomes[NO_AXIOMS_GENERATED].rejecting

    def test_guardrails_warn(self):
        """Test expansion and cognitive load are warnings, not rejections."""
        outcomes = {o.check: o for o in run_checks(axiom_count=5, signal_count=4)}
        assert not outcomes[EXPANSION].passed
        assert not outcomes[COGNITIVE_LOAD].passed
        assert not outcomes[EXPANSION].rejecting

    def test_healthy_run(self):
        """Test a compressed result passes every check."""
        assert all(o.passed for o in run_checks(axiom_count=3, signal_count=40))


class TestEvaluate:
    """Test the pure policy decision."""

    def setup_method(self):
        self.failing = run_checks(axiom_count=0, signal_count=10)

    def test_bootstrap_records_would_reject(self):
        """Test bootstrap accepts and notes the reason."""
        result = evaluate(self.failing, GreenfieldState.BOOTSTRAP)
        assert result.valid is True
        assert result.would_reject == NO_AXIOMS_GENERATED
        assert result.reason is None

    def test_learn_accepts_like_bootstrap(self):
        """Test learn has bootstrap's acceptance behaviour."""
        learn = evaluate(self.failing, "learn")
        bootstrap = evaluate(self.failing, "bootstrap")
        assert (learn.valid, learn.would_reject, learn.notes) == (bootstrap.valid, bootstrap.would_reject, bootstrap.notes)

    def test_enforce_rejects(self):
        """Test enforce invalidates with the specific reason."""
        result = evaluate(self.failing, GreenfieldState.ENFORCE)
        assert result.valid is False
        assert result.reason == NO_AXIOMS_GENERATED
        with pytest.raises(ValidationRejected) as exc:
            result.raise_for_status()
        assert exc.value.reason == NO_AXIOMS_GENERATED

    def test_warnings_never_reject(self):
        """Test non-rejecting failures leave enforce valid."""
        outcomes = [CheckOutcome("custom-warning", passed=False, rejecting=False, message="heads up")]
        result = evaluate(outcomes, GreenfieldState.ENFORCE)
        assert result.valid is True
        assert result.warnings == ("heads up",)

    def test_unknown_policy(self):
        """Test an unknown policy is a configuration error."""
        with pytest.raises(ConfigurationError):
            evaluate(self.failing, "strict")


class TestGreenfieldGate:
    """Test the telemetry wrapper."""

    def test_accumulates_would_reject_records(self):
        """Test bootstrap/learn runs are recorded, enforce runs are not."""
        gate = GreenfieldGate()
        failing = run_checks(axiom_count=0, signal_count=3)
        gate.validate(failing)
        gate.set_policy("learn")
        gate.validate(failing)
        gate.set_policy("enforce")
        assert not gate.validate(failing).valid
        assert gate.telemetry() == {NO_AXIOMS_GENERATED: 2}
        assert [r.policy for r in gate.records] == [GreenfieldState.BOOTSTRAP, GreenfieldState.LEARN]

    def test_no_automatic_transition(self):
        """Test the gate never changes its own policy."""
        gate = GreenfieldGate(GreenfieldState.BOOTSTRAP)
        for _ in range(5):
            gate.validate(run_checks(axiom_count=0, signal_count=3))
        assert gate.policy is GreenfieldState.BOOTSTRAP
