"""Tests for signal intake and category detection."""

import pytest

from Axiomforge.core.types import Dimension, SignalType, SourceRef
from Axiomforge.extraction.categories import category_from_path
from Axiomforge.extraction.intake import SignalCandidate, SignalIntake, filter_candidates
from Axiomforge.llm.gateway import ClassificationGateway
from Axiomforge.utils.errors import ConfigurationError


def candidate(index, confidence, file="memory/diary/a.md", text=None, **kw):
    return SignalCandidate(
        text=text or f"fragment {index}",
        source=SourceRef(file=file, category=category_from_path(file)),
        confidence=confidence,
        index=index,
        embedding=(1.0, 0.0, 0.0),
        **kw,
    )


class TestCategoryFromPath:
    """Test category detection."""

    def test_directory_under_memory_root(self):
        """Test the directory beneath memory/ is the category."""
        assert category_from_path("memory/diary/2024-01-01.md") == "diary"
        assert category_from_path("/ws/memory/goals/q3/plan.md") == "goals"

    def test_files_of_one_category_share_it(self):
        """Test two files in one directory give the same category."""
        assert category_from_path("memory/knowledge/a.md") == category_from_path("memory/knowledge/b.md")

    def test_fallbacks(self):
        """Test parent directory and unknown fallbacks."""
        assert category_from_path("notes/Preferences/x.md") == "preferences"
        assert category_from_path("README.md") == "unknown"
        assert category_from_path("memory/loose.md") == "unknown"

    def test_strict_limits_to_memory_categories(self):
        """Test strict mode maps unrecognised directories to unknown."""
        assert category_from_path("memory/Goals/plan.md", strict=True) == "goals"
        assert category_from_path("memory/scratch/todo.md") == "scratch"
        assert category_from_path("memory/scratch/todo.md", strict=True) == "unknown"


class TestFilterCandidates:
    """Test the pure confidence/cap filter."""

    def test_threshold(self):
        """Test candidates below the threshold are dropped."""
        kept = filter_candidates([candidate(0, 0.4), candidate(1, 0.5), candidate(2, 0.9)])
        assert [c.index for c in kept] == [1, 2]

    def test_cap_keeps_highest_confidence_stable(self):
        """Test the cap keeps the strongest, ties by extraction order, original order kept."""
        items = [
            candidate(0, 0.6),
            candidate(1, 0.9),
            candidate(2, 0.7),
            candidate(3, 0.9),
            candidate(4, 0.7),
        ]
        kept = filter_candidates(items, per_source_cap=3)
        assert [c.index for c in kept] == [1, 2, 3]

    def test_cap_is_per_file(self):
        """Test each source file gets its own cap."""
        items = [candidate(i, 0.9, file="memory/diary/a.md") for i in range(3)]
        items += [candidate(10 + i, 0.9, file="memory/diary/b.md") for i in range(3)]
        kept = filter_candidates(items, per_source_cap=2)
        assert [c.index for c in kept] == [0, 1, 10, 11]

    def test_pure(self):
        """Test repeated calls give identical results."""
        items = [candidate(i, 0.5 + i * 0.01) for i in range(15)]
        assert filter_candidates(items) == filter_candidates(items)


class TestSignalIntake:
    """Test admission of candidates as signals."""

    def test_classifies_missing_labels(self, scripted):
        """Test dimension and type are filled in through the gateway."""
        backend = scripted(responder=lambda p: "honesty-framework" if "- honesty-framework:" in p else "value")
        intake = SignalIntake(ClassificationGateway(backend))
        report = intake.admit([candidate(0, 0.9)], start_order=5)
        assert report.admitted == 1
        signal = report.signals[0]
        assert signal.dimension is Dimension.HONESTY_FRAMEWORK
        assert signal.signal_type is SignalType.VALUE
        assert signal.order == 5
        assert signal.id.startswith("sig_")

    def test_failed_classification_drops_only_that_candidate(self, scripted):
        """Test a ClassificationError aborts one candidate, not the batch."""
        def responder(prompt):
            if "poison" in prompt:
                return "not-a-dimension"
            return "honesty-framework"

        intake = SignalIntake(ClassificationGateway(scripted(responder=responder), max_retries=0))
        items = [
            candidate(0, 0.9, text="fine one", signal_type=SignalType.BELIEF),
            candidate(1, 0.9, text="poison", signal_type=SignalType.BELIEF),
            candidate(2, 0.9, text="fine two", signal_type=SignalType.BELIEF),
        ]
        report = intake.admit(items)
        assert [s.text for s in report.signals] == ["fine one", "fine two"]
        assert [s.order for s in report.signals] == [0, 1]
        assert len(report.rejected) == 1
        assert report.rejected[0][1].raw_response == "not-a-dimension"

    def test_counts(self):
        """Test the report counts filtered candidates."""
        intake = SignalIntake(per_source_cap=1)
        items = [
            candidate(0, 0.2, dimension=Dimension.VOICE_PRESENCE, signal_type=SignalType.PATTERN),
            candidate(1, 0.8, dimension=Dimension.VOICE_PRESENCE, signal_type=SignalType.PATTERN),
            candidate(2, 0.7, dimension=Dimension.VOICE_PRESENCE, signal_type=SignalType.PATTERN),
        ]
        report = intake.admit(items)
        assert report.summary() == {"admitted": 1, "below_threshold": 1, "over_cap": 1, "rejected": 0}

    def test_needs_classifier(self):
        """Test unlabeled candidates without a gateway are a configuration error."""
        with pytest.raises(ConfigurationError):
            SignalIntake().admit([candidate(0, 0.9)])
