"""Tests for configuration loading and logging setup."""

import json
import logging

import pytest

from Axiomforge.config.logging_config import JSONFormatter, StandardFormatter, setup_logging
from Axiomforge.config.settings import AxiomforgeConfig, get_config
from Axiomforge.utils.errors import ConfigurationError


class TestAxiomforgeConfig:
    """Test config defaults, validation and persistence."""

    def test_defaults(self):
        """Test documented defaults."""
        config = AxiomforgeConfig()
        assert config.intake.confidence_threshold == 0.5
        assert config.intake.per_source_cap == 10
        assert config.convergence.match_threshold == 0.85
        assert config.promotion.axiom_threshold == 3
        assert config.promotion.min_cross_category == 2
        assert config.classifier.max_retries == 2
        assert config.greenfield.state == "bootstrap"

    def test_validate_rejects_bad_threshold(self):
        """Test thresholds outside [0, 1] are rejected."""
        config = AxiomforgeConfig()
        config.convergence.match_threshold = 1.5
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_validate_rejects_single_category_promotion(self):
        """Test min_cross_category below two is rejected."""
        config = AxiomforgeConfig()
        config.promotion.min_cross_category = 1
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_validate_rejects_unknown_state(self):
        """Test an unknown greenfield state is rejected."""
        config = AxiomforgeConfig()
        config.greenfield.state = "auto"
        with pytest.raises(ConfigurationError):
            config.validate()

    def test_save_and_load(self, tmp_path):
        """Test a saved config loads back with overrides intact."""
        config = AxiomforgeConfig()
        config.merge.merge_threshold = 0.9
        config.greenfield.state = "learn"
        path = tmp_path / "axiomforge.json"
        config.save(str(path))
        loaded = AxiomforgeConfig.load(str(path))
        assert loaded.merge.merge_threshold == 0.9
        assert loaded.greenfield.state == "learn"

    def test_load_missing_file_gives_defaults(self, tmp_path):
        """Test a missing file falls back to defaults."""
        loaded = AxiomforgeConfig.load(str(tmp_path / "none.json"))
        assert loaded.to_dict() == AxiomforgeConfig().to_dict()

    def test_load_corrupt_file(self, tmp_path):
        """Test unreadable JSON is a configuration error."""
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            AxiomforgeConfig.load(str(path))


class TestGetConfig:
    """Test environment overrides."""

    def test_env_overrides(self, monkeypatch):
        """Test AXIOMFORGE_* variables override defaults."""
        monkeypatch.setenv("AXIOMFORGE_MATCH_THRESHOLD", "0.8")
        monkeypatch.setenv("AXIOMFORGE_GREENFIELD", "ENFORCE")
        monkeypatch.setenv("AXIOMFORGE_USE_GLYPHS", "false")
        config = get_config()
        assert config.convergence.match_threshold == 0.8
        assert config.greenfield.state == "enforce"
        assert config.promotion.use_glyphs is False

    def test_invalid_env_value_ignored(self, monkeypatch):
        """Test an unparsable number keeps the default."""
        monkeypatch.setenv("AXIOMFORGE_PER_SOURCE_CAP", "many")
        assert get_config().intake.per_source_cap == 10

    def test_invalid_env_state_rejected(self, monkeypatch):
        """Test an invalid greenfield state from the environment fails validation."""
        monkeypatch.setenv("AXIOMFORGE_GREENFIELD", "sometimes")
        with pytest.raises(ConfigurationError):
            get_config()


class TestLogging:
    """Test logging setup."""

    def test_json_formatter(self):
        """Test JSON records carry logger name and message."""
        record = logging.LogRecord("AXIOMFORGE.Merge", logging.INFO, __file__, 1, "merged %d", (3,), None)
        payload = json.loads(JSONFormatter().format(record))
        assert payload["logger"] == "AXIOMFORGE.Merge"
        assert payload["message"] == "merged 3"

    def test_component_and_context_ids(self):
        """Test records carry the component name and ids passed through extra."""
        record = logging.LogRecord("AXIOMFORGE.Promotion", logging.INFO, __file__, 1, "promoted", (), None)
        record.principle_id = "pri_1"
        record.axiom_id = "axm_1"
        payload = json.loads(JSONFormatter().format(record))
        assert payload["component"] == "Promotion"
        assert payload["principle_id"] == "pri_1"
        assert payload["axiom_id"] == "axm_1"
        assert "signal_id" not in payload
        line = StandardFormatter().format(record)
        assert "[Promotion] promoted (principle_id=pri_1, axiom_id=axm_1)" in line

    def test_component_levels(self):
        """Test per-component levels are applied."""
        setup_logging("WARNING", component_levels={"AXIOMFORGE.Convergence": "DEBUG"})
        assert logging.getLogger("AXIOMFORGE.Convergence").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING
