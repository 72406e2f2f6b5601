"""Centralized configuration system for Axiomforge.

Supports environment variables, config files, and programmatic overrides.
"""

from __future__ import annotations

import os
import json
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional
import logging

from dotenv import load_dotenv

from ..utils.errors import ConfigurationError

logger = logging.getLogger("AXIOMFORGE.Config")

GREENFIELD_STATES = ("bootstrap", "learn", "enforce")
# A single source category must never yield an axiom.
MIN_CROSS_CATEGORY_FLOOR = 2


@dataclass
class IntakeConfig:
    """Signal intake filtering."""
    confidence_threshold: float = 0.5
    per_source_cap: int = 10  # keep the strongest signals of one file


@dataclass
class ConvergenceConfig:
    """Nearest-centroid clustering."""
    match_threshold: float = 0.85
    max_workers: int = 4  # dimensions folded concurrently


@dataclass
class PromotionConfig:
    """Axiom promotion rules."""
    axiom_threshold: int = 3
    min_cross_category: int = 2
    use_glyphs: bool = True


@dataclass
class MergeConfig:
    """Store merge rules."""
    merge_threshold: float = 0.85
    allow_cross_dimension: bool = False


@dataclass
class ClassifierConfig:
    """Closed-vocabulary classification gateway."""
    batch_size: int = 8
    max_retries: int = 2  # corrective re-prompts after an invalid answer
    max_prompt_chars: int = 1000


@dataclass
class LLMConfig:
    """Classifier backend configuration."""
    provider: str = "ollama"
    model_name: str = "llama3.2:3b"
    base_url: str = "http://localhost:11434"
    timeout_s: float = 30.0
    max_retries: int = 3
    retry_delay_s: float = 1.0
    cache_enabled: bool = True
    cache_ttl_s: float = 3600.0


@dataclass
class EmbeddingConfig:
    """Embedding model configuration."""
    model_name: str = "all-MiniLM-L6-v2"
    dimension: int = 384  # MiniLM dimension
    normalize: bool = True
    batch_size: int = 32
    device: str = "cpu"  # "cpu" or "cuda"


@dataclass
class GreenfieldConfig:
    """Validation strictness phase."""
    state: str = "bootstrap"  # bootstrap | learn | enforce


@dataclass
class StorageConfig:
    """Snapshot persistence configuration."""
    snapshot_path: str = ".axiomforge/store.json.gz"
    checkpoint_dir: str = ".axiomforge/checkpoints"
    max_checkpoints: int = 10
    compression: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    format: str = "standard"  # standard | json
    file_path: Optional[str] = None


@dataclass
class AxiomforgeConfig:
    """Master configuration for Axiomforge."""
    intake: IntakeConfig = field(default_factory=IntakeConfig)
    convergence: ConvergenceConfig = field(default_factory=ConvergenceConfig)
    promotion: PromotionConfig = field(default_factory=PromotionConfig)
    merge: MergeConfig = field(default_factory=MergeConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    greenfield: GreenfieldConfig = field(default_factory=GreenfieldConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    def to_json(self) -> str:
        """Convert config to JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    def validate(self) -> "AxiomforgeConfig":
        """Check value ranges; raises ConfigurationError on the first problem."""
        for name, value in (
            ("intake.confidence_threshold", self.intake.confidence_threshold),
            ("convergence.match_threshold", self.convergence.match_threshold),
            ("merge.merge_threshold", self.merge.merge_threshold),
        ):
            if not 0.0 <= float(value) <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1]", context={"value": value})
        for name, value in (
            ("intake.per_source_cap", self.intake.per_source_cap),
            ("convergence.max_workers", self.convergence.max_workers),
            ("promotion.axiom_threshold", self.promotion.axiom_threshold),
            ("classifier.batch_size", self.classifier.batch_size),
        ):
            if int(value) < 1:
                raise ConfigurationError(f"{name} must be positive", context={"value": value})
        if self.promotion.min_cross_category < MIN_CROSS_CATEGORY_FLOOR:
            raise ConfigurationError(
                f"promotion.min_cross_category must be at least {MIN_CROSS_CATEGORY_FLOOR}",
                context={"value": self.promotion.min_cross_category},
            )
        if self.greenfield.state not in GREENFIELD_STATES:
            raise ConfigurationError(
                f"greenfield.state must be one of {', '.join(GREENFIELD_STATES)}",
                context={"value": self.greenfield.state},
            )
        return self

    def save(self, path: str) -> None:
        """Save config to JSON file."""
        try:
            with open(path, 'w', encoding="utf-8") as f:
                json.dump(self.to_dict(), f, indent=2)
            logger.info(f"Config saved to {path}")
        except OSError as e:
            raise ConfigurationError(f"Failed to save config: {e}", context={"path": path}) from e

    @classmethod
    def load(cls, path: str) -> AxiomforgeConfig:
        """Load config from JSON file."""
        if not os.path.exists(path):
            logger.warning(f"Config file not found: {path}, using defaults")
            return cls()

        try:
            with open(path, 'r', encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load config: {e}", context={"path": path}) from e

        config = cls()
        for key, value in (data or {}).items():
            if hasattr(config, key) and isinstance(value, dict):
                setattr(config, key, cls._update_dataclass(getattr(config, key), value))

        logger.info(f"Config loaded from {path}")
        return config

    @staticmethod
    def _update_dataclass(obj: Any, data: Dict[str, Any]) -> Any:
        """Recursively update dataclass from dict."""
        if not isinstance(data, dict):
            return obj

        for key, value in data.items():
            if hasattr(obj, key):
                current = getattr(obj, key)
                if hasattr(current, '__dataclass_fields__'):
                    setattr(obj, key, AxiomforgeConfig._update_dataclass(current, value))
                else:
                    setattr(obj, key, value)
        return obj

    @classmethod
    def from_env(cls) -> AxiomforgeConfig:
        """Load config from environment variables with safe parsing."""
        config = cls()

        def safe_int(key: str, default: Optional[int] = None) -> Optional[int]:
            val = os.getenv(key)
            if val is not None:
                try:
                    return int(val)
                except ValueError:
                    logger.warning(f"Invalid int for {key}={val}, using default")
                    return default
            return default

        def safe_float(key: str, default: Optional[float] = None) -> Optional[float]:
            val = os.getenv(key)
            if val is not None:
                try:
                    return float(val)
                except ValueError:
                    logger.warning(f"Invalid float for {key}={val}, using default")
                    return default
            return default

        def safe_bool(key: str, default: bool = False) -> bool:
            val = os.getenv(key)
            if val is not None:
                return val.lower() in ("1", "true", "yes", "on")
            return default

        def safe_str(key: str, default: Optional[str] = None) -> Optional[str]:
            val = os.getenv(key)
            return val if val is not None else default

        # Intake
        if (threshold := safe_float("AXIOMFORGE_CONFIDENCE_THRESHOLD")) is not None:
            config.intake.confidence_threshold = threshold
        if (cap := safe_int("AXIOMFORGE_PER_SOURCE_CAP")) is not None:
            config.intake.per_source_cap = cap

        # Convergence / promotion / merge
        if (match := safe_float("AXIOMFORGE_MATCH_THRESHOLD")) is not None:
            config.convergence.match_threshold = match
        if (workers := safe_int("AXIOMFORGE_MAX_WORKERS")) is not None:
            config.convergence.max_workers = workers
        if (axiom_n := safe_int("AXIOMFORGE_AXIOM_THRESHOLD")) is not None:
            config.promotion.axiom_threshold = axiom_n
        config.promotion.use_glyphs = safe_bool("AXIOMFORGE_USE_GLYPHS", config.promotion.use_glyphs)
        if (merge_t := safe_float("AXIOMFORGE_MERGE_THRESHOLD")) is not None:
            config.merge.merge_threshold = merge_t
        config.merge.allow_cross_dimension = safe_bool(
            "AXIOMFORGE_MERGE_CROSS_DIMENSION", config.merge.allow_cross_dimension
        )

        # Classifier backend
        if (batch := safe_int("AXIOMFORGE_CLASSIFIER_BATCH_SIZE")) is not None:
            config.classifier.batch_size = batch
        if (provider := safe_str("AXIOMFORGE_LLM_PROVIDER")) is not None:
            config.llm.provider = provider
        if (model := safe_str("AXIOMFORGE_LLM_MODEL")) is not None:
            config.llm.model_name = model
        if (url := safe_str("AXIOMFORGE_LLM_BASE_URL")) is not None:
            config.llm.base_url = url
        if (timeout := safe_float("AXIOMFORGE_LLM_TIMEOUT")) is not None:
            config.llm.timeout_s = timeout

        # Embedding
        if (model := safe_str("AXIOMFORGE_EMBEDDING_MODEL")) is not None:
            config.embedding.model_name = model
        if (device := safe_str("AXIOMFORGE_EMBEDDING_DEVICE")) is not None:
            config.embedding.device = device

        # Greenfield phase is an operator decision
        if (state := safe_str("AXIOMFORGE_GREENFIELD")) is not None:
            config.greenfield.state = state.strip().lower()

        # Storage / logging
        if (snapshot := safe_str("AXIOMFORGE_SNAPSHOT_PATH")) is not None:
            config.storage.snapshot_path = snapshot
        if (level := safe_str("AXIOMFORGE_LOG_LEVEL")) is not None:
            config.logging.level = level
        if (filepath := safe_str("AXIOMFORGE_LOG_FILE")) is not None:
            config.logging.file_path = filepath

        logger.debug("Config loaded from environment variables")
        return config


def get_config(config_path: Optional[str] = None, use_env: bool = True) -> AxiomforgeConfig:
    """Get Axiomforge configuration.

    Priority: env vars > config file > defaults
    """
    config = AxiomforgeConfig()

    if config_path and os.path.exists(config_path):
        config = AxiomforgeConfig.load(config_path)

    if use_env:
        load_dotenv(override=False)
        env_config = AxiomforgeConfig.from_env()
        defaults = AxiomforgeConfig()
        for key in asdict(env_config):
            if getattr(env_config, key) != getattr(defaults, key):
                setattr(config, key, getattr(env_config, key))

    return config.validate()


__all__ = [
    "AxiomforgeConfig",
    "IntakeConfig",
    "ConvergenceConfig",
    "PromotionConfig",
    "MergeConfig",
    "ClassifierConfig",
    "LLMConfig",
    "EmbeddingConfig",
    "GreenfieldConfig",
    "StorageConfig",
    "LoggingConfig",
    "GREENFIELD_STATES",
    "get_config",
]
