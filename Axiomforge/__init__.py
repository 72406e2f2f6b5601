"""Axiomforge - converges memory signals into principles and canonical axioms"""

from __future__ import annotations

__version__ = "0.1.0"

# Data model
from .core.types import (
    Axiom, AxiomTier, CanonicalForm, Dimension, GreenfieldState,
    NotPromoted, Principle, Promoted, Signal, SignalType, SourceRef,
    promoted_wins,
)

# Core pipeline
from .core.convergence import ConvergenceEngine, FoldReport
from .core.promotion import AxiomPromoter, PromotionBlocker
from .core.gate import GreenfieldGate, CheckOutcome, ValidationResult, evaluate, run_checks
from .core.pipeline import converge, merge, ConvergencePipeline
from .core.embedding import EmbeddingModule

# Stores
from .beliefs.store import PrincipleStore
from .beliefs.merge import StoreMerger, MergeConflict, MergeReport
from .memory.persistence import SnapshotCodec, SnapshotManager, read_snapshot, write_snapshot

# Classification / intake
from .llm.backends import ClassifierBackend, OllamaBackend, CachedBackend, create_backend
from .llm.gateway import ClassificationGateway, BatchItemResult
from .extraction.intake import SignalCandidate, SignalIntake, filter_candidates
from .extraction.categories import category_from_path

# Analysis
from .concepts.emergence import detect_emergent_axioms, emergence_stats, format_emergence_report
from .concepts.provenance import find_axiom, format_trace, trace_axiom

# Configuration
from .config.settings import get_config, AxiomforgeConfig
from .config.logging_config import setup_logging

# Errors
from .utils.errors import (
    AxiomforgeException, ClassificationError, PreconditionViolation,
    ValidationRejected, ConfigurationError, EmbeddingError, LLMError, StorageError,
)

__all__ = [
    # Version
    "__version__",

    # Data model
    "Axiom",
    "AxiomTier",
    "CanonicalForm",
    "Dimension",
    "GreenfieldState",
    "NotPromoted",
    "Principle",
    "Promoted",
    "Signal",
    "SignalType",
    "SourceRef",
    "promoted_wins",

    # Core pipeline
    "ConvergenceEngine",
    "FoldReport",
    "AxiomPromoter",
    "PromotionBlocker",
    "GreenfieldGate",
    "CheckOutcome",
    "ValidationResult",
    "evaluate",
    "run_checks",
    "converge",
    "merge",
    "ConvergencePipeline",
    "EmbeddingModule",

    # Stores
    "PrincipleStore",
    "StoreMerger",
    "MergeConflict",
    "MergeReport",
    "SnapshotCodec",
    "SnapshotManager",
    "read_snapshot",
    "write_snapshot",

    # Classification / intake
    "ClassifierBackend",
    "OllamaBackend",
    "CachedBackend",
    "create_backend",
    "ClassificationGateway",
    "BatchItemResult",
    "SignalCandidate",
    "SignalIntake",
    "filter_candidates",
    "category_from_path",

    # Analysis
    "detect_emergent_axioms",
    "emergence_stats",
    "format_emergence_report",
    "find_axiom",
    "trace_axiom",
    "format_trace",

    # Configuration
    "get_config",
    "AxiomforgeConfig",
    "setup_logging",

    # Errors
    "AxiomforgeException",
    "ClassificationError",
    "PreconditionViolation",
    "ValidationRejected",
    "ConfigurationError",
    "EmbeddingError",
    "LLMError",
    "StorageError",
]
