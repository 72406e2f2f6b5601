"""Logging setup with structured output support.

Provides JSON logging, multiple handlers, and per-component configuration.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from typing import Any, Dict, Optional

from .settings import LoggingConfig


ROOT_LOGGER = "AXIOMFORGE"
# Ids passed through ``extra=`` by the convergence, promotion and merge loggers.
CONTEXT_FIELDS = ("signal_id", "principle_id", "axiom_id")


def component_of(name: str) -> str:
    """``AXIOMFORGE.Convergence`` -> ``Convergence``; foreign loggers keep their name."""
    prefix = ROOT_LOGGER + "."
    return name[len(prefix):] if name.startswith(prefix) else name


def context_of(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: getattr(record, k) for k in CONTEXT_FIELDS if getattr(record, k, None) is not None}


class JSONFormatter(logging.Formatter):
    """Formats logs as JSON for easier parsing."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_dict = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "component": component_of(record.name),
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_dict.update(context_of(record))

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, ensure_ascii=False)


class StandardFormatter(logging.Formatter):
    """Standard text formatter with color support."""

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[41m",   # Red background
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with optional colors."""
        if sys.stdout.isatty():
            color = self.COLORS.get(record.levelname, "")
            reset = self.RESET
        else:
            color = reset = ""

        timestamp = self.formatTime(record)
        level = f"{color}{record.levelname:8s}{reset}"
        name = f"[{component_of(record.name)}]"
        msg = record.getMessage()

        result = f"{timestamp} {level} {name} {msg}"
        context = context_of(record)
        if context:
            result += " (" + ", ".join(f"{k}={v}" for k, v in context.items()) + ")"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "standard",
    log_file: Optional[str] = None,
    component_levels: Optional[dict] = None,
) -> None:
    """Set up logging for the whole pipeline.

    Args:
        log_level: Root logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format style ("standard" or "json")
        log_file: Optional path to log file
        component_levels: Dict mapping component names to levels, e.g.
                         {"AXIOMFORGE.Convergence": "DEBUG"}
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    if log_format.lower() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = StandardFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10_000_000,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            root_logger.warning(f"Failed to set up file logging: {e}")

    if component_levels:
        for component, component_level in component_levels.items():
            logging.getLogger(component).setLevel(
                getattr(logging, component_level.upper(), logging.INFO)
            )

    logging.getLogger(ROOT_LOGGER).info(f"Logging initialized: level={log_level}, format={log_format}")


def setup_logging_from_config(config: LoggingConfig) -> None:
    """Apply a LoggingConfig section."""
    setup_logging(log_level=config.level, log_format=config.format, log_file=config.file_path)


__all__ = [
    "setup_logging",
    "setup_logging_from_config",
    "component_of",
    "JSONFormatter",
    "StandardFormatter",
]
