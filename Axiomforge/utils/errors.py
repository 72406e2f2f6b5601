"""Exception hierarchy and retry logic for the convergence pipeline."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Sequence, Tuple, Type, TypeVar

logger = logging.getLogger("AXIOMFORGE.Errors")

T = TypeVar("T")


class AxiomforgeException(Exception):
    """Base exception for Axiomforge."""

    def __init__(self, message: str, context: Optional[dict] = None):
        """Initialize exception with context.

        Args:
            message: Error message
            context: Dictionary with additional context (component, details, etc.)
        """
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        """String representation with context."""
        result = f"[{self.__class__.__name__}] {self.message}"
        if self.context:
            result += f" (context: {self.context})"
        return result


class ClassificationError(AxiomforgeException):
    """Raised when a classifier answer is not one of the allowed labels.

    The offending raw response is always kept so the failure can be audited.
    No caller is allowed to substitute a default label for it.
    """

    def __init__(
        self,
        message: str,
        raw_response: Optional[str] = None,
        vocabulary: Optional[Sequence[str]] = None,
        context: Optional[dict] = None,
    ):
        self.raw_response = raw_response
        self.vocabulary = tuple(vocabulary) if vocabulary is not None else None
        ctx = dict(context or {})
        ctx.setdefault("raw_response", raw_response)
        super().__init__(message, context=ctx)


class PreconditionViolation(AxiomforgeException):
    """Raised when a signal reaches convergence without a usable embedding."""

    def __init__(
        self,
        message: str,
        signal_id: Optional[str] = None,
        source: Any = None,
        context: Optional[dict] = None,
    ):
        self.signal_id = signal_id
        self.source = source
        ctx = dict(context or {})
        if signal_id is not None:
            ctx.setdefault("signal_id", signal_id)
        if source is not None:
            ctx.setdefault("source", str(source))
        super().__init__(message, context=ctx)


class ValidationRejected(AxiomforgeException):
    """Raised on demand when an enforced validation rejects a run."""

    def __init__(self, reason: str, context: Optional[dict] = None):
        self.reason = reason
        super().__init__(f"Validation rejected: {reason}", context=context)


class ConfigurationError(AxiomforgeException):
    """Raised when configuration is invalid."""
    pass


class EmbeddingError(AxiomforgeException):
    """Raised when embedding operations fail."""
    pass


class LLMError(AxiomforgeException):
    """Raised when the classifier backend cannot be reached."""
    pass


class StorageError(AxiomforgeException):
    """Raised when snapshot storage operations fail."""
    pass


class RetryConfig:
    """Configuration for retry logic."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_backoff_s: float = 0.5,
        backoff_factor: float = 1.5,
        max_backoff_s: float = 30.0,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts
            initial_backoff_s: Initial backoff delay in seconds
            backoff_factor: Exponential backoff multiplier
            max_backoff_s: Maximum backoff delay
            retry_on: Exception types that trigger a retry; anything else propagates
        """
        self.max_attempts = max(1, max_attempts)
        self.initial_backoff_s = max(0.0, initial_backoff_s)
        self.backoff_factor = max(1.0, backoff_factor)
        self.max_backoff_s = max(self.initial_backoff_s, max_backoff_s)
        self.retry_on = retry_on


def retry_with_backoff(
    func: Callable[..., T],
    *args,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    **kwargs,
) -> T:
    """Execute function with exponential backoff retry.

    Args:
        func: Function to execute
        *args: Positional arguments for func
        config: RetryConfig instance
        on_retry: Callback on retry (attempt_num, exception)
        **kwargs: Keyword arguments for func

    Returns:
        Result of func execution

    Raises:
        The last exception encountered if all retries fail
    """
    if config is None:
        config = RetryConfig()

    last_exception: Optional[Exception] = None
    backoff_s = config.initial_backoff_s

    for attempt in range(1, config.max_attempts + 1):
        try:
            return func(*args, **kwargs)
        except config.retry_on as e:
            last_exception = e

            if attempt < config.max_attempts:
                if on_retry:
                    on_retry(attempt, e)

                logger.warning(
                    f"Attempt {attempt} failed: {e}. "
                    f"Retrying in {backoff_s:.1f}s..."
                )
                time.sleep(backoff_s)
                backoff_s = min(backoff_s * config.backoff_factor, config.max_backoff_s)
            else:
                logger.error(f"All {config.max_attempts} attempts failed. Last error: {e}")

    assert last_exception is not None
    raise last_exception


__all__ = [
    "AxiomforgeException",
    "ClassificationError",
    "PreconditionViolation",
    "ValidationRejected",
    "ConfigurationError",
    "EmbeddingError",
    "LLMError",
    "StorageError",
    "RetryConfig",
    "retry_with_backoff",
]
