"""Classifier backends.

A backend turns a prompt into raw text. It knows nothing about vocabularies;
the ClassificationGateway decides whether an answer is acceptable. There is
deliberately no heuristic backend: a missing classifier is an error, never a
guessed label.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import requests

from ..utils.errors import ConfigurationError, LLMError, RetryConfig, retry_with_backoff

logger = logging.getLogger("AXIOMFORGE.LLM")


class ClassifierBackend(ABC):
    """Abstract base for classifier backends."""

    model_id: str = "unknown"

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Return the raw model answer for ``prompt``.

        Raises:
            LLMError: when the backend cannot produce an answer.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend can be reached."""


class OllamaBackend(ClassifierBackend):
    """Use a local Ollama server."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model_name: str = "llama3.2:3b",
        timeout_s: float = 30.0,
        max_retries: int = 3,
        retry_delay_s: float = 1.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model_name = model_name
        self.model_id = f"ollama:{model_name}"
        self.timeout_s = timeout_s
        self.retry = RetryConfig(
            max_attempts=max_retries,
            initial_backoff_s=retry_delay_s,
            retry_on=(requests.ConnectionError, requests.Timeout),
        )
        self.session = session or requests.Session()

    def is_available(self) -> bool:
        """Check Ollama availability."""
        try:
            self.session.get(f"{self.base_url}/api/tags", timeout=2)
            return True
        except requests.RequestException:
            return False

    def _post(self, prompt: str) -> str:
        response = self.session.post(
            f"{self.base_url}/api/generate",
            json={
                "model": self.model_name,
                "prompt": prompt,
                "stream": False,
                "options": {"temperature": 0.0},
            },
            timeout=self.timeout_s,
        )
        response.raise_for_status()
        return str(response.json().get("response", ""))

    def generate(self, prompt: str) -> str:
        """Generate using Ollama."""
        try:
            return retry_with_backoff(self._post, prompt, config=self.retry)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Ollama generation failed: {e}")
            raise LLMError(
                f"Ollama request failed: {e}",
                context={"base_url": self.base_url, "model": self.model_name},
            ) from e


class CachedBackend(ClassifierBackend):
    """Cache backend answers to reduce model calls."""

    def __init__(self, backend: ClassifierBackend, ttl_seconds: float = 3600, max_cache_size: int = 500):
        self.backend = backend
        self.model_id = backend.model_id
        self.cache: Dict[str, Tuple[str, float]] = {}
        self.ttl = ttl_seconds
        self.max_cache_size = max_cache_size
        self._lock = threading.Lock()

    def _cleanup_expired_cache(self) -> None:
        """Remove expired entries, then the oldest ones beyond the size cap."""
        now = time.time()
        expired_keys = [k for k, (_, ts) in self.cache.items() if now - ts >= self.ttl]
        for k in expired_keys:
            del self.cache[k]

        if len(self.cache) > self.max_cache_size:
            sorted_items = sorted(self.cache.items(), key=lambda x: x[1][1])
            remove_count = len(self.cache) - self.max_cache_size
            for k, _ in sorted_items[:remove_count]:
                del self.cache[k]

    def _cache_key(self, prompt: str) -> str:
        return hashlib.sha256(f"{self.model_id}\n{prompt}".encode("utf-8")).hexdigest()

    def generate(self, prompt: str) -> str:
        """Generate with caching."""
        key = self._cache_key(prompt)

        with self._lock:
            hit = self.cache.get(key)
            if hit is not None:
                response, timestamp = hit
                if time.time() - timestamp < self.ttl:
                    logger.debug(f"Cache hit for prompt (key={key[:8]}...)")
                    return response
                del self.cache[key]

        response = self.backend.generate(prompt)

        with self._lock:
            self.cache[key] = (response, time.time())
            if len(self.cache) > self.max_cache_size:
                self._cleanup_expired_cache()
        return response

    def is_available(self) -> bool:
        return self.backend.is_available()


def create_backend(config: Any) -> ClassifierBackend:
    """Create the classifier backend described by ``config.llm``."""
    if config.llm.provider != "ollama":
        raise ConfigurationError(
            f"Unsupported classifier provider: {config.llm.provider}",
            context={"supported": ["ollama"]},
        )
    backend: ClassifierBackend = OllamaBackend(
        base_url=config.llm.base_url,
        model_name=config.llm.model_name,
        timeout_s=config.llm.timeout_s,
        max_retries=config.llm.max_retries,
        retry_delay_s=config.llm.retry_delay_s,
    )
    if config.llm.cache_enabled:
        backend = CachedBackend(backend, config.llm.cache_ttl_s)
    return backend


__all__ = [
    "ClassifierBackend",
    "OllamaBackend",
    "CachedBackend",
    "create_backend",
]
