"""Shared fixtures: a scripted classifier backend and signal builders."""

import threading

import numpy as np
import pytest

from Axiomforge.core.types import Dimension, Signal, SourceRef
from Axiomforge.llm.backends import ClassifierBackend
from Axiomforge.llm.gateway import ClassificationGateway
from Axiomforge.utils.errors import LLMError


class ScriptedBackend(ClassifierBackend):
    """Answers from a fixed queue, or from a function of the prompt."""

    model_id = "scripted"

    def __init__(self, answers=None, responder=None):
        self.answers = list(answers or [])
        self.responder = responder
        self.prompts = []
        self._lock = threading.Lock()

    def generate(self, prompt):
        with self._lock:
            self.prompts.append(prompt)
            if self.responder is not None:
                return self.responder(prompt)
            if not self.answers:
                raise LLMError("script exhausted")
            answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def is_available(self):
        return True


def canonical_responder(prompt):
    """Pick 誠 / 💎 for canonical prompts, honesty/value for intake prompts."""
    if "one anchor" in prompt:
        return "誠"
    if "one glyph" in prompt:
        return "💎"
    if "- honesty-framework:" in prompt:
        return "honesty-framework"
    if "- reinforcement:" in prompt:
        return "value"
    return "???"


@pytest.fixture
def scripted():
    return ScriptedBackend


@pytest.fixture
def canonical_gateway():
    return ClassificationGateway(ScriptedBackend(responder=canonical_responder), max_retries=0)


@pytest.fixture
def make_signal():
    def build(sid, vec, category="diary", order=0, dimension=Dimension.HONESTY_FRAMEWORK,
              confidence=0.9, text=None, file=None, line=None):
        return Signal(
            id=sid,
            text=text or f"Be honest about limits ({sid})",
            source=SourceRef(file=file or f"memory/{category}/{sid}.md", category=category, line=line),
            embedding=None if vec is None else tuple(float(v) for v in np.asarray(vec, dtype=float)),
            confidence=confidence,
            order=order,
            dimension=dimension,
        )
    return build
