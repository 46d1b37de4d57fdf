import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import InterviewDeployment
from config.registry import COLLABORATOR_KEYS, unbind_model


class FakeQuestionGenerator:
    """Question collaborator returning ``reply(history, dimension)`` and recording calls."""

    def __init__(self, reply: Optional[Callable[..., Any]] = None) -> None:
        self.reply = reply or (lambda history, dim: f'{{"question": "Tell me more about {dim.name}?"}}')
        self.calls: List[Dict[str, Any]] = []

    def generate(self, history, dimension_hint):
        self.calls.append({"history": list(history), "dimension": dimension_hint})
        result = self.reply(history, dimension_hint)
        if isinstance(result, Exception):
            raise result
        return result


class FakeFeedbackGenerator:
    def __init__(self, reply: Optional[Callable[..., Any]] = None) -> None:
        self.reply = reply or (lambda question, answer: '{"score": 4, "comment": "solid"}')
        self.calls: List[Dict[str, Any]] = []

    def generate(self, question, answer):
        self.calls.append({"question": question, "answer": answer})
        result = self.reply(question, answer)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture(autouse=True)
def clean_registry():
    for key in COLLABORATOR_KEYS:
        unbind_model(key)
    yield
    for key in COLLABORATOR_KEYS:
        unbind_model(key)


@pytest.fixture
def make_deployment():
    def _make(k: int = 3, max_turns: Optional[int] = None, **overrides: Any) -> InterviewDeployment:
        data: Dict[str, Any] = {
            "name": "test",
            "opening_question": "Please introduce yourself.",
            "closing_message": "That concludes the interview.",
            "max_turns": max_turns if max_turns is not None else k,
            "dimensions": [{"id": i, "name": f"Dimension {i}"} for i in range(1, k + 1)],
            "weights": {},
            "feedback": {
                "required": [
                    {"key": "score", "kind": "number", "ge": 0, "le": 5},
                    {"key": "comment", "kind": "text"},
                ]
            },
            "feedback_mode": "strict",
            "question_mode": "lenient",
            "score_key": "score",
            "comment_key": "comment",
        }
        data.update(overrides)
        return InterviewDeployment.model_validate(data)

    return _make


@pytest.fixture
def question_gen():
    return FakeQuestionGenerator()


@pytest.fixture
def feedback_gen():
    return FakeFeedbackGenerator()


@pytest.fixture
def fakes():
    return SimpleNamespace(question=FakeQuestionGenerator, feedback=FakeFeedbackGenerator)
