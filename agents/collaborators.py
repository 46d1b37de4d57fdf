"""Collaborator interfaces consumed by the session controller."""
from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence

from agents.types import Dimension, EvaluationResult, QAPair, Turn


class QuestionGenerator(Protocol):
    def generate(self, history: Sequence[Turn], dimension_hint: Optional[Dimension]) -> str: ...


class FeedbackGenerator(Protocol):
    def generate(self, question: Turn, answer: str) -> str: ...


class Translator(Protocol):
    def translate(self, locale: str, payload: Dict[str, Any]) -> Any: ...


class SummaryGenerator(Protocol):
    def generate(
        self,
        qa_pairs: Sequence[QAPair],
        evaluations: Sequence[EvaluationResult],
        aggregate_score: Optional[int],
    ) -> Any: ...


__all__ = ["QuestionGenerator", "FeedbackGenerator", "Translator", "SummaryGenerator"]
