from __future__ import annotations  # Interviewer agent asking the next question

from textwrap import dedent
from typing import Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate

from agents.toolkit import clamp_text, invoke_chain, transcript_lines
from agents.types import Dimension, Turn
from config import LlmRoute
from llm_gateway import HttpClient, runnable as llm_runnable


QUESTION_GUIDANCE = dedent(  # Interviewer guidance with hidden dimension steering
    """
    You are the interviewer in a structured mock job interview.
    Briefly acknowledge the candidate's latest answer with one empathetic sentence, then ask exactly one new question.
    Steer the question toward the hidden evaluation focus you are given.
    Never reveal the focus: do not mention its name, its number or that answers are being scored.
    Keep the reply natural, conversational and in the language of the interview.
    """
).strip()


class QuestionGeneratorAgent:  # LLM-backed question generator
    def __init__(
        self,
        route: LlmRoute,
        *,
        question_key: str = "question",
        max_chars: int = 200,
        window: int = 6,
        client: Optional[HttpClient] = None,
    ) -> None:
        self._question_key = question_key
        self._max_chars = max_chars
        self._window = max(1, window)
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        "Recent interview log:\n{history}\n\n"
                        "Latest answer:\n{answer}\n\n"
                        "Hidden evaluation focus: {focus}\n\n"
                        "Ask one question of at most {max_chars} characters.\n"
                        "{output_format}"
                    ),
                ),
            ]
        )
        self._chain = self._prompt | llm_runnable(route, client=client)

    def generate(self, history: Sequence[Turn], dimension_hint: Optional[Dimension]) -> str:
        latest = next((turn.text for turn in reversed(history) if turn.speaker == "candidate"), "")
        focus = f"{dimension_hint.id}: {dimension_hint.name}" if dimension_hint else "(none, ask a general follow-up)"
        return invoke_chain(
            self._chain,
            {
                "instructions": QUESTION_GUIDANCE,
                "history": transcript_lines(history, self._window),
                "answer": clamp_text(latest, limit=900) or "(no answer yet)",
                "focus": focus,
                "max_chars": self._max_chars,
                "output_format": f'Reply with JSON only: {{"{self._question_key}": "..."}}',
            },
            collaborator="question generator",
        )


__all__ = ["QUESTION_GUIDANCE", "QuestionGeneratorAgent"]
