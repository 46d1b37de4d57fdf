from __future__ import annotations  # Coach agent producing per-answer feedback

from textwrap import dedent
from typing import Optional

from langchain_core.prompts import ChatPromptTemplate

from agents.toolkit import clamp_text, invoke_chain, output_contract
from agents.types import Turn
from config import LlmRoute, PayloadSchema
from llm_gateway import HttpClient, runnable as llm_runnable


FEEDBACK_GUIDANCE = dedent(  # Coaching rules applied to every answer
    """
    You are an interview coach reviewing one answer from a mock interview.
    Explain the intent of the question from the question text itself, never by guessing from the answer.
    Judge the answer on its substance: concrete role, actions, numbers and results.
    Be specific and constructive; point to what to keep and what to change next time.
    """
).strip()


class FeedbackGeneratorAgent:  # LLM-backed feedback generator
    def __init__(self, route: LlmRoute, schema: PayloadSchema, *, client: Optional[HttpClient] = None) -> None:
        self._contract = output_contract(schema)
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    "Question:\n{question}\n\nAnswer:\n{answer}\n\n{output_format}",
                ),
            ]
        )
        self._chain = self._prompt | llm_runnable(route, client=client)

    def generate(self, question: Turn, answer: str) -> str:
        return invoke_chain(
            self._chain,
            {
                "instructions": FEEDBACK_GUIDANCE,
                "question": clamp_text(question.text, limit=900) or "(unknown)",
                "answer": clamp_text(answer, limit=3000),
                "output_format": self._contract,
            },
            collaborator="feedback generator",
        )


__all__ = ["FEEDBACK_GUIDANCE", "FeedbackGeneratorAgent"]
