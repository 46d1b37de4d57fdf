from __future__ import annotations  # Closing summary writer

from textwrap import dedent
from typing import Any, Optional, Sequence

from langchain_core.prompts import ChatPromptTemplate

from agents.toolkit import dump_json, invoke_chain
from agents.types import EvaluationResult, QAPair
from config import LlmRoute
from llm_gateway import HttpClient, runnable as llm_runnable


SUMMARY_GUIDANCE = dedent(
    """
    You write the closing assessment of a completed mock interview.
    Base every statement on the question/answer pairs and per-dimension evaluations you are given.
    Mention the clearest strengths, the most important gaps and one concrete next step.
    The aggregate score is a risk-style percentage where lower is better; interpret it, do not recompute it.
    Reply with JSON only: {{"summary": "..."}}
    """
).strip()


class SummaryGeneratorAgent:  # LLM-backed summary generator
    def __init__(self, route: LlmRoute, *, client: Optional[HttpClient] = None) -> None:
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", SUMMARY_GUIDANCE),
                ("human", "{document}"),
            ]
        )
        self._chain = self._prompt | llm_runnable(route, client=client)

    def generate(
        self,
        qa_pairs: Sequence[QAPair],
        evaluations: Sequence[EvaluationResult],
        aggregate_score: Optional[int],
    ) -> Any:
        document = dump_json(
            {
                "qaPairs": [pair.model_dump() for pair in qa_pairs],
                "evaluations": [item.model_dump() for item in evaluations],
                "aggregateScore": aggregate_score,
            }
        )
        return invoke_chain(self._chain, {"document": document}, collaborator="summary generator")


__all__ = ["SUMMARY_GUIDANCE", "SummaryGeneratorAgent"]
