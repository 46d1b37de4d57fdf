from __future__ import annotations  # Shape-preserving JSON translator

import json
from textwrap import dedent
from typing import Any, Dict, Optional

from langchain_core.prompts import ChatPromptTemplate

from agents.toolkit import dump_json, invoke_chain
from config import LlmRoute
from llm_gateway import HttpClient, runnable as llm_runnable
from services.extraction import locate_json, strip_code_fences


TRANSLATOR_GUIDANCE = dedent(
    """
    You are a precise translator for interview questions, answers and coaching feedback.
    Keep the JSON shape and every key exactly the same; translate ONLY string values.
    Do not add or remove fields. Do not paraphrase or summarize.
    Preserve numbers, URLs, code and IDs as-is.
    For Mongolian ("mn"), use modern Cyrillic orthography.
    Output valid JSON only.
    """
).strip()


class TranslatorAgent:  # LLM-backed translator
    def __init__(self, route: LlmRoute, *, client: Optional[HttpClient] = None) -> None:
        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", "{instructions}"),
                (
                    "human",
                    (
                        'Translate all STRING values in this JSON to target language "{locale}". '
                        "Return JSON with the SAME SHAPE (same keys, same structure), with translated string values only. "
                        "Return ONLY the translated JSON object, nothing else.\n\n{document}"
                    ),
                ),
            ]
        )
        self._chain = self._prompt | llm_runnable(route, client=client)

    def translate(self, locale: str, payload: Dict[str, Any]) -> Any:
        raw = invoke_chain(
            self._chain,
            {
                "instructions": TRANSLATOR_GUIDANCE,
                "locale": locale,
                "document": dump_json({"lang": locale, "payload": payload}),
            },
            collaborator="translator",
        )
        cleaned = strip_code_fences(raw)
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError:
            value, _, _ = locate_json(cleaned)
            return value


__all__ = ["TRANSLATOR_GUIDANCE", "TranslatorAgent"]
