from __future__ import annotations  # Shared LangChain helpers for interview collaborators

import json
from typing import Any, Dict, List, Mapping, Sequence

from agents.errors import CollaboratorTimeout, ServiceError
from agents.types import Turn
from config import PayloadSchema
from llm_gateway import LlmGatewayError, LlmTimeoutError


def transcript_lines(history: Sequence[Turn], window: int = 6) -> str:  # Render the last turns as Q:/A: lines
    recent = list(history)[-max(1, window):]
    lines = [
        f"{'Q' if turn.speaker == 'interviewer' else 'A'}: {clamp_text(turn.text)}"
        for turn in recent
        if turn.text.strip()
    ]
    return "\n".join(lines) if lines else "(first exchange, no history)"


def clamp_text(text: str, limit: int = 600) -> str:  # Compact whitespace and clip length
    compact = " ".join(text.split())
    if len(compact) <= limit:
        return compact
    return compact[: limit - 1].rstrip() + "…"


def output_contract(schema: PayloadSchema) -> str:  # Describe required keys and an example object
    lines: List[str] = []
    example: Dict[str, Any] = {}
    for spec in schema.required:
        if spec.kind == "number":
            bounds = []
            if spec.ge is not None:
                bounds.append(f">= {spec.ge:g}")
            if spec.le is not None:
                bounds.append(f"<= {spec.le:g}")
            suffix = f" ({', '.join(bounds)})" if bounds else ""
            lines.append(f"- {spec.key}: number{suffix}")
            example[spec.key] = spec.le if spec.le is not None else 0
        else:
            bound = f" (at most {spec.max_length} characters)" if spec.max_length else ""
            lines.append(f"- {spec.key}: non-empty text{bound}")
            example[spec.key] = "..."
    return (
        "Reply with a single JSON object and nothing else.\n"
        + "\n".join(lines)
        + "\nExample: "
        + json.dumps(example, ensure_ascii=False)
    )


def dump_json(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2, default=_jsonable)


def _jsonable(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def invoke_chain(chain: Any, inputs: Dict[str, Any], *, collaborator: str) -> str:
    """Invoke a prompt chain, mapping gateway failures onto the collaborator taxonomy."""

    try:
        return chain.invoke(inputs)
    except LlmTimeoutError as exc:
        raise CollaboratorTimeout(f"{collaborator} timed out") from exc
    except LlmGatewayError as exc:
        raise ServiceError(f"{collaborator} failed: {exc}") from exc


__all__ = [
    "clamp_text",
    "dump_json",
    "invoke_chain",
    "output_contract",
    "transcript_lines",
]
