"""Turn free-text generator output into validated payloads.

Generators are asked for JSON but routinely wrap it in markdown fences, add
prose before or after it, or drop keys. ``ResponseExtractor`` runs every reply
through the same pipeline:

1. strip a wrapping code fence, labeled or unlabeled;
2. locate the first parseable JSON object/array. Each ``{``/``[`` is tried in
   order with ``JSONDecoder.raw_decode``, which consumes exactly one balanced
   value and honours string escapes, so nested objects and braces inside
   strings do not cut the payload short the way a first-match regex does;
3. validate every declared key with a pydantic ``TypeAdapter`` (non-empty
   text within length bounds, or a finite number within range). Extra keys
   are dropped.

``strict`` mode raises ``ExtractionError``/``SchemaError`` on any failure and is
used where scores or coverage depend on the value. ``lenient`` mode never
raises: missing or invalid keys take the schema's fallback values.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Annotated, Any, Dict, Optional, Tuple

from pydantic import Field, StringConstraints, TypeAdapter, ValidationError

from agents.errors import ExtractionError, SchemaError
from config.deployment import ExtractionMode, FieldSpec, PayloadSchema


logger = logging.getLogger(__name__)

_FENCE_LABEL_RE = re.compile(r"[ \t]*[A-Za-z0-9_+\-]*[ \t]*")
_OPENERS = "{["
_DECODER = json.JSONDecoder()


def strip_code_fences(text: str) -> str:  # Remove a wrapping fence pair; inner text is left untouched
    cleaned = text.strip()
    if cleaned.startswith("```"):
        first, newline, rest = cleaned[3:].partition("\n")
        cleaned = rest if newline and _FENCE_LABEL_RE.fullmatch(first) else cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def locate_json(text: str) -> Tuple[Any, int, int]:
    """Return ``(value, start, end)`` for the first parseable JSON object or array.

    Raises:
        ExtractionError: If no delimited substring decodes.
    """

    for index, char in enumerate(text):
        if char not in _OPENERS:
            continue
        try:
            value, end = _DECODER.raw_decode(text, index)
        except (json.JSONDecodeError, RecursionError):
            continue
        return value, index, end
    raise ExtractionError("no JSON object or array found in generator output", raw_text=text)


def _annotation(spec: FieldSpec) -> Any:  # Map a field spec onto a pydantic type
    if spec.kind == "text":
        return Annotated[
            str,
            StringConstraints(strip_whitespace=True, min_length=spec.min_length, max_length=spec.max_length),
            Field(strict=True),
        ]
    return Annotated[float, Field(strict=True, ge=spec.ge, le=spec.le, allow_inf_nan=False)]


class ResponseExtractor:
    """Validate generator replies against a declared payload schema."""

    def __init__(self, schema: PayloadSchema, *, mode: ExtractionMode = "lenient", name: str = "payload") -> None:
        self._schema = schema
        self._mode = mode
        self._name = name
        self._adapters: Dict[str, TypeAdapter] = {
            spec.key: TypeAdapter(_annotation(spec)) for spec in schema.required
        }

    @property
    def schema(self) -> PayloadSchema:
        return self._schema

    @property
    def mode(self) -> ExtractionMode:
        return self._mode

    def extract(self, raw_text: Any, mode: Optional[ExtractionMode] = None) -> Dict[str, Any]:
        """Return the validated payload, or fallbacks in lenient mode."""

        active = mode or self._mode
        if active == "strict":
            return self._extract_strict(raw_text)
        return self._extract_lenient(raw_text)

    def _extract_strict(self, raw_text: Any) -> Dict[str, Any]:
        if not isinstance(raw_text, str):
            raise ExtractionError(f"{self._name} reply was not text")
        text = strip_code_fences(raw_text)
        value, _, _ = locate_json(text)
        if not isinstance(value, dict):
            raise SchemaError(
                f"{self._name} reply is not a JSON object",
                keys=self._schema.key_names(),
                raw_text=text,
            )
        payload, problems = self._validate(value)
        if problems:
            detail = "; ".join(f"{key}: {reason}" for key, reason in problems.items())
            raise SchemaError(f"{self._name} reply failed validation ({detail})", keys=list(problems), raw_text=text)
        return payload

    def _extract_lenient(self, raw_text: Any) -> Dict[str, Any]:
        text = strip_code_fences(raw_text) if isinstance(raw_text, str) else ""
        try:
            value, _, _ = locate_json(text)
        except ExtractionError:
            value = None
        if not isinstance(value, dict):
            value = self._plain_text_payload(text)
        payload, problems = self._validate(value)
        if problems:
            logger.warning("%s extraction fell back for keys=%s", self._name, sorted(problems))
            for key in problems:
                spec = self._schema.spec_for(key)
                payload[key] = spec.fallback_value() if spec is not None else None
        return {key: payload[key] for key in self._schema.key_names()}

    def _plain_text_payload(self, text: str) -> Dict[str, Any]:  # Use bare prose as the designated key
        key = self._schema.plain_text_key
        cleaned = text.strip()
        if key is None or not cleaned:
            return {}
        return {key: cleaned}

    def _validate(self, value: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, str]]:
        payload: Dict[str, Any] = {}
        problems: Dict[str, str] = {}
        for spec in self._schema.required:
            if spec.key not in value:
                problems[spec.key] = "missing"
                continue
            try:
                payload[spec.key] = self._adapters[spec.key].validate_python(value[spec.key])
            except ValidationError as exc:
                errors = exc.errors()
                problems[spec.key] = errors[0]["msg"] if errors else "invalid"
        return payload, problems


def extract(raw_text: Any, schema: PayloadSchema, mode: ExtractionMode = "lenient") -> Dict[str, Any]:
    """One-shot helper around ``ResponseExtractor``."""

    return ResponseExtractor(schema, mode=mode).extract(raw_text)


__all__ = ["ResponseExtractor", "extract", "locate_json", "strip_code_fences"]
