"""Deployment descriptor: LLM routes, dimension catalog and payload schemas."""
from __future__ import annotations

from pathlib import Path
from typing import Annotated, Dict, List, Literal

from pydantic import BaseModel, Field, model_validator


ExtractionMode = Literal["strict", "lenient"]


class LlmRoute(BaseModel):
    """LLM endpoint configuration."""

    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: str | None = None
    response_format: str | None = None
    temperature: float | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False


class FieldSpec(BaseModel):  # One declared key of a generator payload
    key: str = Field(min_length=1)
    kind: Literal["text", "number"] = "text"
    min_length: int = Field(default=1, ge=1)
    max_length: int | None = Field(default=None, ge=1)
    ge: float | None = None
    le: float | None = None
    fallback: str | float | None = None

    @model_validator(mode="after")
    def _check_fallback(self) -> "FieldSpec":
        value = self.fallback
        if value is None:
            return self
        if self.kind == "text" and not isinstance(value, str):
            raise ValueError(f"fallback for text key '{self.key}' must be a string")
        if self.kind == "number":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"fallback for number key '{self.key}' must be numeric")
            if self.ge is not None and value < self.ge or self.le is not None and value > self.le:
                raise ValueError(f"fallback for number key '{self.key}' is out of range")
        return self

    def fallback_value(self) -> str | float:
        if self.fallback is not None:
            return self.fallback
        if self.kind == "text":
            return ""
        return self.ge if self.ge is not None else 0.0


class PayloadSchema(BaseModel):
    """Required keys a generator reply must carry, with their kinds and fallbacks."""

    required: List[FieldSpec] = Field(min_length=1)
    plain_text_key: str | None = None

    @model_validator(mode="after")
    def _check_keys(self) -> "PayloadSchema":
        names = [spec.key for spec in self.required]
        if len(set(names)) != len(names):
            raise ValueError("payload schema keys must be unique")
        if self.plain_text_key is not None:
            spec = self.spec_for(self.plain_text_key)
            if spec is None or spec.kind != "text":
                raise ValueError(f"plain_text_key '{self.plain_text_key}' must name a text key")
        return self

    def key_names(self) -> List[str]:
        return [spec.key for spec in self.required]

    def spec_for(self, key: str) -> FieldSpec | None:
        for spec in self.required:
            if spec.key == key:
                return spec
        return None


class DimensionSpec(BaseModel):  # Static catalog entry
    id: int = Field(ge=1)
    name: str = Field(min_length=1)


def _question_schema() -> PayloadSchema:
    return PayloadSchema(
        required=[
            FieldSpec(
                key="question",
                min_length=4,
                max_length=200,
                fallback="Tell me about the achievement you are proudest of: your role, what you did and the result.",
            )
        ],
        plain_text_key="question",
    )


def _summary_schema() -> PayloadSchema:
    return PayloadSchema(
        required=[FieldSpec(key="summary", fallback="The summary could not be generated.")],
        plain_text_key="summary",
    )


class InterviewDeployment(BaseModel):
    """Fixed per-deployment interview shape."""

    name: str = "default"
    opening_question: str = Field(min_length=1)
    closing_message: str = Field(min_length=1)
    max_turns: int = Field(ge=1)
    dimensions: List[DimensionSpec] = Field(min_length=1)
    weights: Dict[int, Annotated[float, Field(ge=0.0)]] = Field(default_factory=dict)
    max_score: float = Field(default=5.0, gt=0.0)
    feedback: PayloadSchema
    question: PayloadSchema = Field(default_factory=_question_schema)
    summary: PayloadSchema = Field(default_factory=_summary_schema)
    feedback_mode: ExtractionMode = "lenient"
    question_mode: ExtractionMode = "lenient"
    summary_mode: ExtractionMode = "lenient"
    score_key: str | None = None
    comment_key: str | None = None
    question_key: str = "question"
    summary_key: str = "summary"

    @model_validator(mode="after")
    def _check_consistency(self) -> "InterviewDeployment":
        ids = [dim.id for dim in self.dimensions]
        if len(set(ids)) != len(ids):
            raise ValueError("dimension ids must be unique")
        unknown = sorted(set(self.weights) - set(ids))
        if unknown:
            raise ValueError(f"weights reference unknown dimensions: {unknown}")
        if self.score_key is not None:
            spec = self.feedback.spec_for(self.score_key)
            if spec is None or spec.kind != "number":
                raise ValueError(f"score_key '{self.score_key}' must name a number key of the feedback schema")
            if self.feedback_mode != "strict":
                raise ValueError("scored deployments require feedback_mode 'strict'")
        if self.comment_key is not None:
            spec = self.feedback.spec_for(self.comment_key)
            if spec is None or spec.kind != "text":
                raise ValueError(f"comment_key '{self.comment_key}' must name a text key of the feedback schema")
        if self.question.spec_for(self.question_key) is None:
            raise ValueError(f"question schema lacks '{self.question_key}'")
        if self.summary.spec_for(self.summary_key) is None:
            raise ValueError(f"summary schema lacks '{self.summary_key}'")
        return self

    @property
    def has_scores(self) -> bool:
        return self.score_key is not None


class AppConfig(BaseModel):
    """Application configuration root."""

    llm_routes: Dict[str, LlmRoute] = Field(default_factory=dict)
    registry: Dict[str, str] = Field(default_factory=dict)
    interview: InterviewDeployment


def load_config(path: Path) -> AppConfig:
    """Load configuration from disk."""

    data = Path(path).read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def resolve_route(cfg: AppConfig, target: str) -> LlmRoute:
    """Return the LLM route the registry assigns to ``target``."""

    if target not in cfg.registry:
        raise KeyError(f"Registry entry missing for '{target}'")
    route_id = cfg.registry[target]
    if route_id not in cfg.llm_routes:
        raise KeyError(f"Route '{route_id}' missing for '{target}'")
    return cfg.llm_routes[route_id]


def preset_path(name: str) -> Path:
    """Location of a bundled deployment preset such as ``grit`` or ``coach``."""

    return Path(__file__).resolve().parent / "deployments" / f"{name}.json"
