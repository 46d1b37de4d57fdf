"""Configuration package for interview sessions."""
from .deployment import (
    AppConfig,
    DimensionSpec,
    ExtractionMode,
    FieldSpec,
    InterviewDeployment,
    LlmRoute,
    PayloadSchema,
    load_config,
    preset_path,
    resolve_route,
)
from .registry import (
    COLLABORATOR_KEYS,
    FEEDBACK_KEY,
    QUESTION_KEY,
    SUMMARY_KEY,
    TRANSLATOR_KEY,
    bind_model,
    get_model,
    has_model,
    unbind_model,
)
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "DimensionSpec",
    "ExtractionMode",
    "FieldSpec",
    "InterviewDeployment",
    "LlmRoute",
    "PayloadSchema",
    "load_config",
    "preset_path",
    "resolve_route",
    "COLLABORATOR_KEYS",
    "FEEDBACK_KEY",
    "QUESTION_KEY",
    "SUMMARY_KEY",
    "TRANSLATOR_KEY",
    "bind_model",
    "get_model",
    "has_model",
    "unbind_model",
    "Settings",
    "settings",
]
