"""In-memory collaborator registry for interview sessions."""
from typing import Any, Dict

_REGISTRY: Dict[str, Any] = {}


def bind_model(key: str, impl: Any) -> None:
    """Bind a collaborator implementation to a registry key."""
    _REGISTRY[key] = impl


def unbind_model(key: str) -> None:
    _REGISTRY.pop(key, None)


def has_model(key: str) -> bool:
    return key in _REGISTRY


def get_model(key: str) -> Any:
    """Retrieve a collaborator from the registry.

    Raises:
        KeyError: If nothing has been bound for ``key``.
    """

    if key not in _REGISTRY:
        raise KeyError(f"Model not bound in registry: {key}")
    return _REGISTRY[key]


QUESTION_KEY = "collaborators.question_generator"
FEEDBACK_KEY = "collaborators.feedback_generator"
TRANSLATOR_KEY = "collaborators.translator"
SUMMARY_KEY = "collaborators.summary_generator"

COLLABORATOR_KEYS = (QUESTION_KEY, FEEDBACK_KEY, TRANSLATOR_KEY, SUMMARY_KEY)
