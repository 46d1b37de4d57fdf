"""Error taxonomy shared by the session controller and its collaborators."""
from __future__ import annotations

from typing import Sequence


class InterviewError(RuntimeError):  # Base interview error
    pass


class AnswerValidationError(InterviewError, ValueError):  # Rejected caller input
    pass


class SessionNotStarted(InterviewError):
    pass


class SessionComplete(InterviewError):  # Operation on a terminal session
    pass


class SessionBusy(InterviewError):  # Another submit cycle holds the slot
    pass


class ExtractionError(InterviewError):
    """No parseable JSON value could be located in generator output."""

    def __init__(self, message: str, *, raw_text: str = "") -> None:
        super().__init__(message)
        self.raw_text = raw_text


class SchemaError(ExtractionError):
    """Generator output parsed but required keys were missing or invalid."""

    def __init__(self, message: str, *, keys: Sequence[str] = (), raw_text: str = "") -> None:
        super().__init__(message, raw_text=raw_text)
        self.keys = list(keys)


class CollaboratorError(InterviewError):  # External collaborator failure
    pass


class ServiceError(CollaboratorError):
    pass


class CollaboratorTimeout(CollaboratorError, TimeoutError):  # Wait policy exhausted
    pass


__all__ = [
    "InterviewError",
    "AnswerValidationError",
    "SessionNotStarted",
    "SessionComplete",
    "SessionBusy",
    "ExtractionError",
    "SchemaError",
    "CollaboratorError",
    "ServiceError",
    "CollaboratorTimeout",
]
