"""Session event logging and collaborator timing."""
from .logger import log_event
from .tracing import span

__all__ = ["log_event", "span"]
