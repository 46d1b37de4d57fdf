from __future__ import annotations  # Re-export interview_session public API

from .interview_session import (
    EXPORT_VERSION,
    SessionController,
    SessionExport,
    build_controller,
    build_controller_from_path,
)

__all__ = ["EXPORT_VERSION", "SessionController", "SessionExport", "build_controller", "build_controller_from_path"]
