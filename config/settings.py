"""Application settings and configuration management."""
from __future__ import annotations

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .deployment import preset_path


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    INTERVIEW_CONFIG_PATH: str = Field(default_factory=lambda: str(preset_path("coach")))
    SOURCE_LOCALE: str = "ja"
    SUPPORTED_LOCALES: List[str] = Field(default_factory=lambda: ["ja", "en", "mn"])
    ANSWER_MAX_CHARS: int = Field(default=4000, ge=1)

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
