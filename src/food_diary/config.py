"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_key: str | None = None
    model_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    analysis_model: str = "gemini-3-pro-preview"
    text_model: str = "gemini-3-flash-preview"
    reply_language: str = "Chinese"
    request_timeout_seconds: float = 60.0
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
        protected_namespaces=("settings_",),
    )


def normalize_credential(raw: str | None) -> str | None:
    """Return a stripped credential, or None when it is blank."""
    if raw is None:
        return None
    cleaned = raw.strip()
    return cleaned or None
