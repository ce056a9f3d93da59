"""Adapter settings loaded from environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FUNCTION_PREFIX = "/.netlify/functions/api"

# Netlify and AWS Lambda both cap synchronous request payloads at 6 MiB.
DEFAULT_MAX_REQUEST_SIZE_BYTES = 6 * 1024 * 1024


class Settings(BaseSettings):
    """Environment-driven configuration with sensible defaults."""

    function_prefix: str = Field(default=DEFAULT_FUNCTION_PREFIX, alias="FUNCTION_PREFIX")
    app_handler: str | None = Field(default=None, alias="APP_HANDLER")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")
    max_request_size_bytes: int = Field(
        default=DEFAULT_MAX_REQUEST_SIZE_BYTES, alias="MAX_REQUEST_SIZE_BYTES", ge=0
    )
    version: str = Field(default="0.1.0", alias="BRIDGE_VERSION")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
