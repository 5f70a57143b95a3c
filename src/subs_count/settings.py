"""Package configuration using Pydantic Settings.

This module centralizes runtime configuration for subs-count. Values can be
provided via environment variables (preferred) or fall back to the defaults
below. A ``Settings`` instance is intended to be retrieved via ``get_settings``
which caches the object for reuse across the process.

Environment variable prefix: ``SUBS_COUNT_`` (e.g. ``SUBS_COUNT_SCHEDULER``).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime package settings.

    Attributes map directly to environment variables using the ``SUBS_COUNT_``
    prefix (case-insensitive). For example, ``log_level`` <- ``SUBS_COUNT_LOG_LEVEL``.
    """

    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level used by setup_logging()",
    )
    scheduler: Literal["auto", "loop", "thread"] = Field(
        default="auto",
        description="Default deferred-task scheduler: running event loop, worker thread, or auto-detect",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | None) -> str:
        """Normalize and validate log level."""
        if v is None:
            return "INFO"

        v_upper = str(v).upper()

        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR"}
        if v_upper not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(sorted(allowed))}")

        return v_upper

    @field_validator("scheduler", mode="before")
    @classmethod
    def normalize_scheduler(cls, v: str | None) -> str:
        if v is None:
            return "auto"
        return str(v).lower()

    model_config = SettingsConfigDict(
        env_prefix="SUBS_COUNT_",
        case_sensitive=False,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached ``Settings`` instance.

    The first invocation reads environment variables / .env file; subsequent
    calls reuse the same object to ensure consistent config.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
