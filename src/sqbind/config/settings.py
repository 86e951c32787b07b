"""
Configuration management for sqbind.

Settings are read from environment variables prefixed with ``SQBIND_`` (and
an optional ``.env`` file) using Pydantic BaseSettings. They cover the
default dialect used when a query does not carry one and the knobs of the
query logger.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

ENV_FILE_OVERRIDE = os.getenv("SQBIND_ENV_FILE")
SETTINGS_ENV_FILE = Path(ENV_FILE_OVERRIDE).expanduser() if ENV_FILE_OVERRIDE else Path(".env")

SUPPORTED_DIALECTS = ("", "sqlite", "postgres", "mysql", "sqlserver")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden using environment variables with the
    ``SQBIND_`` prefix, e.g. ``SQBIND_DEFAULT_DIALECT=postgres``.
    """

    default_dialect: str = Field(
        default="",
        description="Dialect used when a query does not specify one",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_to_file: bool = Field(
        default=False, description="Also write logs to a daily rotating file"
    )
    log_file_dir: str = Field(default="logs", description="Directory for log files")

    log_interpolate: bool = Field(
        default=True,
        description="Log queries with their arguments inlined instead of placeholders",
    )
    log_include_time: bool = Field(
        default=True, description="Include time taken in query log events"
    )
    log_include_caller: bool = Field(
        default=False, description="Include the calling file/line in query log events"
    )
    log_include_results: int = Field(
        default=0,
        ge=0,
        description="Number of fetched rows to include in query log events",
    )
    log_hide_args: bool = Field(
        default=False,
        description="Never render argument values into logged queries",
    )

    model_config = SettingsConfigDict(
        env_prefix="SQBIND_",
        env_file=str(SETTINGS_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_dialect")
    @classmethod
    def _validate_dialect(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in SUPPORTED_DIALECTS:
            raise ValueError(
                f"unsupported dialect {value!r} "
                f"(expected one of: {', '.join(d for d in SUPPORTED_DIALECTS if d)})"
            )
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        return value.upper()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings instance.

    Uses lru_cache to ensure settings are loaded once per process.
    Call ``get_settings.cache_clear()`` after changing the environment.

    Returns:
        Configured Settings instance
    """
    settings = Settings()
    logger.debug("settings.loaded", default_dialect=settings.default_dialect)
    return settings


def resolve_dialect(dialect: Optional[str]) -> str:
    """Return ``dialect`` or, when empty, the configured default dialect."""
    if dialect:
        return dialect
    return get_settings().default_dialect
