"""Process-wide configuration for FetchKit.

Settings are read once from ``FETCHKIT_*`` environment variables into a typed
:class:`FetchSettings` model and memoised.  They cover the knobs an operator
may want to tune without touching call sites: the identifying header, the
redirect hop bound, the async worker pool, transport pooling, and logging.
Per-call behaviour (timeouts, cookie jar, redirect policy) lives on
:class:`FetchKit.params.RequestParams` instead.
"""

from __future__ import annotations

import threading
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .network import policy

__all__ = [
    "LoggingConfiguration",
    "FetchSettings",
    "get_settings",
    "invalidate_settings_cache",
]


class LoggingConfiguration(BaseModel):
    """Logging-related configuration for FetchKit."""

    level: str = Field(default="WARNING", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    max_log_size_mb: int = Field(default=20, gt=0, description="Maximum size of rotated log files")
    backup_count: int = Field(default=5, ge=0, description="Rotated log files kept on disk")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        """Normalise logging levels and ensure they match the supported set."""

        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        upper = value.upper()
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")
        return upper

    model_config = {"validate_assignment": True}


class FetchSettings(BaseSettings):
    """Environment-backed settings shared by every call in the process."""

    user_agent: str = Field(default=policy.DEFAULT_USER_AGENT, min_length=1)
    max_redirect_hops: int = Field(default=policy.MAX_REDIRECT_HOPS, ge=1, le=50)
    async_workers: int = Field(default=policy.ASYNC_WORKERS, ge=1, le=256)
    max_connections: int = Field(default=policy.MAX_CONNECTIONS, ge=1, le=1024)
    max_keepalive_connections: int = Field(
        default=policy.MAX_KEEPALIVE_CONNECTIONS, ge=0, le=1024
    )
    keepalive_expiry: float = Field(default=policy.KEEPALIVE_EXPIRY, gt=0.0, le=600.0)
    verify_tls: bool = Field(default=True)
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)

    model_config = SettingsConfigDict(
        env_prefix="FETCHKIT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


_SETTINGS_LOCK = threading.Lock()
_SETTINGS_CACHE: Optional[FetchSettings] = None


def get_settings() -> FetchSettings:
    """Return the memoised :class:`FetchSettings` built from the environment."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        if _SETTINGS_CACHE is None:
            _SETTINGS_CACHE = FetchSettings()
        return _SETTINGS_CACHE


def invalidate_settings_cache() -> None:
    """Drop the cached settings so the next access re-reads the environment."""

    global _SETTINGS_CACHE  # noqa: PLW0603

    with _SETTINGS_LOCK:
        _SETTINGS_CACHE = None
