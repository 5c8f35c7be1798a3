"""Environment-based configuration using pydantic-settings.

Provides validated defaults for the root client: log level and components,
the default httpx transport, and retry budgets.

Example:
    >>> from netcase.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.http.timeout
    30.0
    >>> settings.logging.level
    'INFO'

    # Or with environment variables:
    # NETCASE_LOG_LEVEL=DEBUG
    # NETCASE_HTTP_TIMEOUT=60
    # NETCASE_RETRY_FOREGROUND_LIMIT=3
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, NonNegativeInt, PositiveFloat, PositiveInt, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="NETCASE_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    components: str = Field(
        default="standard",
        description="Comma separated LoggingComponents names, e.g. 'method,url,status'",
    )

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @computed_field
    @property
    def level_number(self) -> int:
        return logging.getLevelNamesMapping()[self.level]


class HttpSettings(BaseSettings):
    """Defaults for the httpx transport."""

    model_config = SettingsConfigDict(
        env_prefix="NETCASE_HTTP_",
        extra="ignore",
    )

    timeout: PositiveFloat = Field(default=30.0, description="Default request timeout")
    verify_ssl: bool = True
    follow_redirects: bool = True
    max_redirects: PositiveInt = Field(default=10)
    user_agent: str = "netcase/0.1"


class RetrySettings(BaseSettings):
    """Default retry configuration."""

    model_config = SettingsConfigDict(
        env_prefix="NETCASE_RETRY_",
        extra="ignore",
    )

    max_attempts: Annotated[int, Field(ge=1, le=10)] = 3
    base_delay: PositiveFloat = Field(default=0.5, description="Base delay in seconds")
    max_delay: PositiveFloat = Field(default=30.0, description="Maximum delay in seconds")
    foreground_limit: NonNegativeInt | None = Field(
        default=None,
        description="Retries after backgrounding; unset retries until the process stays in foreground",
    )


class NetcaseSettings(BaseSettings):
    """Root settings, loaded from NETCASE_* environment variables and .env."""

    model_config = SettingsConfigDict(
        env_prefix="NETCASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)


@lru_cache(maxsize=1)
def get_settings() -> NetcaseSettings:
    """Get the global settings instance (cached)."""
    return NetcaseSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing).

    The next get_settings() call reloads configuration from the environment.
    """
    get_settings.cache_clear()
