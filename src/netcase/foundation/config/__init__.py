"""Configuration: the typed per-client store and environment settings."""

from .settings import (
    HttpSettings,
    LoggingSettings,
    NetcaseSettings,
    RetrySettings,
    clear_settings_cache,
    get_settings,
)
from .store import ConfigKey, ConfigStore

__all__ = [
    "ConfigKey",
    "ConfigStore",
    "NetcaseSettings",
    "LoggingSettings",
    "HttpSettings",
    "RetrySettings",
    "get_settings",
    "clear_settings_cache",
]
