"""Foundation layer: configuration and errors."""

from .config import ConfigKey, ConfigStore, NetcaseSettings, clear_settings_cache, get_settings
from .errors import (
    CompressionError,
    DecodeError,
    DuplicateHeaderError,
    EncodeError,
    ErrorCode,
    NetcaseError,
    TransportError,
)

__all__ = [
    "ConfigKey", "ConfigStore", "NetcaseSettings", "get_settings", "clear_settings_cache",
    "ErrorCode", "NetcaseError", "DuplicateHeaderError", "CompressionError",
    "TransportError", "DecodeError", "EncodeError",
]
