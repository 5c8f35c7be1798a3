"""Netcase - Composable, immutable async HTTP clients.

Build a client once, then derive variants by layering configuration and
middleware. Deriving never mutates the parent, so every variant can be
shared and called concurrently.

Quick Start:
    >>> from netcase import Client, BearerAuth
    >>>
    >>> api = Client("https://petstore.example").auth(BearerAuth(token="t0ken")).log_requests()
    >>> pet = await api["pet"]["42"].call(Pet)
    >>>
    >>> # Store endpoints are public: drop the token for this subtree only
    >>> store = api["store"].auth(enabled=False)
    >>> inventory = await store["inventory"].call(dict[str, int])

Custom Configuration:
    >>> from netcase import ConfigKey
    >>> TENANT: ConfigKey[str] = ConfigKey("tenant", default_factory=lambda: "public")
    >>> acme = api.configs(TENANT, "acme")
    >>> acme.config(TENANT), api.config(TENANT)
    ('acme', 'public')

Middleware:
    >>> from netcase.middleware import DuplicateHeaderBehavior
    >>> upload = api.compress_request(DuplicateHeaderBehavior.REPLACE).retry(max_attempts=3)
"""

from __future__ import annotations

__version__ = "0.1.0"

# Core
from .client import Client
from .codecs import (
    BODY_DECODER,
    BODY_ENCODER,
    BodyDecoder,
    BodyEncoder,
    JSONBodyDecoder,
    JSONBodyEncoder,
    MsgpackBodyDecoder,
    MsgpackBodyEncoder,
)

# Configuration
from .foundation.config import ConfigKey, ConfigStore, NetcaseSettings, clear_settings_cache, get_settings

# Errors
from .foundation.errors import (
    CompressionError,
    DecodeError,
    DuplicateHeaderError,
    EncodeError,
    ErrorCode,
    NetcaseError,
    TransportError,
)
from .http import VALID_STATUS, Headers, HTTPRequest, HTTPResponse, RequestBody

# Middleware
from .middleware import (
    AUTH_ENABLED,
    LOG_LEVEL,
    LOGGER,
    LOGGING_COMPONENTS,
    ApiKeyAuth,
    AuthMiddleware,
    BackgroundFlag,
    BackgroundObserver,
    BasicAuth,
    BearerAuth,
    CompressionMiddleware,
    ConstantBackoff,
    DuplicateHeaderBehavior,
    ExponentialBackoff,
    ForegroundRetryMiddleware,
    LoggingComponents,
    LoggingMiddleware,
    Middleware,
    Next,
    NoAuth,
    RetryMiddleware,
    compose,
    execute,
)
from .transport import TRANSPORT, HttpxTransport, Transport

__all__ = [
    # Core
    "Client",
    "Transport",
    "HttpxTransport",
    "TRANSPORT",
    # HTTP values
    "Headers",
    "HTTPRequest",
    "HTTPResponse",
    "RequestBody",
    "VALID_STATUS",
    # Codecs
    "BodyEncoder",
    "BodyDecoder",
    "JSONBodyEncoder",
    "JSONBodyDecoder",
    "MsgpackBodyEncoder",
    "MsgpackBodyDecoder",
    "BODY_ENCODER",
    "BODY_DECODER",
    # Configuration
    "ConfigKey",
    "ConfigStore",
    "NetcaseSettings",
    "get_settings",
    "clear_settings_cache",
    # Errors
    "ErrorCode",
    "NetcaseError",
    "DuplicateHeaderError",
    "CompressionError",
    "TransportError",
    "DecodeError",
    "EncodeError",
    # Middleware
    "Middleware",
    "Next",
    "compose",
    "execute",
    "AUTH_ENABLED",
    "AuthMiddleware",
    "ApiKeyAuth",
    "BasicAuth",
    "BearerAuth",
    "NoAuth",
    "CompressionMiddleware",
    "DuplicateHeaderBehavior",
    "BackgroundFlag",
    "BackgroundObserver",
    "ForegroundRetryMiddleware",
    "LOGGER",
    "LOG_LEVEL",
    "LOGGING_COMPONENTS",
    "LoggingComponents",
    "LoggingMiddleware",
    "ConstantBackoff",
    "ExponentialBackoff",
    "RetryMiddleware",
]
