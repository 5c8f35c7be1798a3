"""Middleware system for request execution.

Provides composable interceptors around the transport call: authentication,
body compression, retries, logging.

Example:
    >>> from netcase import Client
    >>> from netcase.middleware import LoggingMiddleware, RetryMiddleware
    >>>
    >>> client = (
    ...     Client("https://api.example.com")
    ...     .use(LoggingMiddleware())
    ...     .use(RetryMiddleware(max_attempts=3))
    ... )

Ordering:
    Middleware registered first is outermost: it sees the request first and
    the response last. Each `use` appends, so the most recently added
    middleware sits closest to the transport.
"""

from .middleware import Middleware, Next, Outcome, Terminal, compose, execute
from .plugins import (
    AUTH_ENABLED,
    LOG_LEVEL,
    LOGGER,
    LOGGING_COMPONENTS,
    ApiKeyAuth,
    AuthMiddleware,
    AuthStrategy,
    Backoff,
    BackgroundFlag,
    BackgroundObserver,
    BasicAuth,
    BearerAuth,
    CompressionMiddleware,
    ConstantBackoff,
    DuplicateHeaderBehavior,
    ExponentialBackoff,
    ForegroundRetryMachine,
    ForegroundRetryMiddleware,
    LoggingComponents,
    LoggingMiddleware,
    NoAuth,
    RetryMiddleware,
    RetryState,
    adler32,
    deflate,
    parse_auth,
)

__all__ = [
    # Core
    "Middleware",
    "Next",
    "Outcome",
    "Terminal",
    "compose",
    "execute",
    # Plugins
    "AUTH_ENABLED",
    "ApiKeyAuth",
    "AuthMiddleware",
    "AuthStrategy",
    "BasicAuth",
    "BearerAuth",
    "NoAuth",
    "parse_auth",
    "CompressionMiddleware",
    "DuplicateHeaderBehavior",
    "adler32",
    "deflate",
    "BackgroundFlag",
    "BackgroundObserver",
    "ForegroundRetryMachine",
    "ForegroundRetryMiddleware",
    "RetryState",
    "LOGGER",
    "LOG_LEVEL",
    "LOGGING_COMPONENTS",
    "LoggingComponents",
    "LoggingMiddleware",
    "Backoff",
    "ConstantBackoff",
    "ExponentialBackoff",
    "RetryMiddleware",
]
