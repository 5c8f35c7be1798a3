"""Built-in middleware plugins for common cross-cutting concerns."""

from .auth import AUTH_ENABLED, ApiKeyAuth, AuthMiddleware, AuthStrategy, BasicAuth, BearerAuth, NoAuth, parse_auth
from .compression import CompressionMiddleware, DuplicateHeaderBehavior, adler32, deflate
from .foreground import (
    BackgroundFlag,
    BackgroundObserver,
    ForegroundRetryMachine,
    ForegroundRetryMiddleware,
    RetryState,
)
from .logging import LOG_LEVEL, LOGGER, LOGGING_COMPONENTS, LoggingComponents, LoggingMiddleware
from .retry import Backoff, ConstantBackoff, ExponentialBackoff, RetryMiddleware

__all__ = [
    # Auth
    "AUTH_ENABLED", "AuthMiddleware", "AuthStrategy", "ApiKeyAuth", "BasicAuth", "BearerAuth", "NoAuth", "parse_auth",
    # Compression
    "CompressionMiddleware", "DuplicateHeaderBehavior", "adler32", "deflate",
    # Foreground retry
    "BackgroundFlag", "BackgroundObserver", "ForegroundRetryMachine", "ForegroundRetryMiddleware", "RetryState",
    # Logging
    "LOGGER", "LOG_LEVEL", "LOGGING_COMPONENTS", "LoggingComponents", "LoggingMiddleware",
    # Retry
    "Backoff", "ConstantBackoff", "ExponentialBackoff", "RetryMiddleware",
]
