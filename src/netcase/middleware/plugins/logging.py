"""Logging middleware for request execution."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Flag, auto
from typing import TYPE_CHECKING

from netcase.foundation.config import ConfigKey
from netcase.http import VALID_STATUS

if TYPE_CHECKING:
    from netcase.foundation.config import ConfigStore
    from netcase.http import Headers, HTTPRequest, RequestBody
    from ..middleware import Next, Outcome

logger = logging.getLogger("netcase")


class LoggingComponents(Flag):
    """Parts of a request/response exchange to include in log lines."""
    METHOD = auto()
    URL = auto()
    HEADERS = auto()
    BODY = auto()
    STATUS = auto()
    DURATION = auto()

    NONE = 0
    STANDARD = METHOD | URL | STATUS | DURATION
    ALL = METHOD | URL | HEADERS | BODY | STATUS | DURATION

    @classmethod
    def parse(cls, value: str) -> LoggingComponents:
        """Parse comma separated member names, e.g. ``"method,url,status"``."""
        result = cls.NONE
        for name in filter(None, (p.strip().upper() for p in value.split(","))):
            result |= cls[name]
        return result


LOGGER: ConfigKey[logging.Logger] = ConfigKey("logger", default_factory=lambda: logger)
LOG_LEVEL: ConfigKey[int] = ConfigKey("log_level", default_factory=lambda: logging.INFO)
LOGGING_COMPONENTS: ConfigKey[LoggingComponents] = ConfigKey(
    "logging_components", default_factory=lambda: LoggingComponents.STANDARD
)

_REDACTED = frozenset({"authorization", "proxy-authorization", "cookie", "x-api-key"})


def _format_headers(headers: Headers) -> str:
    return ", ".join(f"{k}: {'***' if k.lower() in _REDACTED else v}" for k, v in headers.items())


def _format_body(data: bytes | None, limit: int = 1024) -> str:
    if data is None:
        return "<stream>"
    text = data[:limit].decode("utf-8", errors="replace")
    return text + ("..." if len(data) > limit else "")


@dataclass(slots=True)
class LoggingMiddleware:
    """Log request execution with timing and result status.

    Logger, level and components are read from the effective configuration,
    so derived clients can change them without re-registering middleware.
    Responses outside the valid status range and exceptions log at WARNING
    or above regardless of the configured level.

    Example:
        >>> client = client.log_level(logging.DEBUG).use(LoggingMiddleware())
    """

    async def __call__(
        self,
        request: HTTPRequest,
        body: RequestBody | None,
        configs: ConfigStore,
        next: Next,
    ) -> Outcome:
        log = configs.resolve(LOGGER)
        level = configs.resolve(LOG_LEVEL)
        parts = configs.resolve(LOGGING_COMPONENTS)

        target = " ".join(filter(None, [
            request.method if LoggingComponents.METHOD in parts else "",
            request.url if LoggingComponents.URL in parts else "",
        ])) or "request"

        details = []
        if LoggingComponents.HEADERS in parts and len(request.headers):
            details.append(f"headers=[{_format_headers(request.headers)}]")
        if LoggingComponents.BODY in parts and body is not None:
            details.append(f"body={_format_body(body.data)}")
        log.log(level, f"--> {target}" + (f" {' '.join(details)}" if details else ""))

        start = time.perf_counter()
        try:
            outcome = await next(request, body, configs)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            log.exception(f"<-- {target} FAILED ({duration_ms:.1f}ms): {e}")
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response = outcome[1]
        ok = response.is_status_valid(configs.resolve(VALID_STATUS))
        summary = [f"<-- {target}"]
        if LoggingComponents.STATUS in parts:
            summary.append(str(response.status))
        if LoggingComponents.DURATION in parts:
            summary.append(f"({duration_ms:.1f}ms)")
        if LoggingComponents.HEADERS in parts and len(response.headers):
            summary.append(f"headers=[{_format_headers(response.headers)}]")
        if LoggingComponents.BODY in parts:
            summary.append(f"body={_format_body(response.body)}")
        log.log(level if ok else max(level, logging.WARNING), " ".join(summary))
        return outcome
