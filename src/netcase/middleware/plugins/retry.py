"""Retry middleware for transport failures.

Network-level retry, kept separate from ForegroundRetryMiddleware so the two
can be composed independently. Delays between attempts come from a `Backoff`;
``ExponentialBackoff.from_settings`` reads the ``NETCASE_RETRY_*`` values.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from netcase.foundation.config import get_settings
from netcase.foundation.errors import TransportError

if TYPE_CHECKING:
    from netcase.foundation.config import ConfigStore, RetrySettings
    from netcase.http import HTTPRequest, RequestBody
    from ..middleware import Next, Outcome

logger = logging.getLogger("netcase.middleware")


@runtime_checkable
class Backoff(Protocol):
    """Delay before retry number ``retry`` (0 for the first retry)."""

    def delay(self, retry: int) -> float: ...


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Doubling delay capped at ``max_delay``, optionally jittered by 0.5-1.5x."""

    base: float = 0.5
    max_delay: float = 30.0
    jitter: bool = True

    @classmethod
    def from_settings(cls, settings: RetrySettings | None = None) -> ExponentialBackoff:
        settings = settings or get_settings().retry
        return cls(base=settings.base_delay, max_delay=settings.max_delay)

    def delay(self, retry: int) -> float:
        capped = min(self.base * 2 ** retry, self.max_delay)
        return capped * (0.5 + random.random()) if self.jitter else capped


@dataclass(frozen=True, slots=True)
class ConstantBackoff:
    seconds: float = 1.0

    def delay(self, retry: int) -> float:
        return self.seconds


@dataclass(slots=True, frozen=True)
class RetryMiddleware:
    """Retry calls that fail with a retryable exception, with backoff.

    Only TransportError is retried by default; decode, encode and compression
    failures are deterministic and surface immediately. The last failure is
    re-raised unchanged once attempts run out.

    Args:
        max_attempts: Total attempts including the first (minimum 1)
        backoff: Delay strategy (default: ExponentialBackoff from settings)
        retry_on: Exception types that trigger a retry

    Example:
        >>> client.use(RetryMiddleware(max_attempts=5, backoff=ConstantBackoff(2.0)))
    """

    max_attempts: int = 3
    backoff: Backoff = field(default_factory=ExponentialBackoff.from_settings)
    retry_on: tuple[type[Exception], ...] = (TransportError,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")

    async def __call__(
        self,
        request: HTTPRequest,
        body: RequestBody | None,
        configs: ConfigStore,
        next: Next,
    ) -> Outcome:
        attempt = 0
        while True:
            try:
                return await next(request, body, configs)
            except self.retry_on as e:
                attempt += 1
                if attempt >= self.max_attempts:
                    raise
                delay = self.backoff.delay(attempt - 1)
                logger.warning(
                    f"[{request.method} {request.url}] Attempt {attempt} failed: {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)
