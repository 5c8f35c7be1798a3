"""Retry requests interrupted by the host process being backgrounded.

When a process is suspended mid-request (a laptop lid closes, a job is
stopped with SIGTSTP, a mobile host freezes the app) the transport commonly
aborts or returns garbage. This middleware retries the call once the process
is running again, independently of any network-level retry policy.

Whether the process was backgrounded is reported by a `BackgroundObserver`
obtained fresh for every call.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from netcase.http import VALID_STATUS

if TYPE_CHECKING:
    from netcase.foundation.config import ConfigStore
    from netcase.http import HTTPRequest, RequestBody
    from ..middleware import Next, Outcome

logger = logging.getLogger("netcase.middleware")


@runtime_checkable
class BackgroundObserver(Protocol):
    """Reports whether the process was backgrounded since ``start()``."""

    @property
    def was_in_background(self) -> bool: ...
    def start(self) -> None: ...
    def reset(self) -> None: ...


class BackgroundFlag:
    """Thread-safe observer driven by the host application.

    Call ``mark_background()`` from whatever hook notices suspension (a
    SIGCONT handler, a lifecycle callback). Marks are ignored until
    ``start()`` is called.

    Example:
        >>> flag = BackgroundFlag()
        >>> flag.start()
        >>> flag.mark_background()
        >>> flag.was_in_background
        True
    """

    __slots__ = ("_lock", "_observing", "_backgrounded")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observing = False
        self._backgrounded = False

    @property
    def was_in_background(self) -> bool:
        with self._lock:
            return self._backgrounded

    def start(self) -> None:
        with self._lock:
            self._observing = True

    def reset(self) -> None:
        with self._lock:
            self._observing = False
            self._backgrounded = False

    def mark_background(self) -> None:
        with self._lock:
            if self._observing:
                self._backgrounded = True


class RetryState(StrEnum):
    IDLE = "idle"
    RETRYING = "retrying"
    AWAITING_FOREGROUND = "awaiting_foreground"
    EXHAUSTED = "exhausted"


@dataclass(slots=True)
class ForegroundRetryMachine:
    """Per-call retry state.

    ``attempts`` counts attempts started, from 1. After an attempt the call is
    retried when the process was backgrounded and either no limit is set or
    ``attempts <= limit``.
    """

    limit: int | None = None
    state: RetryState = RetryState.IDLE
    attempts: int = 0
    history: list[RetryState] = field(default_factory=list)

    def _move(self, state: RetryState) -> None:
        self.state = state
        self.history.append(state)

    def begin(self) -> int:
        """Start an attempt; only attempts after the first are RETRYING."""
        self.attempts += 1
        if self.attempts > 1:
            self._move(RetryState.RETRYING)
        return self.attempts

    def evaluate(self, was_in_background: bool) -> bool:
        """Decide after an attempt whether to go again."""
        if not was_in_background:
            self._move(RetryState.IDLE)
            return False
        if self.limit is not None and self.attempts > self.limit:
            self._move(RetryState.EXHAUSTED)
            return False
        self._move(RetryState.AWAITING_FOREGROUND)
        return True


def _raise_if_cancelling() -> None:
    task = asyncio.current_task()
    if task is not None and task.cancelling():
        raise asyncio.CancelledError()


@dataclass(slots=True, frozen=True)
class ForegroundRetryMiddleware:
    """Retry calls that overlapped with the process being backgrounded.

    Successful results, invalid-status results and failures are all retried
    when the observer reports backgrounding and the budget allows. Otherwise
    results are returned and failures re-raised unchanged.

    Args:
        observer_factory: Creates the observer used for one call
        retry_limit: Maximum number of retries; ``None`` retries until an
            attempt completes without backgrounding

    Example:
        >>> flag = BackgroundFlag()
        >>> client.use(ForegroundRetryMiddleware(lambda: flag, retry_limit=2))
    """

    observer_factory: Callable[[], BackgroundObserver]
    retry_limit: int | None = None

    async def __call__(
        self,
        request: HTTPRequest,
        body: RequestBody | None,
        configs: ConfigStore,
        next: Next,
    ) -> Outcome:
        observer = self.observer_factory()
        machine = ForegroundRetryMachine(limit=self.retry_limit)
        valid = configs.resolve(VALID_STATUS)

        while True:
            _raise_if_cancelling()
            attempt = machine.begin()
            observer.reset()
            observer.start()

            try:
                outcome = await next(request, body, configs)
            except Exception as e:
                if machine.evaluate(observer.was_in_background):
                    logger.info(f"Attempt {attempt} failed in background ({e!r}), retrying")
                    continue
                raise

            response = outcome[1]
            if machine.evaluate(observer.was_in_background):
                reason = "invalid status" if not response.is_status_valid(valid) else "background"
                logger.info(f"Attempt {attempt} returned {response.status} ({reason}), retrying")
                continue
            if machine.state is RetryState.EXHAUSTED:
                logger.warning(f"Foreground retry budget exhausted after {attempt} attempts")
            return outcome
