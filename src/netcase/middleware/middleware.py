"""Core middleware types and chain composition.

Middleware follows continuation-passing style: each middleware receives the
request, the optional body, the effective config snapshot, and a `next`
function that runs everything registered after it, ending at the transport.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from netcase.foundation.config import ConfigStore
    from netcase.http import HTTPRequest, HTTPResponse, RequestBody

# What a chain produces: the decoded value and the raw response it came from
Outcome = tuple[Any, "HTTPResponse"]

# Type alias for the continuation function
Next = Callable[["HTTPRequest", "RequestBody | None", "ConfigStore"], Awaitable[Outcome]]

# The innermost call: send through the transport and decode
Terminal = Next


@runtime_checkable
class Middleware(Protocol):
    """Protocol for request middleware.

    Middleware intercepts a pending call for cross-cutting concerns.
    Implement `__call__` to wrap execution with custom logic; return
    `await next(...)` to continue, or any outcome to short-circuit.

    Example:
        >>> class TagMiddleware:
        ...     async def __call__(self, request, body, configs, next):
        ...         return await next(request.with_header("X-Tag", "a"), body, configs)
    """

    async def __call__(
        self,
        request: HTTPRequest,
        body: RequestBody | None,
        configs: ConfigStore,
        next: Next,
    ) -> Outcome:
        """Execute middleware logic.

        Args:
            request: Outgoing request descriptor
            body: Request body, if any
            configs: Effective configuration for this call
            next: Continuation to call downstream chain

        Returns:
            (decoded value, response), possibly replaced or transformed
        """
        ...


def compose(middleware: Sequence[Middleware], terminal: Terminal) -> Next:
    """Compose middleware into a single execution function.

    Args:
        middleware: Ordered list of middleware (first = outermost)
        terminal: Transport call the chain ends in

    Returns:
        Composed async function: (request, body, configs) -> (value, response)
    """
    chain: Next = terminal
    for mw in reversed(middleware):
        # Capture mw and current chain in closure
        def make_wrapper(m: Middleware, nxt: Next) -> Next:
            async def wrapped(
                request: HTTPRequest,
                body: RequestBody | None,
                configs: ConfigStore,
            ) -> Outcome:
                return await m(request, body, configs, nxt)
            return wrapped
        chain = make_wrapper(mw, chain)

    return chain


async def execute(
    middleware: Sequence[Middleware],
    request: HTTPRequest,
    body: RequestBody | None,
    configs: ConfigStore,
    terminal: Terminal,
) -> Outcome:
    """Run ``request`` through ``middleware`` and the terminal."""
    return await compose(middleware, terminal)(request, body, configs)
