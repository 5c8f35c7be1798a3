"""Transports perform the actual network exchange at the end of the chain.

The chain only depends on the `Transport` protocol. `HttpxTransport` is the
default implementation, backed by a lazily created ``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from netcase.foundation.config import ConfigKey, get_settings
from netcase.foundation.errors import TransportError
from netcase.http import Headers, HTTPResponse

if TYPE_CHECKING:
    from netcase.foundation.config import ConfigStore, HttpSettings
    from netcase.http import HTTPRequest, RequestBody

logger = logging.getLogger("netcase.transport")


@runtime_checkable
class Transport(Protocol):
    """Sends a request and returns the raw response.

    Implementations raise TransportError (with the underlying exception as
    ``__cause__``) when the exchange cannot be completed.
    """

    async def send(
        self,
        request: HTTPRequest,
        body: RequestBody | None,
        configs: ConfigStore,
    ) -> HTTPResponse: ...


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Args:
        settings: Timeout, TLS verification and redirect defaults
        client: Pre-built client to use instead of creating one; it is not
            closed by ``aclose()``

    Example:
        >>> transport = HttpxTransport()
        >>> client = Client("https://api.example.com").transport(transport)
        >>> ...
        >>> await transport.aclose()
    """

    __slots__ = ("_settings", "_client", "_owns_client")

    def __init__(self, settings: HttpSettings | None = None, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings or get_settings().http
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx async client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=self._settings.follow_redirects,
                max_redirects=self._settings.max_redirects,
                verify=self._settings.verify_ssl,
                timeout=self._settings.timeout,
                headers={"User-Agent": self._settings.user_agent},
            )
        return self._client

    async def send(
        self,
        request: HTTPRequest,
        body: RequestBody | None,
        configs: ConfigStore,
    ) -> HTTPResponse:
        client = self._get_client()
        try:
            response = await client.request(
                request.method,
                request.url,
                headers=request.headers.items(),
                params=list(request.query) or None,
                content=body.read() if body is not None else None,
            )
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            logger.debug(f"{request.method} {request.url} failed: {e!r}")
            raise TransportError(f"{request.method} {request.url}: {e}") from e
        return HTTPResponse(
            status=response.status_code,
            headers=Headers(response.headers.multi_items()),
            body=response.content,
        )

    async def aclose(self) -> None:
        """Close the httpx client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


@lru_cache(maxsize=1)
def default_transport() -> HttpxTransport:
    """Process-wide transport used by clients that do not configure one."""
    return HttpxTransport()


TRANSPORT: ConfigKey[Transport] = ConfigKey("transport", default_factory=default_transport)
