"""Immutable, derivable HTTP client.

Every modifier returns a new `Client`; the receiver is never changed, so a
parent and all of its children can be shared and used concurrently. Unchanged
parts (the config store, the middleware tuple) are shared by reference.

Example:
    >>> api = (
    ...     Client("https://petstore.example")
    ...     .auth(BearerAuth(token="t0ken"))
    ...     .log_requests()
    ... )
    >>> pets = await api["pet"]["findByStatus"].query("status", "available").call(list[Pet])
    >>> inventory = await api["store"].auth(enabled=False)["inventory"].call(dict[str, int])
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar, overload
from urllib.parse import quote

from netcase.codecs import BODY_DECODER, BODY_ENCODER, BodyDecoder, BodyEncoder, decode_response
from netcase.foundation.config import ConfigKey, ConfigStore, get_settings
from netcase.http import CONTENT_TYPE, VALID_STATUS, Headers, HTTPRequest, RequestBody
from netcase.middleware import (
    AUTH_ENABLED,
    LOG_LEVEL,
    LOGGER,
    LOGGING_COMPONENTS,
    AuthMiddleware,
    BackgroundObserver,
    CompressionMiddleware,
    DuplicateHeaderBehavior,
    ExponentialBackoff,
    ForegroundRetryMiddleware,
    LoggingComponents,
    LoggingMiddleware,
    Middleware,
    RetryMiddleware,
    execute,
    parse_auth,
)
from netcase.transport import TRANSPORT, Transport

if TYPE_CHECKING:
    from netcase.foundation.config import NetcaseSettings
    from netcase.http import HTTPResponse
    from netcase.middleware import Backoff
    from netcase.middleware.plugins.auth import ApiKeyAuth, BasicAuth, BearerAuth, NoAuth

T = TypeVar("T")
V = TypeVar("V")

_NO_BODY = object()
_UNSET: Any = object()


class Client:
    """Immutable handle combining a base URL, request defaults, config and middleware.

    Args:
        base_url: Scheme and host (optionally a base path) every request starts from
        configs: Root configuration; defaults to one seeded from settings
        settings: Environment settings used to seed the root configuration
    """

    __slots__ = ("base_url", "segments", "_method", "_headers", "_query", "_body", "_configs", "_middleware")

    def __init__(
        self,
        base_url: str = "",
        *,
        configs: ConfigStore | None = None,
        settings: NetcaseSettings | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.segments: tuple[str, ...] = ()
        self._method = "GET"
        self._headers = Headers()
        self._query: tuple[tuple[str, str], ...] = ()
        self._body: object = _NO_BODY
        self._configs = configs if configs is not None else ConfigStore.from_settings(settings or get_settings())
        self._middleware: tuple[Middleware, ...] = ()

    def _derive(self, **changes: object) -> Client:
        clone = object.__new__(Client)
        for name in Client.__slots__:
            object.__setattr__(clone, name, changes.get(name.lstrip("_"), getattr(self, name)))
        return clone

    # ─────────────────────────────────────────────────────────────────
    # Configuration
    # ─────────────────────────────────────────────────────────────────

    @property
    def store(self) -> ConfigStore:
        return self._configs

    @property
    def middleware(self) -> tuple[Middleware, ...]:
        return self._middleware

    def with_base_config(self, mutator: Callable[[ConfigStore], ConfigStore]) -> Client:
        """Branch the configuration through ``mutator``."""
        return self._derive(configs=mutator(self._configs))

    def configs(self, key: ConfigKey[V], value: V) -> Client:
        """Set one configuration value for this client and its children."""
        return self._derive(configs=self._configs.set(key, value))

    @overload
    def config(self, key: ConfigKey[V]) -> V: ...
    @overload
    def config(self, key: ConfigKey[V], default: T) -> V | T: ...

    def config(self, key: ConfigKey[Any], default: Any = _UNSET) -> Any:
        """Read a configuration value, falling back to the key's default."""
        if default is not _UNSET:
            return self._configs.get(key, default)
        return self._configs.resolve(key)

    def use(self, middleware: Middleware) -> Client:
        """Append ``middleware``; it runs inside every middleware added before it."""
        return self._derive(middleware=(*self._middleware, middleware))

    # ─────────────────────────────────────────────────────────────────
    # Request building
    # ─────────────────────────────────────────────────────────────────

    def path(self, *segments: object) -> Client:
        """Append path segments; ``"a/b"`` counts as two segments."""
        parts = [p for s in segments for p in str(s).split("/") if p]
        return self._derive(segments=(*self.segments, *parts))

    def scoped(self, segment: object) -> Client:
        return self.path(segment)

    def __getitem__(self, segment: object) -> Client:
        return self.path(segment)

    def method(self, method: str) -> Client:
        return self._derive(method=method.upper())

    def header(self, name: str, value: str) -> Client:
        return self._derive(headers=self._headers.set(name, value))

    def headers(self, headers: Mapping[str, str] | Iterable[tuple[str, str]] | Headers) -> Client:
        return self._derive(headers=self._headers.merged(headers))

    def query(self, name_or_items: str | Mapping[str, object], value: object = None) -> Client:
        """Add query parameters. ``None`` values are dropped, sequences repeat the name."""
        items = {name_or_items: value} if isinstance(name_or_items, str) else name_or_items
        added: list[tuple[str, str]] = []
        for name, raw in items.items():
            values = raw if isinstance(raw, (list, tuple, set, frozenset)) else [raw]
            added.extend((name, _query_value(v)) for v in values if v is not None)
        return self._derive(query=(*self._query, *added))

    def body(self, value: object) -> Client:
        """Set the request body.

        ``bytes`` and ``RequestBody`` are sent as-is; any other value is
        serialized with the configured body encoder when the call is made.
        """
        return self._derive(body=value)

    @property
    def url(self) -> str:
        if not self.segments:
            return self.base_url
        return "/".join([self.base_url, *(quote(s, safe="-_.~:@") for s in self.segments)])

    @property
    def request(self) -> HTTPRequest:
        return HTTPRequest(method=self._method, url=self.url, headers=self._headers, query=self._query)

    # ─────────────────────────────────────────────────────────────────
    # Feature modifiers
    # ─────────────────────────────────────────────────────────────────

    def auth(
        self,
        strategy: NoAuth | BearerAuth | BasicAuth | ApiKeyAuth | Mapping[str, Any] | None = None,
        *,
        enabled: bool | None = None,
    ) -> Client:
        """Authenticate requests with ``strategy`` and/or toggle authentication.

        A mapping is validated into a strategy by its ``auth_type`` tag
        (``"bearer"``, ``"basic"``, ``"api_key"`` or ``"none"``).

        ``enabled=False`` suppresses every auth strategy registered on this
        client or its ancestors, for this client and its children only.
        """
        if strategy is None and enabled is None:
            raise ValueError("auth() needs a strategy or enabled=")
        if isinstance(strategy, Mapping):
            strategy = parse_auth(strategy)
        client = self if strategy is None else self.use(AuthMiddleware(strategy))
        return client if enabled is None else client.configs(AUTH_ENABLED, enabled)

    def body_encoder(self, encoder: BodyEncoder) -> Client:
        return self.configs(BODY_ENCODER, encoder)

    def body_decoder(self, decoder: BodyDecoder) -> Client:
        return self.configs(BODY_DECODER, decoder)

    def map_decoder(self, mapper: Callable[[BodyDecoder], BodyDecoder]) -> Client:
        """Replace the configured decoder with ``mapper(current)``."""
        return self.configs(BODY_DECODER, mapper(self._configs.resolve(BODY_DECODER)))

    def transport(self, transport: Transport) -> Client:
        return self.configs(TRANSPORT, transport)

    def valid_status(self, statuses: range) -> Client:
        return self.configs(VALID_STATUS, statuses)

    def logger(self, logger: logging.Logger) -> Client:
        return self.configs(LOGGER, logger)

    def log_level(self, level: int) -> Client:
        return self.configs(LOG_LEVEL, level)

    def logging_components(self, components: LoggingComponents) -> Client:
        return self.configs(LOGGING_COMPONENTS, components)

    def log_requests(self) -> Client:
        return self.use(LoggingMiddleware())

    def compress_request(
        self,
        duplicate_header_behavior: DuplicateHeaderBehavior = DuplicateHeaderBehavior.SKIP,
        should_compress: Callable[[bytes], bool] | None = None,
    ) -> Client:
        """Deflate-compress request bodies (see CompressionMiddleware)."""
        if should_compress is None:
            return self.use(CompressionMiddleware(duplicate_header_behavior))
        return self.use(CompressionMiddleware(duplicate_header_behavior, should_compress))

    def retry_when_enter_foreground(
        self,
        observer_factory: Callable[[], BackgroundObserver],
        retry_limit: int | None = _UNSET,
    ) -> Client:
        """Retry calls interrupted by the process being backgrounded.

        ``retry_limit`` defaults to ``NETCASE_RETRY_FOREGROUND_LIMIT``; ``None``
        retries until an attempt completes in the foreground.
        """
        if retry_limit is _UNSET:
            retry_limit = get_settings().retry.foreground_limit
        return self.use(ForegroundRetryMiddleware(observer_factory, retry_limit))

    def retry(self, max_attempts: int | None = None, backoff: Backoff | None = None) -> Client:
        """Retry transport failures with backoff (defaults from settings)."""
        settings = get_settings().retry
        return self.use(RetryMiddleware(
            max_attempts=settings.max_attempts if max_attempts is None else max_attempts,
            backoff=ExponentialBackoff.from_settings(settings) if backoff is None else backoff,
        ))

    # ─────────────────────────────────────────────────────────────────
    # Execution
    # ─────────────────────────────────────────────────────────────────

    def _prepare(self, configs: ConfigStore) -> tuple[HTTPRequest, RequestBody | None]:
        request = self.request
        value = self._body
        if value is _NO_BODY or value is None:
            return request, None
        if isinstance(value, RequestBody):
            return request, value
        if isinstance(value, (bytes, bytearray, memoryview)):
            return request, RequestBody.of(value)

        encoder = configs.resolve(BODY_ENCODER)
        body = RequestBody.of(encoder.encode(value))
        if CONTENT_TYPE not in request.headers:
            request = request.with_header(CONTENT_TYPE, encoder.content_type)
        return request, body

    async def call_with_response(self, shape: Any = None) -> tuple[Any, HTTPResponse]:
        """Send the request through the middleware chain.

        Args:
            shape: ``None`` for no decoding, ``bytes``/``str`` for the raw body,
                or any type the body decoder can validate against

        Returns:
            (decoded value, response)

        Raises:
            EncodeError, DuplicateHeaderError, CompressionError, TransportError,
            DecodeError: unless a middleware handles them
        """
        configs = self._configs
        request, body = self._prepare(configs)

        async def send(request: HTTPRequest, body: RequestBody | None, configs: ConfigStore) -> tuple[Any, HTTPResponse]:
            response = await configs.resolve(TRANSPORT).send(request, body, configs)
            return decode_response(configs.resolve(BODY_DECODER), response.body, shape), response

        return await execute(self._middleware, request, body, configs, send)

    @overload
    async def call(self) -> None: ...
    @overload
    async def call(self, shape: type[T]) -> T: ...
    @overload
    async def call(self, shape: Any) -> Any: ...

    async def call(self, shape: Any = None) -> Any:
        """Send the request and return the decoded body only."""
        value, _ = await self.call_with_response(shape)
        return value

    def __repr__(self) -> str:
        return f"Client({self._method} {self.url!r}, middleware={len(self._middleware)})"


def _query_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(getattr(value, "value", value))
