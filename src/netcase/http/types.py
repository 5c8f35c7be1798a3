"""Immutable request/response values passed through the middleware chain."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import TypeAlias

from netcase.foundation.config import ConfigKey

HeaderItems: TypeAlias = "Mapping[str, str] | Iterable[tuple[str, str]] | Headers"
QueryItems: TypeAlias = tuple[tuple[str, str], ...]

CONTENT_ENCODING = "Content-Encoding"
CONTENT_TYPE = "Content-Type"
AUTHORIZATION = "Authorization"

# Status codes a response must fall in to count as successful
VALID_STATUS: ConfigKey[range] = ConfigKey("valid_status", default_factory=lambda: range(200, 300))


class Headers:
    """Ordered header multimap with case-insensitive names.

    Immutable: ``set``/``add``/``remove`` return new instances.

    Example:
        >>> h = Headers({"Accept": "application/json"}).add("X-Tag", "a").add("x-tag", "b")
        >>> h.get_all("X-TAG")
        ['a', 'b']
        >>> "accept" in h
        True
    """

    __slots__ = ("_items",)

    def __init__(self, items: HeaderItems | None = None) -> None:
        if items is None:
            self._items: tuple[tuple[str, str], ...] = ()
        elif isinstance(items, Headers):
            self._items = items._items
        elif isinstance(items, Mapping):
            self._items = tuple((str(k), str(v)) for k, v in items.items())
        else:
            self._items = tuple((str(k), str(v)) for k, v in items)

    def get(self, name: str, default: str | None = None) -> str | None:
        """First value for ``name``."""
        lname = name.lower()
        for k, v in self._items:
            if k.lower() == lname:
                return v
        return default

    def get_all(self, name: str) -> list[str]:
        lname = name.lower()
        return [v for k, v in self._items if k.lower() == lname]

    def set(self, name: str, value: str) -> Headers:
        """Replace every value for ``name`` with a single ``value``."""
        lname = name.lower()
        kept = [(k, v) for k, v in self._items if k.lower() != lname]
        return Headers([*kept, (name, value)])

    def add(self, name: str, value: str) -> Headers:
        return Headers([*self._items, (name, value)])

    def remove(self, name: str) -> Headers:
        lname = name.lower()
        return Headers([(k, v) for k, v in self._items if k.lower() != lname])

    def merged(self, other: HeaderItems) -> Headers:
        """Headers from ``other`` replace same-named entries here."""
        incoming = Headers(other)
        replaced = {k.lower() for k in incoming}
        kept = [(k, v) for k, v in self._items if k.lower() not in replaced]
        return Headers([*kept, *incoming._items])

    def items(self) -> list[tuple[str, str]]:
        return list(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[str]:
        return (k for k, _ in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return [(k.lower(), v) for k, v in self._items] == [(k.lower(), v) for k, v in other._items]

    def __hash__(self) -> int:
        return hash(tuple((k.lower(), v) for k, v in self._items))

    def __repr__(self) -> str:
        return f"Headers({list(self._items)!r})"


@dataclass(frozen=True, slots=True)
class HTTPRequest:
    """Outgoing request descriptor. Evolve with the ``with_*`` helpers."""

    method: str = "GET"
    url: str = ""
    headers: Headers = field(default_factory=Headers)
    query: QueryItems = ()

    def with_header(self, name: str, value: str) -> HTTPRequest:
        return replace(self, headers=self.headers.set(name, value))

    def without_header(self, name: str) -> HTTPRequest:
        return replace(self, headers=self.headers.remove(name))

    def with_headers(self, headers: HeaderItems) -> HTTPRequest:
        return replace(self, headers=self.headers.merged(headers))

    def with_method(self, method: str) -> HTTPRequest:
        return replace(self, method=method.upper())

    def with_query(self, name: str, value: str) -> HTTPRequest:
        return replace(self, query=(*self.query, (name, value)))


@dataclass(frozen=True, slots=True)
class HTTPResponse:
    """Status, headers and raw body produced by the transport."""

    status: int
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""

    def is_status_valid(self, valid: range = range(200, 300)) -> bool:
        return self.status in valid

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class RequestBody:
    """Request body: materialized bytes or a producer called on demand.

    Only materialized bodies expose ``data``; lazy bodies report ``None`` there
    and produce their bytes through ``read()``.
    """

    __slots__ = ("_data", "_producer")

    def __init__(self, data: bytes | None = None, *, producer: Callable[[], bytes] | None = None) -> None:
        if (data is None) == (producer is None):
            raise ValueError("RequestBody needs exactly one of data or producer")
        self._data = data
        self._producer = producer

    @classmethod
    def of(cls, data: bytes | bytearray | memoryview) -> RequestBody:
        return cls(bytes(data))

    @classmethod
    def lazy(cls, producer: Callable[[], bytes]) -> RequestBody:
        return cls(producer=producer)

    @property
    def data(self) -> bytes | None:
        return self._data

    @property
    def is_materialized(self) -> bool:
        return self._data is not None

    def read(self) -> bytes:
        if self._data is not None:
            return self._data
        assert self._producer is not None
        return self._producer()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RequestBody):
            return NotImplemented
        if self._data is not None:
            return self._data == other._data
        return self._producer is other._producer

    def __hash__(self) -> int:
        return hash(self._data) if self._data is not None else id(self._producer)

    def __repr__(self) -> str:
        if self._data is not None:
            return f"RequestBody({len(self._data)} bytes)"
        return "RequestBody(<lazy>)"
