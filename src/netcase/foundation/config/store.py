"""Typed, hierarchical configuration store.

Keys are compared by identity, never by label, so two independently declared
keys cannot collide. A store is immutable: ``set`` layers a child store over
its parent, holding only the override and sharing every other entry.

Example:
    >>> TIMEOUT: ConfigKey[float] = ConfigKey("timeout", default_factory=lambda: 30.0)
    >>> root = ConfigStore()
    >>> child = root.set(TIMEOUT, 5.0)
    >>> child.get(TIMEOUT), root.get(TIMEOUT)
    (5.0, None)
    >>> root.resolve(TIMEOUT)
    30.0
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Generic, TypeVar, overload

if TYPE_CHECKING:
    from .settings import NetcaseSettings

V = TypeVar("V")
D = TypeVar("D")


class ConfigKey(Generic[V]):
    """Identity-unique handle for one configuration slot.

    Args:
        name: Label used in reprs and logs only
        default_factory: Produces the value ``ConfigStore.resolve`` returns when unset
    """

    __slots__ = ("name", "default_factory")

    def __init__(self, name: str, *, default_factory: Callable[[], V] | None = None) -> None:
        self.name = name
        self.default_factory = default_factory

    def __repr__(self) -> str:
        return f"ConfigKey({self.name!r})"


_EMPTY: Mapping[ConfigKey[Any], Any] = MappingProxyType({})


class ConfigStore:
    """Immutable mapping from ``ConfigKey`` identity to arbitrary values."""

    __slots__ = ("_entries", "_parent")

    def __init__(
        self,
        entries: Mapping[ConfigKey[Any], Any] | None = None,
        *,
        parent: ConfigStore | None = None,
    ) -> None:
        self._entries = MappingProxyType(dict(entries)) if entries else _EMPTY
        self._parent = parent

    @classmethod
    def from_settings(cls, settings: NetcaseSettings) -> ConfigStore:
        """Root store seeded from environment settings."""
        from netcase.middleware.plugins.logging import LOG_LEVEL, LOGGING_COMPONENTS, LoggingComponents

        return cls({
            LOG_LEVEL: settings.logging.level_number,
            LOGGING_COMPONENTS: LoggingComponents.parse(settings.logging.components),
        })

    @property
    def parent(self) -> ConfigStore | None:
        return self._parent

    def _lookup(self, key: ConfigKey[Any]) -> tuple[bool, Any]:
        store: ConfigStore | None = self
        while store is not None:
            if key in store._entries:
                return True, store._entries[key]
            store = store._parent
        return False, None

    @overload
    def get(self, key: ConfigKey[V]) -> V | None: ...
    @overload
    def get(self, key: ConfigKey[V], default: D) -> V | D: ...

    def get(self, key: ConfigKey[Any], default: Any = None) -> Any:
        """Value for ``key``, or ``default`` when the slot is not set."""
        found, value = self._lookup(key)
        return value if found else default

    def resolve(self, key: ConfigKey[V]) -> V:
        """Value for ``key``, falling back to the key's own default.

        Raises:
            KeyError: if the slot is unset and the key declares no default
        """
        found, value = self._lookup(key)
        if found:
            return value
        if key.default_factory is None:
            raise KeyError(key)
        return key.default_factory()

    def set(self, key: ConfigKey[V], value: V) -> ConfigStore:
        """New store with ``key`` overridden; ``self`` is left untouched."""
        return ConfigStore({key: value}, parent=self)

    def update(self, entries: Mapping[ConfigKey[Any], Any]) -> ConfigStore:
        """New store overriding several keys at once."""
        if not entries:
            return self
        return ConfigStore(entries, parent=self)

    def merged(self, other: ConfigStore) -> ConfigStore:
        """Layer every entry visible in ``other`` over this store."""
        return self.update(other.snapshot())

    def snapshot(self) -> dict[ConfigKey[Any], Any]:
        """Flattened view of every visible entry, overrides applied."""
        chain: list[ConfigStore] = []
        store: ConfigStore | None = self
        while store is not None:
            chain.append(store)
            store = store._parent

        flat: dict[ConfigKey[Any], Any] = {}
        for layer in reversed(chain):
            flat.update(layer._entries)
        return flat

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, ConfigKey):
            return False
        return self._lookup(key)[0]

    def __iter__(self) -> Iterator[ConfigKey[Any]]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return len(self.snapshot())

    def __repr__(self) -> str:
        names = ", ".join(k.name for k in self.snapshot())
        return f"ConfigStore({names})"
