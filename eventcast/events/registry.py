"""
Keyed listener registry shared by the local and broadcast buses.

Maps a name to an insertion-ordered ``{key: value}`` mapping. The local bus
keys listeners by the listener itself; the broadcast bus keys transport
adapters by listener id.

The registry does no locking of its own. Owners guard it with their lock.
"""

from __future__ import annotations

from collections.abc import Hashable
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class ListenerRegistry(Generic[K, V]):
    """Name -> ordered listener mapping.

    Args:
        prune_empty: Drop a name as soon as its last key is discarded
    """

    def __init__(self, prune_empty: bool = True) -> None:
        self._entries: dict[str, dict[K, V]] = {}
        self._prune_empty = prune_empty

    def add(self, name: str, key: K, value: V) -> bool:
        """Register ``value`` under ``key``. Returns False if ``key`` was already present."""
        entry = self._entries.setdefault(name, {})
        if key in entry:
            return False
        entry[key] = value
        return True

    def discard(self, name: str, key: K) -> V | None:
        """Remove ``key`` from ``name`` and return its value, or None if unknown."""
        entry = self._entries.get(name)
        if entry is None:
            return None
        value = entry.pop(key, None)
        if not entry and self._prune_empty:
            del self._entries[name]
        return value

    def ensure(self, name: str) -> dict[K, V]:
        return self._entries.setdefault(name, {})

    def snapshot(self, name: str) -> list[V]:
        """Copy of the values currently registered for ``name``."""
        return list(self._entries.get(name, {}).values())

    def pop(self, name: str) -> dict[K, V]:
        """Remove ``name`` entirely and return its mapping (empty if unknown)."""
        return self._entries.pop(name, {})

    def clear(self) -> None:
        self._entries.clear()

    def count(self, name: str) -> int:
        return len(self._entries.get(name, ()))

    def names(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries
