# sprintboard/viewer/cache.py
"""Keyed cache of fetched resources.

Keys are tuples naming a query, e.g. ("tasks",), ("tasks", 3), ("task", 12),
("sprints",), ("sprint", 4), ("sprints", "active"). Invalidation marks
entries stale but keeps their value on screen until a refetch replaces it.
"""
from typing import Any, Dict, Iterator, List, Optional, Tuple

CacheKey = Tuple[Any, ...]

_NOTHING = object()


class CacheEntry:
    """A cached value plus an optional pending (optimistic) replacement"""

    __slots__ = ("value", "stale", "_pending")

    def __init__(self, value: Any = None, stale: bool = False):
        self.value = value
        self.stale = stale
        self._pending = _NOTHING

    @property
    def is_optimistic(self) -> bool:
        return self._pending is not _NOTHING

    @property
    def current(self) -> Any:
        """What a reader sees: the pending value while a write is in flight"""
        return self._pending if self.is_optimistic else self.value

    def __repr__(self):
        return f"CacheEntry(value={self.value!r}, stale={self.stale}, optimistic={self.is_optimistic})"


class QueryCache:
    def __init__(self):
        self._entries: Dict[CacheKey, CacheEntry] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> List[CacheKey]:
        return list(self._entries)

    def entry(self, key: CacheKey) -> Optional[CacheEntry]:
        return self._entries.get(key)

    def get(self, key: CacheKey, default: Any = None) -> Any:
        entry = self._entries.get(key)
        return entry.current if entry is not None else default

    def set(self, key: CacheKey, value: Any) -> None:
        """Store a fresh committed value; a pending write on the key stays visible"""
        entry = self._entries.get(key)
        if entry is None:
            self._entries[key] = CacheEntry(value)
            return
        entry.value = value
        entry.stale = False

    def remove(self, key: CacheKey) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def _matching(self, key: CacheKey, exact: bool) -> Iterator[Tuple[CacheKey, CacheEntry]]:
        for cached_key, entry in self._entries.items():
            if cached_key == key or (not exact and cached_key[:len(key)] == key):
                yield cached_key, entry

    def invalidate(self, key: CacheKey, exact: bool = False) -> List[CacheKey]:
        """Mark `key` stale, and every key it prefixes unless `exact`.

        Returns the keys that were marked.
        """
        marked = []
        for cached_key, entry in self._matching(key, exact):
            entry.stale = True
            marked.append(cached_key)
        return marked

    def invalidate_all(self) -> List[CacheKey]:
        for entry in self._entries.values():
            entry.stale = True
        return self.keys()

    def is_stale(self, key: CacheKey) -> bool:
        """Missing keys count as stale: there is nothing fresh to show"""
        entry = self._entries.get(key)
        return entry is None or entry.stale

    def stale_keys(self) -> List[CacheKey]:
        return [key for key, entry in self._entries.items() if entry.stale]

    # Two-phase writes

    def begin_optimistic(self, key: CacheKey, value: Any) -> None:
        """Show `value` for `key` while keeping the committed value for rollback"""
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = CacheEntry(None, stale=True)
        entry._pending = value

    def commit(self, key: CacheKey) -> None:
        """Promote the pending value to committed"""
        entry = self._entries.get(key)
        if entry is None or not entry.is_optimistic:
            return
        entry.value = entry._pending
        entry._pending = _NOTHING

    def rollback(self, key: CacheKey) -> None:
        """Drop the pending value; readers see the committed one again"""
        entry = self._entries.get(key)
        if entry is None or not entry.is_optimistic:
            return
        entry._pending = _NOTHING
        if entry.value is None and entry.stale:
            # Nothing was committed before the write began
            del self._entries[key]
