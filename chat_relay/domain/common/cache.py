"""Bounded in-memory caches with LRU eviction and optional TTL."""
from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable, Generic, Iterator, Optional, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class BoundedCache(Generic[K, V]):
    """LRU cache keyed by K.

    Writes and reads move a key to the most-recent end; when `max_entries` is exceeded the
    least-recently-used key is evicted. With `ttl_seconds` > 0 an entry older than the TTL
    (measured from its last write) is treated as absent and dropped on access.
    """

    def __init__(
        self,
        max_entries: int,
        ttl_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: OrderedDict[K, tuple[V, float]] = OrderedDict()
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return self.peek(key) is not None  # type: ignore[arg-type]

    def _expired(self, written_at: float) -> bool:
        return self.ttl_seconds > 0 and (self._clock() - written_at) >= self.ttl_seconds

    def set(self, key: K, value: V) -> None:
        if key in self._items:
            self._items.move_to_end(key)
        self._items[key] = (value, self._clock())
        while len(self._items) > self.max_entries:
            self._items.popitem(last=False)
            self.evictions += 1

    def get(self, key: K) -> Optional[V]:
        item = self._items.get(key)
        if item is None:
            return None
        value, written_at = item
        if self._expired(written_at):
            del self._items[key]
            return None
        self._items.move_to_end(key)
        return value

    def peek(self, key: K) -> Optional[V]:
        """Like get() but does not refresh recency."""
        item = self._items.get(key)
        if item is None:
            return None
        value, written_at = item
        if self._expired(written_at):
            del self._items[key]
            return None
        return value

    def pop(self, key: K) -> Optional[V]:
        item = self._items.pop(key, None)
        return item[0] if item is not None else None

    def values(self) -> Iterator[V]:
        """Live values, least recent first."""
        for key in list(self._items):
            value = self.peek(key)
            if value is not None:
                yield value

    def clear(self) -> None:
        self._items.clear()
