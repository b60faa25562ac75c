from __future__ import annotations

import copy
import threading
import time
from collections.abc import Callable
from typing import Any, NamedTuple


class CacheEntry(NamedTuple):
    expires_at: float
    value: Any


class TTLCache:
    """In-memory response cache shared by all request handlers.

    Entries are only ever replaced, never mutated, and a stale entry is
    treated as absent. Stale entries are dropped lazily when read. Values
    are copied on the way in and on the way out, so callers never hold a
    reference into the cache.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            value = entry.value
        return copy.deepcopy(value)

    def put(self, key: str, value: Any, ttl_ms: int) -> None:
        entry = CacheEntry(
            expires_at=self._clock() + ttl_ms / 1000.0, value=copy.deepcopy(value)
        )
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
