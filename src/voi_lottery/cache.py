"""Session cache for snapshots and other remote reads."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, NamedTuple, Optional

from cachetools import TLRUCache


class _Entry(NamedTuple):
    value: Any
    ttl: float


def _time_to_use(key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class CacheStore:
    """TTL key/value store with per-entry lifetimes.

    One coarse lock guards every operation, so concurrent fetches may race on
    a key (last writer wins) but never observe a half-written entry.
    """

    def __init__(
        self,
        namespace: str = "voi-lottery",
        maxsize: int = 128,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.namespace = namespace
        self._cache: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=timer)
        self._lock = threading.Lock()

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._cache.get(self._key(key))
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: float) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        with self._lock:
            self._cache[self._key(key)] = _Entry(value, float(ttl))

    def invalidate_all(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)
