"""
Time-bounded caches for attributes and directory listings.

Cache contract:
  - put() always overwrites and stamps the entry with the current time
  - get() returns the value only while its age is below the TTL
  - expired entries are not evicted, just ignored until overwritten

No size bound: keys are backend paths, so the keyspace is the backend's
real namespace.
"""

import logging
import threading
import time
from typing import Callable, Generic, Optional, TypeVar

log = logging.getLogger(__name__)

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Path-keyed cache with lazy TTL expiry."""

    def __init__(self, ttl: float, name: str = "cache",
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.name = name
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[V, float]] = {}

    def get(self, key: str) -> Optional[V]:
        """Get a cached value, or None if missing or stale."""
        with self._lock:
            cached = self._entries.get(key)
        if cached is None:
            return None
        value, created = cached
        if self._clock() - created >= self.ttl:
            return None
        log.debug(f"Cache hit for {self.name}: {key}")
        return value

    def put(self, key: str, value: V) -> None:
        """Cache a value, replacing any previous entry."""
        now = self._clock()
        with self._lock:
            self._entries[key] = (value, now)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
