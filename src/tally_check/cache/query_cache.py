"""Query cache for backend reads.

Keys are tuples such as ("attendance", "today") so a mutation can invalidate a
whole family with a prefix like ("attendance",). Entries expire after their TTL,
which matches the polling interval of the page that reads them.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)

CacheKey = tuple[Hashable, ...]


@dataclass
class _Entry:
    value: Any
    expires: float


class QueryCache:
    def __init__(self, *, default_ttl: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self._default_ttl = float(default_ttl)
        self._clock = clock
        self._store: dict[CacheKey, _Entry] = {}
        self._lock = threading.Lock()
        self._inflight: dict[CacheKey, threading.Lock] = {}

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry and self._clock() < entry.expires:
                return entry.value
            self._store.pop(key, None)
            return None

    def set(self, key: CacheKey, value: Any, ttl: Optional[float] = None) -> None:
        ttl = self._default_ttl if ttl is None else float(ttl)
        with self._lock:
            self._store[key] = _Entry(value=value, expires=self._clock() + ttl)

    def fetch(self, key: CacheKey, loader: Callable[[], Any], ttl: Optional[float] = None) -> Any:
        """Return the cached value for `key`, loading it once when missing.

        Concurrent callers for the same key wait on one load instead of issuing
        duplicate backend requests. A failed load leaves nothing cached.
        """

        with self._lock:
            entry = self._store.get(key)
            if entry and self._clock() < entry.expires:
                return entry.value
            self._prune_expired()
            key_lock = self._inflight.setdefault(key, threading.Lock())

        try:
            with key_lock:
                cached = self.get(key)
                if cached is not None:
                    return cached
                value = loader()
                self.set(key, value, ttl)
                return value
        finally:
            with self._lock:
                if self._inflight.get(key) is key_lock:
                    del self._inflight[key]

    def invalidate(self, prefix: CacheKey) -> int:
        """Drop every key starting with `prefix`. Returns how many were dropped."""

        n = len(prefix)
        with self._lock:
            doomed = [k for k in self._store if k[:n] == prefix]
            for k in doomed:
                del self._store[k]
            self._prune_expired()
        if doomed:
            logger.debug("Invalidated %d cache entries for %s", len(doomed), prefix)
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _prune_expired(self) -> None:
        # Caller holds self._lock.
        now = self._clock()
        for k in [k for k, e in self._store.items() if e.expires <= now]:
            del self._store[k]

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
