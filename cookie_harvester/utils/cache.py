"""In-memory TTL cache for extraction results.

Maps a target URL to the cookies captured for it so repeated
requests within the TTL window skip launching a browser.

**Expiry:** entries expire a fixed ``ttl_seconds`` after their
last ``set``.  Expired entries are evicted lazily when read and
swept opportunistically on every write; there is no manual
eviction call.

**Concurrency:** a single lock guards the backing dict.  Each
entry is replaced as a whole, so readers see either the previous
value or the new one, never a mix.  Last ``set`` wins.
"""

from __future__ import annotations

import dataclasses
import threading
import time
from collections.abc import Callable
from typing import Generic, TypeVar

from cookie_harvester.utils import logger

log = logger.create_logger("Cache")

DEFAULT_TTL_SECONDS = 600

V = TypeVar("V")


@dataclasses.dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """A cached value and the clock reading at which it was stored."""

    key: str
    value: V
    inserted_at: float


class TTLCache(Generic[V]):
    """Process-wide key/value store with a fixed time-to-live."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _is_expired(self, entry: CacheEntry[V], now: float) -> bool:
        return now - entry.inserted_at >= self._ttl

    def get(self, key: str) -> V | None:
        """Return the live value for *key*, or ``None`` on a miss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                log.debug("Cache entry expired", {"key": key})
                return None
            return entry.value

    def set(self, key: str, value: V) -> None:
        """Store *value* under *key*, replacing any prior entry and resetting its TTL."""
        with self._lock:
            now = self._clock()
            self._sweep(now)
            self._entries[key] = CacheEntry(key=key, value=value, inserted_at=now)

    def _sweep(self, now: float) -> None:
        """Drop every expired entry.  Caller must hold the lock."""
        stale = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for k in stale:
            del self._entries[k]
        if stale:
            log.debug("Evicted expired cache entries", {"count": len(stale)})

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for e in self._entries.values() if not self._is_expired(e, now))
