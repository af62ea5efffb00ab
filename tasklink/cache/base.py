"""Shared pieces for the short-lived TTL caches."""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry(Generic[T]):
    """A cache entry with metadata."""

    key: str
    data: T
    fetched_at: float
    ttl_seconds: float

    def is_fresh(self, now: float) -> bool:
        """An entry is usable only while ``now - fetched_at < ttl``."""
        return now - self.fetched_at < self.ttl_seconds


class TimedCache(Generic[T]):
    """Single-slot cache: one entry, replaced wholesale, expired by age.

    Every cache in tasklink holds exactly one value (one credential, one
    signature, one settings snapshot), so there is no eviction policy.
    """

    def __init__(self, name: str, ttl_seconds: float, clock: Optional[Clock] = None):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self.clock: Clock = clock or time.monotonic
        self._entry: Optional[CacheEntry[T]] = None
        self.hits = 0
        self.misses = 0

    def lookup(self, key: str) -> Optional[T]:
        """Return the cached value for ``key`` if present and fresh."""
        entry = self._entry
        if entry is not None and entry.key == key and entry.is_fresh(self.clock()):
            self._record_hit()
            return entry.data
        self._record_miss()
        return None

    def store(self, key: str, value: T, fetched_at: Optional[float] = None) -> None:
        self._entry = CacheEntry(
            key=key,
            data=value,
            fetched_at=self.clock() if fetched_at is None else fetched_at,
            ttl_seconds=self.ttl_seconds,
        )

    def invalidate(self) -> None:
        self._entry = None

    @property
    def entry(self) -> Optional[CacheEntry[T]]:
        return self._entry

    def _record_hit(self) -> None:
        self.hits += 1

    def _record_miss(self) -> None:
        self.misses += 1

    def get_hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def get_stats(self) -> Dict[str, Any]:
        return {
            "cache": self.name,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate_percent": self.get_hit_rate(),
            "populated": self._entry is not None,
            "ttl_seconds": self.ttl_seconds,
        }
