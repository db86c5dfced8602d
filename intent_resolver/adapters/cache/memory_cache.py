"""Thread-safe in-memory cache with TTL and bounded size.

Backs the intent cache (normalized utterance -> partial intent) and the
lazily loaded embedding pipeline.

- Thread-safe with RLock, shared by concurrent sessions
- TTL checked on read, expired entries dropped lazily or by clean_expired()
- Hard entry cap, oldest entry evicted first
- Hit/miss statistics
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached value and the time it was stored."""

    value: T
    created_at: float
    expires_at: float


@dataclass
class InMemoryCache(Generic[T]):
    """Thread-safe in-memory cache with optional TTL and size cap.

    Implements the CachePort protocol.

    Attributes:
        default_ttl_seconds: Time-to-live for entries (None = no expiry)
        max_size: Maximum number of entries (None = unlimited)
        name: Cache name, used as the logger suffix
        clock: Monotonic time source, replaceable in tests

    Example:
        cache = InMemoryCache[TripIntent](name="intent", default_ttl_seconds=3600, max_size=100)
        intent = cache.get_or_compute(key, lambda: extractor.extract(text))
    """

    default_ttl_seconds: Optional[float] = None
    max_size: Optional[int] = None
    name: str = "cache"
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    _store: "OrderedDict[str, CacheEntry[T]]" = field(
        default_factory=OrderedDict, repr=False
    )
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    _hits: int = field(default=0, repr=False)
    _misses: int = field(default=0, repr=False)
    _evictions: int = field(default=0, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(f"cache.{self.name}")

    def _is_expired(self, entry: CacheEntry[T], now: float) -> bool:
        return now > entry.expires_at

    def get(self, key: str) -> Optional[T]:
        """Get a value, or None if missing or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._is_expired(entry, self.clock()):
                del self._store[key]
                self._logger.debug("Cache entry expired", extra={"key": key})
                self._misses += 1
                return None

            self._hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        """Check for a live entry without touching the statistics."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if self._is_expired(entry, self.clock()):
                del self._store[key]
                return False
            return True

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        """Store a value.

        When the cache is full, expired entries are purged first and then
        the oldest entries are evicted until there is room.

        Args:
            key: The cache key.
            value: The value to cache.
            ttl: Optional TTL override for this entry.
        """
        with self._lock:
            now = self.clock()
            if key in self._store:
                del self._store[key]
            elif self.max_size is not None and len(self._store) >= self.max_size:
                self._purge_expired(now)
                while len(self._store) >= self.max_size:
                    oldest_key, _ = self._store.popitem(last=False)
                    self._evictions += 1
                    self._logger.debug(
                        "Cache evicted entry",
                        extra={"key": oldest_key, "reason": "max_size"},
                    )

            effective_ttl = ttl if ttl is not None else self.default_ttl_seconds
            expires_at = now + effective_ttl if effective_ttl is not None else float("inf")
            self._store[key] = CacheEntry(value=value, created_at=now, expires_at=expires_at)
            self._logger.debug(
                "Cache entry set",
                extra={"key": key, "ttl": effective_ttl, "size": len(self._store)},
            )

    def get_or_compute(self, key: str, compute_fn: Callable[[], T]) -> T:
        """Get from cache or compute and cache the value.

        The computation runs outside the lock, so two threads may compute
        the same key concurrently; the last write wins.
        """
        value = self.get(key)
        if value is not None:
            self._logger.debug("Cache hit", extra={"key": key})
            return value

        self._logger.debug("Cache miss, computing", extra={"key": key})
        computed = compute_fn()
        self.set(key, computed)
        return computed

    def _purge_expired(self, now: float) -> int:
        expired = [k for k, e in self._store.items() if self._is_expired(e, now)]
        for key in expired:
            del self._store[key]
        return len(expired)

    def clean_expired(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            removed = self._purge_expired(self.clock())
            if removed:
                self._logger.debug(
                    "Cleaned expired cache entries", extra={"removed": removed}
                )
            return removed

    def clear(self) -> int:
        """Clear all entries and reset statistics."""
        with self._lock:
            count = len(self._store)
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._logger.info("Cache cleared", extra={"entries_cleared": count})
            return count

    def invalidate(self, key: str) -> bool:
        with self._lock:
            if key in self._store:
                del self._store[key]
                self._logger.debug("Cache entry invalidated", extra={"key": key})
                return True
            return False

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def stats(self) -> Dict[str, Any]:
        """Return hit/miss counts, size limits and the oldest entry age."""
        with self._lock:
            total = self._hits + self._misses
            hit_rate = (self._hits / total * 100) if total > 0 else 0.0
            oldest_age = None
            if self._store:
                oldest = min(e.created_at for e in self._store.values())
                oldest_age = self.clock() - oldest
            return {
                "size": len(self._store),
                "max_size": self.max_size,
                "ttl_seconds": self.default_ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate_percent": round(hit_rate, 1),
                "oldest_entry_age_seconds": oldest_age,
            }

    def keys(self) -> list[str]:
        """Return keys, oldest first."""
        with self._lock:
            return list(self._store.keys())
