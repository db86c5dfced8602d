"""Cache port - Injectable caching abstraction.

The intent cache and the lazily loaded model pipelines both go through
this protocol, so caching is an explicit, constructor-injected service
rather than module-level state.
"""

from __future__ import annotations

from typing import Callable, Optional, Protocol, TypeVar

T = TypeVar("T")


class CachePort(Protocol[T]):
    """Port for caching.

    Implementations:
    - adapters/cache/memory_cache.py (InMemoryCache) - TTL + bounded size
    - adapters/cache/null_cache.py (NullCache) - Testing, always misses
    """

    def get(self, key: str) -> Optional[T]:
        """Get a value from the cache.

        Args:
            key: The cache key.

        Returns:
            The cached value, or None if not found or expired.
        """
        ...

    def set(self, key: str, value: T) -> None:
        """Set a value in the cache, evicting the oldest entry when full.

        Args:
            key: The cache key.
            value: The value to cache.
        """
        ...

    def get_or_compute(self, key: str, compute_fn: Callable[[], T]) -> T:
        """Get from cache or compute and cache the value.

        Args:
            key: The cache key.
            compute_fn: Function to compute the value if not cached.

        Returns:
            The cached or computed value.
        """
        ...

    def clear(self) -> int:
        """Clear all entries and return how many were removed."""
        ...

    def invalidate(self, key: str) -> bool:
        """Remove one entry; True if it existed."""
        ...

    def size(self) -> int:
        """Return the number of live entries."""
        ...
