"""Cache adapters - Implementations of the CachePort.

Available implementations:
- InMemoryCache: Thread-safe in-memory cache with TTL and size cap
- NullCache: No-op cache for testing (always misses)
"""

from .memory_cache import CacheEntry, InMemoryCache
from .null_cache import NullCache

__all__ = ["CacheEntry", "InMemoryCache", "NullCache"]
