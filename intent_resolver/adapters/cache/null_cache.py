"""Null cache implementation for testing.

Always misses, so tests never depend on intents cached by an earlier
test. Use it to check that a code path does not rely on caching.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class NullCache(Generic[T]):
    """No-op cache - every get() misses, every get_or_compute() computes."""

    name: str = "null"

    def get(self, key: str) -> Optional[T]:
        return None

    def has(self, key: str) -> bool:
        return False

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        pass

    def get_or_compute(self, key: str, compute_fn: Callable[[], T]) -> T:
        return compute_fn()

    def clean_expired(self) -> int:
        return 0

    def clear(self) -> int:
        return 0

    def invalidate(self, key: str) -> bool:
        return False

    def size(self) -> int:
        return 0

    def stats(self) -> Dict[str, Any]:
        return {"size": 0, "hits": 0, "misses": 0, "hit_rate_percent": 0.0}

    def keys(self) -> list[str]:
        return []
