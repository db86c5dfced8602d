"""Tests for the cache adapters and the intent cache built on them."""

import os
import sys
from datetime import date

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from intent_resolver.adapters.cache import InMemoryCache, NullCache
from intent_resolver.config import ExtractionConfig
from intent_resolver.domain.models import TripIntent
from intent_resolver.nlp import LexicalExtractor
from intent_resolver.services.intent_cache import IntentCache, normalize_text


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestInMemoryCache:
    def test_set_and_get(self, clock):
        cache = InMemoryCache(clock=clock)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert cache.get("b") is None

    def test_ttl_expiry(self, clock):
        cache = InMemoryCache(default_ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        clock.now = 10.0
        assert cache.get("a") == 1
        clock.now = 10.1
        assert cache.get("a") is None
        assert cache.size() == 0

    def test_per_entry_ttl(self, clock):
        cache = InMemoryCache(default_ttl_seconds=100, clock=clock)
        cache.set("short", 1, ttl=1)
        clock.now = 5
        assert not cache.has("short")

    def test_oldest_entry_evicted(self, clock):
        cache = InMemoryCache(max_size=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        assert cache.keys() == ["b", "c"]
        assert cache.stats()["evictions"] == 1

    def test_expired_entries_purged_before_eviction(self, clock):
        cache = InMemoryCache(max_size=2, clock=clock)
        cache.set("a", 1, ttl=1)
        cache.set("b", 2)
        clock.now = 2
        cache.set("c", 3)
        assert cache.keys() == ["b", "c"]
        assert cache.stats()["evictions"] == 0

    def test_overwrite_moves_to_newest(self, clock):
        cache = InMemoryCache(max_size=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        cache.set("c", 3)
        assert cache.keys() == ["a", "c"]
        assert cache.get("a") == 10

    def test_get_or_compute(self, clock):
        cache = InMemoryCache(clock=clock)
        calls = []

        def compute():
            calls.append(1)
            return "value"

        assert cache.get_or_compute("k", compute) == "value"
        assert cache.get_or_compute("k", compute) == "value"
        assert len(calls) == 1

    def test_stats(self, clock):
        cache = InMemoryCache(default_ttl_seconds=60, max_size=5, clock=clock)
        cache.set("a", 1)
        cache.get("a")
        cache.get("missing")
        clock.now = 4
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate_percent"] == 50.0
        assert stats["oldest_entry_age_seconds"] == 4

    def test_clean_expired_and_invalidate(self, clock):
        cache = InMemoryCache(default_ttl_seconds=1, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2, ttl=100)
        clock.now = 5
        assert cache.clean_expired() == 1
        assert cache.invalidate("b")
        assert not cache.invalidate("b")
        assert cache.clear() == 0


class TestNullCache:
    def test_always_misses(self):
        cache = NullCache()
        cache.set("a", 1)
        assert cache.get("a") is None
        assert cache.get_or_compute("a", lambda: 2) == 2
        assert cache.size() == 0


class TestIntentCache:
    TODAY = date(2026, 10, 14)

    def test_normalize(self):
        assert normalize_text("  Paris   for\t3 DAYS ") == "Paris for 3 DAYS"

    def test_key_is_scoped_by_date_and_pending_field(self):
        assert IntentCache.key("Next weekend", self.TODAY) == "2026-10-14|-|Next weekend"
        assert IntentCache.key("5", self.TODAY, "duration_days") == "2026-10-14|duration_days|5"

    def test_hit_after_put(self):
        cache = IntentCache(InMemoryCache(name="intent"))
        intent = TripIntent(duration_days=3)
        cache.put("Paris for 3 days", self.TODAY, intent)
        assert cache.get(" Paris  for 3 days", self.TODAY) == intent
        assert cache.get("Paris for 3 days", date(2026, 10, 15)) is None
        assert cache.get("Paris for 3 days", self.TODAY, "duration_days") is None
        assert cache.stats()["hits"] == 1

    def test_spelling_variants_do_not_share_an_entry(self):
        extractor = LexicalExtractor(ExtractionConfig())
        cache = IntentCache(InMemoryCache(name="intent"))
        lower = "i want to visit zermatt"
        cache.put(lower, self.TODAY, extractor.extract(lower, self.TODAY))

        assert cache.get("I want to visit Zermatt", self.TODAY) is None
        assert extractor.extract("I want to visit Zermatt", self.TODAY).destination_names == ("Zermatt",)

    def test_disabled(self):
        backing = InMemoryCache(name="intent")
        cache = IntentCache(backing, enabled=False)
        cache.put("Paris", self.TODAY, TripIntent(duration_days=3))
        assert cache.get("Paris", self.TODAY) is None
        assert backing.size() == 0
