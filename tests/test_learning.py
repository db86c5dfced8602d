"""Tests for pattern learning, the pattern stores and the learning recorder."""

import logging
import os
import sys
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from intent_resolver.adapters.patterns import InMemoryPatternStore, JsonFilePatternStore
from intent_resolver.config import LearningConfig
from intent_resolver.domain.models import (
    Destination,
    LearnedPattern,
    ParseRecord,
    TripIntent,
    TripType,
)
from intent_resolver.nlp.learning import (
    apply_learned_patterns,
    common_elements,
    extract_patterns,
    jaccard,
    keywords,
    matches_pattern,
)
from intent_resolver.services.learning import LearningRecorder, to_record

NOW = datetime(2026, 10, 14, 9, 0, tzinfo=timezone.utc)


def bali(text="beach holiday in Bali", duration=7):
    return ParseRecord(text=text, destinations=("Bali",), duration_days=duration)


class TestSimilarity:
    def test_identical_ignores_case(self):
        assert jaccard("Paris trip", "paris TRIP") == 1.0

    def test_partial_overlap(self):
        assert jaccard("a b", "b c") == pytest.approx(1 / 3)

    def test_empty(self):
        assert jaccard("", "") == 0.0

    def test_keywords_drop_stop_words_and_numbers(self):
        assert keywords("I want to plan a trip to Paris for 5 days in 2026") == ("days", "paris")

    def test_common_elements_share(self):
        groups = [("Bali", "Lombok"), ("Bali",), ("Bali", "Java"), ("Java",)]
        assert common_elements(groups) == ("Bali",)


class TestExtractPatterns:
    def test_recurring_group_becomes_pattern(self):
        history = [bali(), bali(), bali(), ParseRecord("city break London", ("London",))]
        patterns = extract_patterns(history, min_frequency=3)
        assert len(patterns) == 1
        pattern = patterns[0]
        assert pattern.keywords == ("bali", "beach", "holiday")
        assert pattern.frequency == 3
        assert pattern.confidence == pytest.approx(0.75)
        assert pattern.destinations == ("Bali",)
        assert len(pattern.examples) == 3

    def test_group_without_common_destination_is_dropped(self):
        history = [
            ParseRecord("beach holiday", ("Bali",)),
            ParseRecord("beach holiday", ("Phuket",)),
            ParseRecord("beach holiday", ("Cancun",)),
        ]
        assert extract_patterns(history, min_frequency=3) == []

    def test_small_group_is_dropped(self):
        assert extract_patterns([bali(), bali()], min_frequency=3) == []


class TestApplyPatterns:
    @pytest.fixture
    def pattern(self):
        return LearnedPattern(
            keywords=("bali", "beach", "holiday"), frequency=3, confidence=0.75,
            destinations=("Bali",),
        )

    def test_matches_pattern_share(self, pattern):
        assert matches_pattern("cheap beach holiday somewhere", pattern)
        assert not matches_pattern("beach", pattern)

    def test_neighbours_suggest_and_fill_duration(self):
        neighbours = [
            (ParseRecord("week in Lisbon", ("Lisbon",), TripType.CULTURAL, 5), 0.6),
            (ParseRecord("Lisbon and Porto", ("Lisbon", "Porto"), TripType.CULTURAL, 7), 0.5),
        ]
        hints = apply_learned_patterns("Portugal trip", TripIntent(), neighbours, [])
        assert hints.suggestions == (
            "Based on similar searches, you might also want to visit: Lisbon",
        )
        assert hints.intent.duration_days == 6
        assert hints.intent.trip_type == TripType.CULTURAL

    def test_known_fields_are_untouched(self):
        neighbours = [(ParseRecord("Lisbon", ("Lisbon",), duration_days=5), 0.6)]
        known = TripIntent(destinations=(Destination("Lisbon"),), duration_days=3)
        hints = apply_learned_patterns("Lisbon", known, neighbours, [])
        assert hints.intent.duration_days is None
        assert hints.suggestions == ()

    def test_pattern_hint(self, pattern):
        hints = apply_learned_patterns("beach holiday please", TripIntent(), [], [pattern])
        assert hints.matched_patterns == 1
        assert hints.suggestions == ("Travelers with similar requests often choose: Bali",)


class TestInMemoryPatternStore:
    def test_history_is_bounded(self):
        store = InMemoryPatternStore(LearningConfig(max_history=2))
        for text in ("one", "two", "three"):
            store.record(ParseRecord(text, ("Rome",)))
        assert [r.text for r in store.history()] == ["two", "three"]

    def test_find_similar(self):
        store = InMemoryPatternStore(LearningConfig())
        store.record(bali())
        store.record(ParseRecord("ski week in Zurich", ("Zurich",)))
        similar = store.find_similar("beach holiday in Bali please")
        assert len(similar) == 1
        assert similar[0][0].destinations == ("Bali",)
        assert similar[0][1] == pytest.approx(0.8)

    def test_patterns_rebuilt_on_record(self):
        store = InMemoryPatternStore(LearningConfig(min_pattern_frequency=3))
        for _ in range(3):
            store.record(bali())
        assert len(store.patterns()) == 1

    def test_statistics(self):
        store = InMemoryPatternStore(LearningConfig())
        store.record(bali(duration=6))
        store.record(bali(duration=8))
        stats = store.statistics()
        assert stats["total_records"] == 2
        assert stats["top_destinations"] == [("Bali", 2)]
        assert stats["average_duration"] == 7.0
        assert stats["trip_types"] == {"general": 2}


class TestJsonFilePatternStore:
    def test_history_survives_restart(self, tmp_path):
        path = tmp_path / "history.json"
        store = JsonFilePatternStore(LearningConfig(), path=path)
        store.record(ParseRecord("beach holiday", ("Bali",), TripType.RELAXATION, 7, NOW))
        assert path.exists()

        reloaded = JsonFilePatternStore(LearningConfig(), path=path)
        assert reloaded.history() == store.history()

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "history.json"
        path.write_text("{not json")
        store = JsonFilePatternStore(LearningConfig(), path=path)
        assert store.history() == []


class TestLearningRecorder:
    @pytest.fixture
    def intent(self):
        return TripIntent(destinations=(Destination("Lisbon"),), duration_days=5)

    def test_to_record(self, intent):
        record = to_record("a week in Lisbon", intent, NOW)
        assert record.destinations == ("Lisbon",)
        assert record.duration_days == 5
        assert record.trip_type == TripType.GENERAL

    def test_submit_writes_in_background(self, intent):
        store = InMemoryPatternStore(LearningConfig())
        recorder = LearningRecorder(store)
        recorder.submit("Lisbon for 5 days", intent, NOW)
        recorder.flush(timeout=5)
        assert [r.text for r in store.history()] == ["Lisbon for 5 days"]
        recorder.shutdown()

    def test_skips_without_destinations(self):
        store = Mock()
        recorder = LearningRecorder(store)
        recorder.submit("hello", TripIntent(), NOW)
        recorder.flush(timeout=5)
        store.record.assert_not_called()

    def test_disabled(self, intent):
        store = Mock()
        recorder = LearningRecorder(store, enabled=False)
        recorder.submit("Lisbon", intent, NOW)
        recorder.flush(timeout=5)
        store.record.assert_not_called()

    def test_store_failure_is_logged(self, intent, caplog):
        store = Mock()
        store.record.side_effect = OSError("disk full")
        recorder = LearningRecorder(store)
        with caplog.at_level(logging.WARNING, logger="intent_resolver.services.learning"):
            recorder.submit("Lisbon", intent, NOW)
            recorder.flush(timeout=5)
        assert "Failed to record resolution" in caplog.text
