"""Tests for the language-model fallback and the HTTP completion adapter."""

import json
import os
import sys
from datetime import date
from unittest.mock import MagicMock, Mock

import pytest
import requests

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from intent_resolver.adapters.completion import HttpCompletionAdapter, NullCompletion
from intent_resolver.config import ExtractionConfig, LLMConfig
from intent_resolver.domain.errors import CompletionError
from intent_resolver.domain.models import BudgetTier, ConfidenceTier, TripType
from intent_resolver.nlp.llm_fallback import (
    LanguageModelFallback,
    PlausibilityFilter,
    build_prompt,
    parse_completion,
)

TODAY = date(2026, 10, 14)


@pytest.fixture
def bounds():
    return PlausibilityFilter(ExtractionConfig(), TODAY)


class TestParseCompletion:
    def test_strict(self):
        assert parse_completion('{"duration": 5}') == ({"duration": 5}, "strict")

    def test_code_fences(self):
        payload, method = parse_completion('```json\n{"duration": 5}\n```')
        assert payload == {"duration": 5}
        assert method == "stripped_fences"

    def test_surrounding_prose(self):
        payload, method = parse_completion('Sure! Here it is: {"duration": 5} Hope that helps.')
        assert payload == {"duration": 5}
        assert method == "extracted_braces"

    @pytest.mark.parametrize("raw", ["", "no json here", "[1, 2, 3]", "{broken"])
    def test_unrecoverable(self, raw):
        with pytest.raises(CompletionError):
            parse_completion(raw)


class TestPlausibilityFilter:
    @pytest.mark.parametrize(
        "value,expected",
        [(5, 5), ("7", 7), (7.0, 7), (0, None), (45, None), (True, None), (2.5, None), ("soon", None)],
    )
    def test_duration(self, bounds, value, expected):
        assert bounds.duration(value) == expected

    def test_start_date_bounds(self, bounds):
        assert bounds.start_date("2026-11-02") == date(2026, 11, 2)
        assert bounds.start_date("2026-10-01") is None
        assert bounds.start_date("2031-01-01") is None
        assert bounds.start_date("next week") is None

    @pytest.mark.parametrize(
        "value,expected",
        [("paris", "Paris"), ("Ouagadougou", "Ouagadougou"), ("somewhere", None), ("123", None), (None, None)],
    )
    def test_place(self, bounds, value, expected):
        assert bounds.place(value) == expected

    def test_destinations_deduplicated_and_low_confidence(self, bounds):
        destinations = bounds.destinations(
            [{"city": "Rome", "days": 3}, {"city": "rome", "days": 2}, "Florence", {"city": 42}]
        )
        assert [(d.name, d.days) for d in destinations] == [("Rome", 3), ("Florence", None)]
        assert all(d.confidence == ConfidenceTier.LOW for d in destinations)

    def test_budget(self, bounds):
        budget = bounds.budget({"amount": 2000, "currency": "eur", "perPerson": True, "tier": "bogus"})
        assert budget.amount == 2000.0
        assert budget.currency == "EUR"
        assert budget.per_person
        assert budget.tier is None

    def test_budget_tier_only(self, bounds):
        budget = bounds.budget({"amount": None, "currency": None, "tier": "Luxury"})
        assert budget.amount is None
        assert budget.currency == "USD"
        assert budget.tier == BudgetTier.LUXURY

    def test_budget_out_of_range(self, bounds):
        assert bounds.budget({"amount": 5_000_000}) is None

    def test_trip_type(self, bounds):
        assert bounds.trip_type("Business") == TripType.BUSINESS
        assert bounds.trip_type("general") is None
        assert bounds.trip_type("spaceflight") is None

    def test_to_intent(self, bounds):
        intent = bounds.to_intent(
            {
                "destinations": [{"city": "Boston"}, {"city": "Tokyo", "days": None}],
                "origin": "Boston",
                "startDate": "2026-11-01",
                "endDate": "2026-11-05",
                "duration": None,
                "travelerCount": 200,
                "tripType": "general",
                "interests": ["Food", "food", ""],
            }
        )
        assert intent.origin == "Boston"
        assert intent.destination_names == ("Tokyo",)
        assert intent.start_date == date(2026, 11, 1)
        assert intent.duration_days == 5
        assert intent.traveler_count is None
        assert intent.trip_type is None
        assert intent.interests == ("food",)


class TestLanguageModelFallback:
    @pytest.fixture
    def completion(self):
        completion = Mock()
        completion.is_available.return_value = True
        return completion

    @pytest.fixture
    def fallback(self, completion):
        return LanguageModelFallback(
            completion, LLMConfig(enabled=True, timeout_seconds=2.0), ExtractionConfig()
        )

    def test_prompt_mentions_missing_fields(self):
        prompt = build_prompt('a "quick" trip', TODAY, ["startDate", "duration"])
        assert "Today is 2026-10-14." in prompt
        assert "Still unknown: startDate, duration." in prompt
        assert "a 'quick' trip" in prompt

    def test_extract(self, fallback, completion):
        completion.complete.return_value = json.dumps(
            {"destinations": [{"city": "Lisbon", "days": None}], "startDate": "2026-12-01", "duration": 6}
        )
        intent = fallback.extract("somewhere sunny in December", TODAY, ["startDate"])
        assert intent.destination_names == ("Lisbon",)
        assert intent.start_date == date(2026, 12, 1)
        assert intent.duration_days == 6
        completion.complete.assert_called_once()
        assert completion.complete.call_args.args[1] == 2.0

    def test_repaired_reply_is_accepted(self, fallback, completion):
        completion.complete.return_value = '```json\n{"travelerCount": 3}\n```'
        assert fallback.extract("us three", TODAY, ["travelerCount"]).traveler_count == 3

    def test_garbage_reply_raises(self, fallback, completion):
        completion.complete.return_value = "I cannot help with that."
        with pytest.raises(CompletionError):
            fallback.extract("hmm", TODAY, ["destination"])

    def test_unavailable_when_disabled(self, completion):
        fallback = LanguageModelFallback(completion, LLMConfig(enabled=False), ExtractionConfig())
        assert not fallback.is_available()

    def test_unavailable_with_null_backend(self):
        fallback = LanguageModelFallback(NullCompletion(), LLMConfig(enabled=True), ExtractionConfig())
        assert not fallback.is_available()


def response(status_code=200, body=None):
    mock = Mock()
    mock.status_code = status_code
    if isinstance(body, Exception):
        mock.json.side_effect = body
    else:
        mock.json.return_value = body
    return mock


class TestHttpCompletionAdapter:
    @pytest.fixture
    def config(self):
        return LLMConfig(enabled=True, api_key="sk-test", model="test-model", timeout_seconds=3.0)

    @pytest.fixture
    def session(self):
        return MagicMock(spec=requests.Session)

    def test_complete(self, config, session):
        session.post.return_value = response(
            body={"choices": [{"message": {"content": "  {\"duration\": 5}  "}}]}
        )
        adapter = HttpCompletionAdapter(config, session)
        assert adapter.complete("prompt") == '{"duration": 5}'

        kwargs = session.post.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["model"] == "test-model"
        assert kwargs["json"]["messages"] == [{"role": "user", "content": "prompt"}]
        assert kwargs["timeout"] == 3.0

    def test_explicit_timeout(self, config, session):
        session.post.return_value = response(body={"choices": [{"message": {"content": "{}"}}]})
        HttpCompletionAdapter(config, session).complete("prompt", timeout=0.5)
        assert session.post.call_args.kwargs["timeout"] == 0.5

    def test_http_error(self, config, session):
        session.post.return_value = response(status_code=503)
        with pytest.raises(CompletionError) as exc_info:
            HttpCompletionAdapter(config, session).complete("prompt")
        assert exc_info.value.status_code == 503

    def test_timeout(self, config, session):
        session.post.side_effect = requests.Timeout("slow")
        with pytest.raises(CompletionError, match="timed out"):
            HttpCompletionAdapter(config, session).complete("prompt")

    def test_connection_error(self, config, session):
        session.post.side_effect = requests.ConnectionError("down")
        with pytest.raises(CompletionError, match="request failed"):
            HttpCompletionAdapter(config, session).complete("prompt")

    @pytest.mark.parametrize(
        "body",
        [{"choices": []}, {"unexpected": True}, ValueError("not json"),
         {"choices": [{"message": {"content": "   "}}]}],
    )
    def test_malformed_body(self, config, session, body):
        session.post.return_value = response(body=body)
        with pytest.raises(CompletionError):
            HttpCompletionAdapter(config, session).complete("prompt")

    def test_not_configured(self, session):
        adapter = HttpCompletionAdapter(LLMConfig(enabled=True), session)
        assert not adapter.is_available()
        with pytest.raises(CompletionError):
            adapter.complete("prompt")
        session.post.assert_not_called()

    def test_empty_prompt(self, config, session):
        with pytest.raises(CompletionError):
            HttpCompletionAdapter(config, session).complete("  ")
