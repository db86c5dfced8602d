"""Tests for history-independent predictive completion."""

import os
import sys
from unittest.mock import Mock

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from intent_resolver.config import ExtractionConfig
from intent_resolver.domain.errors import LayerUnavailableError
from intent_resolver.domain.models import Budget, Destination, TripIntent, TripType
from intent_resolver.nlp.predictive import ACTIVITIES, PredictiveCompleter, predicted_duration


@pytest.fixture
def completer():
    return PredictiveCompleter(ExtractionConfig())


def trip(*names, **kwargs):
    return TripIntent(destinations=tuple(Destination(n) for n in names), **kwargs)


@pytest.mark.parametrize("count,days", [(1, 5), (2, 7), (3, 12), (4, 16)])
def test_predicted_duration(count, days):
    assert predicted_duration(count) == days


class TestPredict:
    def test_single_city(self, completer):
        prediction = completer.predict(trip("Paris"))
        assert prediction.intent.duration_days == 5
        assert prediction.intent.budget == Budget(amount=1250.0, currency="USD", per_person=True)
        assert prediction.intent.interests == ()

    def test_known_duration_is_kept(self, completer):
        prediction = completer.predict(trip("Lisbon", duration_days=3))
        assert prediction.intent.duration_days is None
        assert prediction.intent.budget.amount == 300.0

    def test_honeymoon_budget_and_activities(self, completer):
        prediction = completer.predict(trip("Bali", duration_days=7, trip_type=TripType.HONEYMOON))
        assert prediction.intent.budget.amount == pytest.approx(1050.0)
        assert prediction.intent.interests == ACTIVITIES[TripType.HONEYMOON]

    def test_backpacking_is_cheaper(self, completer):
        prediction = completer.predict(trip("Hanoi", duration_days=10, trip_type=TripType.BACKPACKING))
        assert prediction.intent.budget.amount == pytest.approx(600.0)

    def test_existing_budget_is_kept(self, completer):
        prediction = completer.predict(trip("Paris", budget=Budget(amount=900)))
        assert prediction.intent.budget is None

    def test_duration_guess_respects_bounds(self):
        completer = PredictiveCompleter(ExtractionConfig(max_duration_days=4))
        prediction = completer.predict(trip("Paris"))
        assert prediction.intent.duration_days is None
        assert prediction.intent.budget is None

    def test_budget_over_bound_is_dropped(self):
        completer = PredictiveCompleter(ExtractionConfig(max_budget=100))
        assert completer.predict(trip("Paris")).intent.budget is None

    def test_destination_suggestions_from_interests(self, completer):
        prediction = completer.predict(TripIntent(interests=("beach",)))
        assert prediction.suggestions == (
            "Destinations that match your interests: Los Angeles, Miami, Dubai",
        )
        assert not prediction.intent.present_fields()


class TestSuggestionBackend:
    def test_similarity_backend_ranks_places(self):
        similarity = Mock()
        similarity.is_available.return_value = True
        similarity.suggest.return_value = ["Kyoto", "Rome"]
        completer = PredictiveCompleter(ExtractionConfig(), similarity)

        prediction = completer.predict(TripIntent(interests=("history",)))

        similarity.suggest.assert_called_once_with(("history",), 3)
        assert prediction.suggestions == ("Destinations that match your interests: Kyoto, Rome",)

    def test_unavailable_backend_uses_gazetteer(self):
        similarity = Mock()
        similarity.is_available.return_value = False
        completer = PredictiveCompleter(ExtractionConfig(), similarity)

        assert completer.matching_places(["beach"]) == ["Los Angeles", "Miami", "Dubai"]
        similarity.suggest.assert_not_called()

    def test_failing_backend_uses_gazetteer(self):
        similarity = Mock()
        similarity.is_available.return_value = True
        similarity.suggest.side_effect = LayerUnavailableError("no model", layer="similarity")
        completer = PredictiveCompleter(ExtractionConfig(), similarity)

        assert completer.matching_places(["beach"]) == ["Los Angeles", "Miami", "Dubai"]
