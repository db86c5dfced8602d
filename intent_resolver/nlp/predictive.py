"""History-independent defaults for fields the user has not stated."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import ExtractionConfig, get_config
from ..domain.errors import LayerUnavailableError
from ..domain.models import Budget, TripIntent, TripType
from ..ports.similarity import DestinationSimilarityPort
from .gazetteer import daily_cost, places_for_tags

LUXURY_FACTOR = 1.5
THRIFT_FACTOR = 0.6

ACTIVITIES: Dict[TripType, Tuple[str, ...]] = {
    TripType.HONEYMOON: ("romantic dinners", "couples spa", "sunset viewing"),
    TripType.COUPLE: ("romantic dinners", "couples spa", "sunset viewing"),
    TripType.ADVENTURE: ("hiking", "water sports", "zip-lining"),
    TripType.FAMILY: ("theme parks", "aquariums", "zoos"),
    TripType.BUSINESS: ("networking events", "conference venues", "business dinners"),
}
DEFAULT_ACTIVITIES = ("sightseeing", "local cuisine", "cultural experiences")


@dataclass(frozen=True, slots=True)
class Prediction:
    """Soft values predicted for a request."""

    intent: TripIntent
    suggestions: Tuple[str, ...] = ()


def predicted_duration(destination_count: int) -> int:
    """1 city -> 5 days, 2 -> 7, more -> 4 per city."""
    if destination_count == 1:
        return 5
    if destination_count == 2:
        return 7
    return destination_count * 4


@dataclass
class PredictiveCompleter:
    """Fill missing fields from what is known, without looking at history.

    Attributes:
        config: Bounds applied to predicted values
        similarity: Optional similarity backend ranking destinations for
            interests; the gazetteer tags are used when it is missing or
            unavailable
    """

    config: ExtractionConfig = field(default_factory=lambda: get_config().extraction)
    similarity: Optional[DestinationSimilarityPort] = None
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def estimate_budget(self, intent: TripIntent, duration: int) -> Budget:
        """Per-person budget in USD from the costliest destination."""
        per_day = max(daily_cost(d.name) for d in intent.destinations)
        amount = float(per_day * duration)
        trip_type = intent.effective_trip_type
        if trip_type in (TripType.LUXURY, TripType.HONEYMOON):
            amount *= LUXURY_FACTOR
        elif trip_type in (TripType.BACKPACKING, TripType.BUDGET):
            amount *= THRIFT_FACTOR
        return Budget(amount=round(amount, 2), currency="USD", per_person=True)

    def matching_places(self, tags: Sequence[str], limit: int = 3) -> List[str]:
        """Destinations that fit the interests, best first."""
        if self.similarity is not None and self.similarity.is_available():
            try:
                return list(self.similarity.suggest(tags, limit))
            except LayerUnavailableError as e:
                self._logger.warning(
                    "Similarity suggestions unavailable, using gazetteer tags",
                    extra={"error": str(e)},
                )
        return places_for_tags(tags, limit)

    def predict(self, intent: TripIntent) -> Prediction:
        """Predict duration, budget, interests and destination suggestions.

        Args:
            intent: Everything known so far, from any source.

        Returns:
            Prediction holding only fields ``intent`` lacks.
        """
        duration: Optional[int] = None
        budget: Optional[Budget] = None
        interests: Tuple[str, ...] = ()
        suggestions: List[str] = []

        known_duration = intent.resolved_duration
        if intent.destinations and known_duration is None:
            guess = predicted_duration(len(intent.destinations))
            if self.config.min_duration_days <= guess <= self.config.max_duration_days:
                duration = guess
                known_duration = guess

        if intent.destinations and known_duration is not None and intent.budget is None:
            budget = self.estimate_budget(intent, known_duration)
            if budget.amount is not None and budget.amount > self.config.max_budget:
                budget = None

        if intent.has("trip_type") and not intent.interests:
            interests = ACTIVITIES.get(intent.trip_type, DEFAULT_ACTIVITIES)

        if not intent.destinations and intent.interests:
            places = self.matching_places(intent.interests)
            if places:
                suggestions.append(
                    "Destinations that match your interests: " + ", ".join(places)
                )

        self._logger.debug(
            "Predictive completion",
            extra={
                "duration_days": duration,
                "budget": budget.amount if budget else None,
                "interests": list(interests),
            },
        )
        return Prediction(
            intent=TripIntent(duration_days=duration, budget=budget, interests=interests),
            suggestions=tuple(suggestions),
        )
