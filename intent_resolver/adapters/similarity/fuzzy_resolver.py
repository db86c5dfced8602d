"""Fuzzy destination resolver using rapidfuzz.

Matches a free-text phrase ("Barcelonna", "rio") against the canonical
names and aliases of the gazetteer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from rapidfuzz import fuzz, process

from ...config import SimilarityConfig, get_config
from ...domain.models import DestinationMatch
from ...nlp.gazetteer import ALL_PLACES, places_for_tags


def _choices() -> Dict[str, str]:
    """Lower-cased name or alias -> canonical name."""
    table: Dict[str, str] = {}
    for place in ALL_PLACES:
        table[place.name.lower()] = place.name
        for alias in place.aliases:
            table[alias.lower()] = place.name
    return table


@dataclass
class FuzzyDestinationResolver:
    """Edit-distance similarity over the gazetteer.

    This adapter implements DestinationSimilarityPort. It needs no model
    and is always available when enabled.

    Attributes:
        config: Similarity settings (min_score, top_k)
    """

    config: SimilarityConfig = field(default_factory=lambda: get_config().similarity)
    _choices: Dict[str, str] = field(default_factory=_choices, init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def is_available(self) -> bool:
        return self.config.enabled

    def closest(self, phrase: str, top_k: int = 3) -> Optional[DestinationMatch]:
        """Return the best canonical match for a phrase with alternates.

        Args:
            phrase: Destination phrase.
            top_k: Canonical candidates to return (best + alternates).

        Returns:
            DestinationMatch with a score in [0, 1], or None.
        """
        query = phrase.strip().lower()
        if not query:
            return None

        results = process.extract(
            query,
            list(self._choices.keys()),
            scorer=fuzz.WRatio,
            limit=top_k * 3,
            score_cutoff=self.config.min_score * 100,
        )

        ranked: List[str] = []
        best_score = 0.0
        for choice, score, _index in results:
            name = self._choices[choice]
            if name in ranked:
                continue
            if not ranked:
                best_score = score / 100.0
            ranked.append(name)
            if len(ranked) == top_k:
                break

        if not ranked:
            self._logger.debug("No fuzzy destination match", extra={"phrase": phrase})
            return None

        return DestinationMatch(
            query=phrase,
            name=ranked[0],
            score=best_score,
            alternatives=tuple(ranked[1:]),
        )

    def suggest(self, tags: Sequence[str], limit: int = 3) -> Sequence[str]:
        return places_for_tags(tags, limit)
