"""Keyword sequence model for conversation context.

Summarizes the user turns of a session into one signal: how much travel
context has accumulated (confidence), which topics dominate, and how
many turns were seen. It never extracts fields.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Sequence

from ...config import SequenceConfig, get_config
from ...domain.models import ContextSignal
from ...nlp.gazetteer import place_pattern

VOCABULARY: Dict[str, FrozenSet[str]] = {
    "question": frozenset({"where", "when", "what", "how", "why", "which"}),
    "travel": frozenset({
        "travel", "trip", "visit", "go", "fly", "stay", "destination",
        "origin", "vacation", "holiday", "getaway",
    }),
    "time": frozenset({
        "days", "day", "weeks", "week", "weekend", "month", "year", "next", "this",
        "january", "february", "march", "april", "may", "june", "july",
        "august", "september", "october", "november", "december",
        "tomorrow", "today", "summer", "winter", "spring", "autumn",
    }),
    "intent": frozenset({
        "want", "need", "like", "prefer", "looking", "planning",
        "interested", "thinking", "considering",
    }),
    "preferences": frozenset({
        "budget", "cheap", "luxury", "family", "solo", "couple",
        "adults", "kids", "people", "mid-range",
    }),
    "politeness": frozenset({"yes", "no", "maybe", "thanks", "please", "help"}),
}

_TOKEN = re.compile(r"[a-z][a-z'-]*")
_DATE_WORDS = VOCABULARY["time"]

BASE_CONFIDENCE = 0.5
PER_TURN = 0.05
MAX_TURN_BONUS = 0.3
CEILING = 0.95


@dataclass
class KeywordSequenceModel:
    """Vocabulary-based conversation summarizer.

    This adapter implements SequenceContextPort.

    Attributes:
        config: Sequence settings (enabled, max_messages)
    """

    config: SequenceConfig = field(default_factory=lambda: get_config().sequence)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def is_available(self) -> bool:
        return self.config.enabled

    def summarize(self, utterances: Sequence[str]) -> ContextSignal:
        """Summarize the most recent user turns.

        Confidence starts at 0.5, grows by 0.05 per turn (at most 0.3),
        plus 0.1 once a destination was named, 0.05 for time words and
        0.05 for an origin, capped at 0.95.
        """
        window = list(utterances)[-self.config.max_messages:]
        if not window:
            return ContextSignal(confidence=0.0)

        topics: Counter[str] = Counter()
        has_destination = has_dates = has_origin = False
        for text in window:
            lowered = text.lower()
            tokens = _TOKEN.findall(lowered)
            for token in tokens:
                for topic, words in VOCABULARY.items():
                    if token in words:
                        topics[topic] += 1
            if place_pattern().search(text):
                has_destination = True
                topics["destination"] += 1
            if any(t in _DATE_WORDS for t in tokens):
                has_dates = True
            if re.search(r"\bfrom\b", lowered):
                has_origin = True

        confidence = BASE_CONFIDENCE + min(MAX_TURN_BONUS, len(window) * PER_TURN)
        if has_destination:
            confidence += 0.1
        if has_dates:
            confidence += 0.05
        if has_origin:
            confidence += 0.05
        confidence = min(CEILING, confidence)

        signal = ContextSignal(
            confidence=round(confidence, 4),
            topics=tuple(topic for topic, _ in topics.most_common(3)),
            turns=len(window),
        )
        self._logger.debug(
            "Conversation summarized",
            extra={"confidence": signal.confidence, "topics": list(signal.topics)},
        )
        return signal
