"""In-memory pattern-learning store.

Keeps a bounded history of confirmed resolutions (oldest dropped first)
and the patterns derived from it. All access is guarded by a re-entrant
lock so sessions can read and write concurrently.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from statistics import mean
from typing import Any, Deque, Dict, List, Tuple

from ...config import LearningConfig, get_config
from ...domain.models import LearnedPattern, ParseRecord
from ...nlp.learning import extract_patterns, jaccard


@dataclass
class InMemoryPatternStore:
    """Bounded, thread-safe history of confirmed resolutions.

    This adapter implements PatternStorePort. Patterns are recomputed
    after every recorded resolution.

    Attributes:
        config: Learning settings (max_history, thresholds)
    """

    config: LearningConfig = field(default_factory=lambda: get_config().learning)

    _history: Deque[ParseRecord] = field(init=False, repr=False)
    _patterns: List[LearnedPattern] = field(default_factory=list, init=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._history = deque(maxlen=self.config.max_history)
        self._logger = logging.getLogger(__name__)

    def record(self, record: ParseRecord) -> None:
        with self._lock:
            self._history.append(record)
            self.rebuild_patterns()
        self._logger.debug(
            "Resolution recorded",
            extra={"destinations": list(record.destinations), "history": len(self._history)},
        )

    def history(self) -> List[ParseRecord]:
        with self._lock:
            return list(self._history)

    def find_similar(self, text: str, limit: int = 3) -> List[Tuple[ParseRecord, float]]:
        """Most similar past records above the similarity threshold."""
        with self._lock:
            history = list(self._history)
        scored = [(record, jaccard(text, record.text)) for record in history]
        scored = [item for item in scored if item[1] > self.config.similarity_threshold]
        scored.sort(key=lambda item: item[1], reverse=True)
        return scored[:limit]

    def rebuild_patterns(self) -> List[LearnedPattern]:
        with self._lock:
            self._patterns = extract_patterns(
                list(self._history), self.config.min_pattern_frequency
            )
            return list(self._patterns)

    def patterns(self) -> List[LearnedPattern]:
        with self._lock:
            return list(self._patterns)

    def statistics(self) -> Dict[str, Any]:
        """Totals, top destinations, trip type distribution, mean duration."""
        with self._lock:
            history = list(self._history)
            patterns = list(self._patterns)

        destinations: Counter[str] = Counter()
        trip_types: Counter[str] = Counter()
        durations = []
        for record in history:
            destinations.update(dict.fromkeys(record.destinations))
            trip_types[record.trip_type.value] += 1
            if record.duration_days:
                durations.append(record.duration_days)

        return {
            "total_records": len(history),
            "pattern_count": len(patterns),
            "top_destinations": destinations.most_common(5),
            "trip_types": dict(trip_types),
            "average_duration": round(mean(durations), 1) if durations else None,
            "average_pattern_confidence": (
                round(mean(p.confidence for p in patterns), 3) if patterns else 0.0
            ),
        }

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
            self._patterns = []
