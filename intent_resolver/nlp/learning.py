"""Pattern learning over confirmed resolutions.

Pure functions shared by the pattern stores and the resolution pipeline:
token similarity, keyword signatures, batch pattern extraction and the
application of neighbours and patterns to a new request.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from statistics import mean
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..domain.models import LearnedPattern, ParseRecord, TripIntent, TripType

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "i", "me", "my", "we", "our", "us",
        "want", "need", "please", "help", "plan", "trip", "travel", "visit",
    }
)

# Share of a group (or of a pattern's keywords) that must agree.
AGREEMENT = 0.6

_TOKEN = re.compile(r"[\w'’-]+")


def tokenize(text: str) -> frozenset[str]:
    return frozenset(t.lower() for t in _TOKEN.findall(text))


def jaccard(left: str, right: str) -> float:
    """Token-set Jaccard similarity of two utterances, in [0, 1]."""
    a, b = tokenize(left), tokenize(right)
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)


def keywords(text: str) -> Tuple[str, ...]:
    """Sorted keyword signature: no stop words, no numbers, longer than 2."""
    return tuple(
        sorted(
            {
                word
                for word in (t.lower() for t in _TOKEN.findall(text))
                if len(word) > 2 and word not in STOP_WORDS and not word.isdigit()
            }
        )
    )


def most_common(items: Iterable[TripType]) -> Optional[TripType]:
    counts = Counter(items)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def common_elements(groups: Sequence[Sequence[str]], share: float = AGREEMENT) -> Tuple[str, ...]:
    """Elements present in at least ``share`` of the groups, first-seen order."""
    if not groups:
        return ()
    counts: Dict[str, int] = {}
    for group in groups:
        for item in dict.fromkeys(group):
            counts[item] = counts.get(item, 0) + 1
    threshold = len(groups) * share
    return tuple(item for item, count in counts.items() if count >= threshold)


def extract_patterns(history: Sequence[ParseRecord], min_frequency: int = 3) -> List[LearnedPattern]:
    """Group history by keyword signature and keep the recurring groups.

    A group becomes a pattern when it has at least ``min_frequency``
    records and some destination appears in at least 60% of them.

    Args:
        history: Confirmed resolutions, oldest first.
        min_frequency: Minimum group size.

    Returns:
        Patterns sorted by descending frequency.
    """
    groups: Dict[Tuple[str, ...], List[ParseRecord]] = {}
    for record in history:
        groups.setdefault(keywords(record.text), []).append(record)

    patterns: List[LearnedPattern] = []
    for signature, records in groups.items():
        if not signature or len(records) < min_frequency:
            continue
        destinations = common_elements([r.destinations for r in records])
        if not destinations:
            continue
        patterns.append(
            LearnedPattern(
                keywords=signature,
                frequency=len(records),
                confidence=len(records) / len(history),
                examples=tuple(r.text for r in records[:3]),
                destinations=destinations,
                trip_type=most_common(r.trip_type for r in records),
            )
        )
    patterns.sort(key=lambda p: (-p.frequency, p.keywords))
    return patterns


def matches_pattern(text: str, pattern: LearnedPattern) -> bool:
    """At least 60% of the pattern's keywords occur in the text."""
    if not pattern.keywords:
        return False
    present = set(keywords(text))
    hits = sum(1 for word in pattern.keywords if word in present)
    return hits >= len(pattern.keywords) * AGREEMENT


@dataclass(frozen=True, slots=True)
class PatternHints:
    """What neighbours and learned patterns suggest for a request.

    Attributes:
        intent: Soft field values (duration, trip type)
        suggestions: Human-readable destination hints
        matched_patterns: Number of learned patterns that matched
    """

    intent: TripIntent
    suggestions: Tuple[str, ...] = ()
    matched_patterns: int = 0


def apply_learned_patterns(
    text: str,
    intent: TripIntent,
    neighbours: Sequence[Tuple[ParseRecord, float]],
    patterns: Sequence[LearnedPattern],
) -> PatternHints:
    """Derive soft values and suggestions from similar past requests.

    Never touches a field ``intent`` already holds.

    Args:
        text: The (enriched) utterance.
        intent: What is known so far.
        neighbours: Similar past records with their similarity.
        patterns: Current learned patterns.

    Returns:
        PatternHints with the suggested values.
    """
    suggestions: List[str] = []
    duration: Optional[int] = None
    trip_type: Optional[TripType] = None
    known = {d.key for d in intent.destinations}

    if neighbours:
        frequency: Counter[str] = Counter()
        spelling: Dict[str, str] = {}
        for record, _score in neighbours:
            for name in dict.fromkeys(record.destinations):
                frequency[name.casefold()] += 1
                spelling.setdefault(name.casefold(), name)
        frequent = [spelling[k] for k, n in frequency.items() if n >= 2 and k not in known]
        if frequent:
            suggestions.append(
                "Based on similar searches, you might also want to visit: "
                + ", ".join(frequent)
            )

        if intent.resolved_duration is None:
            durations = [r.duration_days for r, _ in neighbours if r.duration_days]
            if durations:
                duration = round(mean(durations))

        if intent.effective_trip_type == TripType.GENERAL:
            majority = most_common(r.trip_type for r, _ in neighbours)
            if majority is not None and majority != TripType.GENERAL:
                trip_type = majority

    matched = 0
    for pattern in patterns:
        if not matches_pattern(text, pattern):
            continue
        matched += 1
        extra = [name for name in pattern.destinations if name.casefold() not in known]
        if extra:
            hint = "Travelers with similar requests often choose: " + ", ".join(extra)
            if hint not in suggestions:
                suggestions.append(hint)

    return PatternHints(
        intent=TripIntent(duration_days=duration, trip_type=trip_type),
        suggestions=tuple(suggestions),
        matched_patterns=matched,
    )
