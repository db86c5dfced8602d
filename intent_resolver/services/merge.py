"""Merge and validation of layer outputs.

Every turn rebuilds the accumulated intent from the previous one and the
partial intents produced by the resolution layers. Each field keeps the
value of the highest-precedence source that supplied it; a tie goes to
the newer turn, so a later "make it 5 days" replaces an earlier "3 days".
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from ..domain.models import (
    ConfidenceTier,
    Destination,
    DestinationMatch,
    FieldProvenance,
    FieldSource,
    LayerResult,
    TripIntent,
    INTENT_FIELDS,
)

# Points per field for the deterministic completeness score.
COMPLETENESS_WEIGHTS: Dict[str, int] = {
    "destinations": 3,
    "start_date": 3,
    "duration_days": 3,
    "traveler_count": 2,
    "budget": 2,
    "trip_type": 1,
    "interests": 1,
}

RENAME_THRESHOLD = 0.7

# Public names of the required fields, in the order they are asked for.
REQUIRED_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("destinations", "destination"),
    ("start_date", "startDate"),
    ("duration_days", "duration"),
)
TRAVELERS_FIELD = ("traveler_count", "travelerCount")


@dataclass(frozen=True, slots=True)
class Candidate:
    """A partial intent offered by one layer for this turn.

    Attributes:
        intent: Partial intent; provenance entries inside it override
            ``source`` for the fields they name (e.g. a soft family default)
        source: Source assigned to the other fields
        confidence: Confidence recorded in provenance
    """

    intent: TripIntent
    source: FieldSource
    confidence: ConfidenceTier = ConfidenceTier.MEDIUM


def drop_soft_fields(intent: TripIntent) -> TripIntent:
    """Clear values held by soft sources; they are recomputed every turn."""
    soft = [p.field for p in intent.provenance if not p.source.is_hard]
    return intent.without(*soft) if soft else intent


def _origin(candidate: Candidate, name: str) -> Tuple[FieldSource, ConfidenceTier]:
    override = candidate.intent.provenance_for(name)
    if override is not None:
        return override.source, override.confidence
    return candidate.source, candidate.confidence


def _present(value: object) -> bool:
    if isinstance(value, tuple):
        return len(value) > 0
    return value is not None


def _wins(new: FieldSource, new_turn: int, current: Optional[FieldProvenance]) -> bool:
    if current is None:
        return True
    if new.rank != current.source.rank:
        return new.rank > current.source.rank
    return new_turn > current.turn


def _merge_destinations(
    current: Tuple[Destination, ...],
    incoming: Tuple[Destination, ...],
    overrides_days: bool,
) -> Tuple[Destination, ...]:
    merged: List[Destination] = list(current)
    index = {d.key: i for i, d in enumerate(merged)}
    for destination in incoming:
        position = index.get(destination.key)
        if position is None:
            index[destination.key] = len(merged)
            merged.append(destination)
            continue
        existing = merged[position]
        days = existing.days
        if destination.days is not None and (overrides_days or days is None):
            days = destination.days
        confidence = existing.confidence
        if destination.confidence.score > confidence.score:
            confidence = destination.confidence
        merged[position] = replace(existing, days=days, confidence=confidence)
    return tuple(merged)


def _merge_interests(current: Tuple[str, ...], incoming: Tuple[str, ...]) -> Tuple[str, ...]:
    seen = {tag.casefold() for tag in current}
    merged = list(current)
    for tag in incoming:
        if tag.casefold() not in seen:
            seen.add(tag.casefold())
            merged.append(tag)
    return tuple(merged)


def merge_turn(previous: TripIntent, candidates: Sequence[Candidate], turn: int) -> TripIntent:
    """Merge this turn's layer outputs into the accumulated intent.

    Args:
        previous: Accumulated intent after the previous turn.
        candidates: Layer outputs of this turn, in any order.
        turn: Index of the current turn.

    Returns:
        New accumulated intent with one provenance entry per held field.
    """
    base = drop_soft_fields(previous)
    values = {name: getattr(base, name) for name in INTENT_FIELDS}
    provenance: Dict[str, FieldProvenance] = {p.field: p for p in base.provenance}

    ordered = sorted(candidates, key=lambda c: -c.source.rank)
    for candidate in ordered:
        for name in INTENT_FIELDS:
            if not candidate.intent.has(name):
                continue
            source, confidence = _origin(candidate, name)
            current = provenance.get(name) if _present(values[name]) else None
            entry = FieldProvenance(name, source, confidence, turn)
            incoming = getattr(candidate.intent, name)

            if current is not None and current.source.is_hard != source.is_hard:
                # Hard values replace soft ones; soft values never touch hard ones.
                if source.is_hard:
                    values[name] = incoming
                    provenance[name] = entry
                continue

            if name == "destinations" or name == "interests":
                held = values[name]
                if not held:
                    values[name] = incoming
                    provenance[name] = entry
                    continue
                if name == "destinations":
                    values[name] = _merge_destinations(held, incoming, _wins(source, turn, current))
                else:
                    values[name] = _merge_interests(held, incoming)
                if _wins(source, turn, current):
                    provenance[name] = entry
                continue

            if _wins(source, turn, current):
                values[name] = incoming
                provenance[name] = entry

    merged = replace(
        base,
        provenance=tuple(provenance[name] for name in INTENT_FIELDS if name in provenance),
        **values,
    )
    return align_single_destination(reconcile_window(merged, turn))


def reconcile_window(intent: TripIntent, turn: int) -> TripIntent:
    """Keep start, end and duration consistent.

    Duration is the stored value and the end date is always derived. An
    inconsistent triple keeps the newest statement.
    """
    if intent.end_date is None:
        return intent
    if intent.start_date is None:
        return intent

    span = (intent.end_date - intent.start_date).days + 1
    end_entry = intent.provenance_for("end_date")
    duration_entry = intent.provenance_for("duration_days")
    keep_duration = (
        intent.duration_days is not None
        and duration_entry is not None
        and (end_entry is None or duration_entry.turn >= end_entry.turn)
    )
    cleared = intent.without("end_date")
    if keep_duration or span < 1:
        return cleared

    source = FieldSource.DERIVED
    if end_entry is not None and not end_entry.source.is_hard:
        # Derived from a soft value stays soft.
        source = end_entry.source
    return replace(
        cleared,
        duration_days=span,
        provenance=tuple(p for p in cleared.provenance if p.field != "duration_days")
        + (FieldProvenance("duration_days", source, ConfidenceTier.MEDIUM, turn),),
    )


def align_single_destination(intent: TripIntent) -> TripIntent:
    """A single stop lasts the whole trip."""
    if len(intent.destinations) != 1 or intent.duration_days is None:
        return intent
    only = intent.destinations[0]
    if only.days is None or only.days == intent.duration_days:
        return intent
    return replace(intent, destinations=(replace(only, days=intent.duration_days),))


def apply_matches(
    intent: TripIntent,
    matches: Sequence[DestinationMatch],
    threshold: float = RENAME_THRESHOLD,
) -> Tuple[TripIntent, Tuple[str, ...]]:
    """Rename destinations to their canonical match and collect alternates.

    Args:
        intent: Merged intent.
        matches: Canonical matches from the similarity layer.
        threshold: Minimum score for a rename.

    Returns:
        (intent, suggestions)
    """
    by_query = {m.query.casefold(): m for m in matches}
    renamed: List[Destination] = []
    seen = set()
    alternates: List[str] = []
    for destination in intent.destinations:
        match = by_query.get(destination.key)
        if match is not None and match.score > threshold:
            destination = replace(destination, name=match.name, confidence=ConfidenceTier.HIGH)
            alternates.extend(match.alternatives)
        if destination.key in seen:
            continue
        seen.add(destination.key)
        renamed.append(destination)

    known = {d.key for d in renamed}
    alternates = [a for a in dict.fromkeys(alternates) if a.casefold() not in known]
    suggestions: Tuple[str, ...] = ()
    if alternates:
        suggestions = ("You might also consider: " + ", ".join(alternates),)
    return replace(intent, destinations=tuple(renamed)), suggestions


def completeness_score(intent: TripIntent) -> float:
    """Share of the weighted fields held by hard sources, in [0, 1]."""
    total = sum(COMPLETENESS_WEIGHTS.values())
    earned = sum(
        weight for name, weight in COMPLETENESS_WEIGHTS.items() if _held(intent, name)
    )
    return earned / total


def _held(intent: TripIntent, name: str) -> bool:
    if name == "duration_days":
        entry = intent.provenance_for("duration_days")
        return intent.resolved_duration is not None and (entry is None or entry.source.is_hard)
    return intent.has_hard(name)


def deterministic_confidence(intent: TripIntent, high: float = 0.7, medium: float = 0.4) -> float:
    """Completeness score mapped to 0.9 / 0.6 / 0.3."""
    return ConfidenceTier.from_score(completeness_score(intent), high, medium).score


def combine_confidence(
    deterministic: float,
    layers: Sequence[LayerResult],
    weights: Dict[str, float],
) -> float:
    """Weighted mean of the layer confidences that are available.

    Args:
        deterministic: Deterministic confidence (always present).
        layers: Results of the optional layers, keyed by their name in
            ``weights``; only successful ones with a confidence count.
        weights: Layer name -> weight; must contain "deterministic".

    Returns:
        Combined confidence in [0, 1].
    """
    scored = [(weights["deterministic"], deterministic)]
    for layer in layers:
        weight = weights.get(layer.layer)
        if weight and layer.succeeded and layer.confidence is not None:
            scored.append((weight, layer.confidence))
    total = sum(w for w, _ in scored)
    if total <= 0:
        return deterministic
    return sum(w * c for w, c in scored) / total


def missing_required(intent: TripIntent, require_travelers: bool = True) -> Tuple[str, ...]:
    """Public names of the required fields not held by a hard source, in ask order."""
    required = REQUIRED_FIELDS + ((TRAVELERS_FIELD,) if require_travelers else ())
    return tuple(public for name, public in required if not _held(intent, name))


def internal_name(public: str) -> str:
    for name, alias in REQUIRED_FIELDS + (TRAVELERS_FIELD,):
        if alias == public:
            return name
    return public
