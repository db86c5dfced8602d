"""Immutable domain models for the Trip Intent Resolver.

All models are frozen dataclasses with slots. They have no external
dependencies and describe the core concepts of a travel conversation:
the resolved trip, where each field came from, the conversation that
produced it, and the learning records kept between sessions.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class TripType(str, Enum):
    """Closed set of trip styles."""

    SOLO = "solo"
    COUPLE = "couple"
    FAMILY = "family"
    BUSINESS = "business"
    HONEYMOON = "honeymoon"
    BACKPACKING = "backpacking"
    LUXURY = "luxury"
    BUDGET = "budget"
    ADVENTURE = "adventure"
    RELAXATION = "relaxation"
    CULTURAL = "cultural"
    GENERAL = "general"


class ConfidenceTier(str, Enum):
    """Coarse summary of extraction reliability."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def score(self) -> float:
        """Numeric value used when tiers are combined with other signals."""
        return _TIER_SCORES[self]

    @classmethod
    def from_score(
        cls, score: float, high: float = 0.7, medium: float = 0.4
    ) -> ConfidenceTier:
        if score >= high:
            return cls.HIGH
        if score >= medium:
            return cls.MEDIUM
        return cls.LOW


_TIER_SCORES = {
    ConfidenceTier.HIGH: 0.9,
    ConfidenceTier.MEDIUM: 0.6,
    ConfidenceTier.LOW: 0.3,
}


class BudgetTier(str, Enum):
    BUDGET = "budget"
    MODERATE = "moderate"
    LUXURY = "luxury"


class FieldSource(str, Enum):
    """Layer that supplied a field value.

    Ordered by precedence: a value from a higher-ranked source is never
    replaced by a value from a lower-ranked one.
    """

    LEXICAL = "lexical"
    CONTEXT = "context"
    PATTERN = "pattern"
    PREDICTIVE = "predictive"
    MODEL = "model"
    DERIVED = "derived"

    @property
    def rank(self) -> int:
        return _SOURCE_RANKS[self]

    @property
    def is_hard(self) -> bool:
        """Hard sources satisfy required fields; soft ones only hint."""
        return self not in (FieldSource.PATTERN, FieldSource.PREDICTIVE)


_SOURCE_RANKS = {
    FieldSource.LEXICAL: 5,
    FieldSource.CONTEXT: 4,
    FieldSource.PATTERN: 3,
    FieldSource.PREDICTIVE: 2,
    FieldSource.MODEL: 1,
    FieldSource.DERIVED: 0,
}


class ConversationState(str, Enum):
    """States of the per-session conversation machine."""

    COLLECTING_DESTINATION = "COLLECTING_DESTINATION"
    COLLECTING_DATE = "COLLECTING_DATE"
    COLLECTING_DURATION = "COLLECTING_DURATION"
    COLLECTING_TRAVELERS = "COLLECTING_TRAVELERS"
    READY_TO_GENERATE = "READY_TO_GENERATE"
    ERROR = "ERROR"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class LayerStatus(str, Enum):
    """Outcome of one resolution layer.

    ABSENT means the layer ran and found nothing, which is distinct from
    ERROR (the layer failed) and SKIPPED (the layer did not run).
    """

    SUCCESS = "success"
    ABSENT = "absent"
    ERROR = "error"
    SKIPPED = "skipped"


# Attribute names of TripIntent that carry provenance.
SCALAR_FIELDS: Tuple[str, ...] = (
    "origin",
    "start_date",
    "end_date",
    "duration_days",
    "traveler_count",
    "budget",
    "trip_type",
)
LIST_FIELDS: Tuple[str, ...] = ("destinations", "interests")
INTENT_FIELDS: Tuple[str, ...] = LIST_FIELDS + SCALAR_FIELDS


@dataclass(frozen=True, slots=True)
class Destination:
    """A destination city or country.

    Attributes:
        name: Canonical display name (e.g. 'Paris')
        days: Days allotted to this stop, if stated
        confidence: How sure the extractor is that this is a place
    """

    name: str
    days: Optional[int] = None
    confidence: ConfidenceTier = ConfidenceTier.MEDIUM

    @property
    def key(self) -> str:
        return self.name.casefold()


@dataclass(frozen=True, slots=True)
class Budget:
    """Trip budget.

    Attributes:
        amount: Numeric amount, if stated
        currency: ISO 4217 code
        per_person: Whether the amount is per traveler
        tier: Spending tier keyword, if stated
    """

    amount: Optional[float] = None
    currency: str = "USD"
    per_person: bool = False
    tier: Optional[BudgetTier] = None

    def describe(self) -> str:
        parts = []
        if self.amount is not None:
            amount = int(self.amount) if self.amount == int(self.amount) else self.amount
            parts.append(f"{amount:,} {self.currency}")
            if self.per_person:
                parts.append("per person")
        if self.tier is not None:
            parts.append(f"({self.tier.value})" if parts else self.tier.value)
        return " ".join(parts)


@dataclass(frozen=True, slots=True)
class FieldProvenance:
    """Where a TripIntent field came from.

    Attributes:
        field: TripIntent attribute name
        source: Layer that supplied the value
        confidence: Confidence of that layer in the value
        turn: Conversation turn in which the value was set
    """

    field: str
    source: FieldSource
    confidence: ConfidenceTier = ConfidenceTier.MEDIUM
    turn: int = 0


@dataclass(frozen=True, slots=True)
class TripIntent:
    """A partial or resolved travel request.

    The same type is used for layer outputs (partial, no provenance) and
    for the accumulated intent of a session (with provenance). A field
    is present when it is not None (or non-empty for sequences).
    """

    destinations: Tuple[Destination, ...] = ()
    origin: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_days: Optional[int] = None
    traveler_count: Optional[int] = None
    budget: Optional[Budget] = None
    trip_type: Optional[TripType] = None
    interests: Tuple[str, ...] = ()
    confidence: ConfidenceTier = ConfidenceTier.LOW
    confidence_score: float = 0.0
    suggestions: Tuple[str, ...] = ()
    provenance: Tuple[FieldProvenance, ...] = ()

    def has(self, name: str) -> bool:
        """Check whether a field holds a value."""
        value = getattr(self, name)
        if name in LIST_FIELDS:
            return len(value) > 0
        if name == "trip_type":
            return value is not None and value != TripType.GENERAL
        return value is not None

    def present_fields(self) -> Tuple[str, ...]:
        return tuple(name for name in INTENT_FIELDS if self.has(name))

    def provenance_for(self, name: str) -> Optional[FieldProvenance]:
        for entry in self.provenance:
            if entry.field == name:
                return entry
        return None

    def source_of(self, name: str) -> Optional[FieldSource]:
        entry = self.provenance_for(name)
        return entry.source if entry else None

    def has_hard(self, name: str) -> bool:
        """Check whether a field holds a value from a hard source."""
        if not self.has(name):
            return False
        entry = self.provenance_for(name)
        # Layer outputs carry no provenance; their values are literal.
        return entry is None or entry.source.is_hard

    @property
    def destination_names(self) -> Tuple[str, ...]:
        return tuple(d.name for d in self.destinations)

    @property
    def effective_trip_type(self) -> TripType:
        return self.trip_type or TripType.GENERAL

    @property
    def resolved_duration(self) -> Optional[int]:
        """Duration, explicit or derived from an inclusive start/end pair."""
        if self.duration_days is not None:
            return self.duration_days
        if self.start_date is not None and self.end_date is not None:
            return (self.end_date - self.start_date).days + 1
        return None

    @property
    def resolved_end_date(self) -> Optional[date]:
        if self.end_date is not None:
            return self.end_date
        if self.start_date is not None and self.duration_days is not None:
            return self.start_date + timedelta(days=self.duration_days - 1)
        return None

    @property
    def is_complete(self) -> bool:
        """Destination known, start date known, duration resolvable."""
        return (
            len(self.destinations) > 0
            and self.start_date is not None
            and self.resolved_duration is not None
        )

    def without(self, *names: str) -> TripIntent:
        """Return a copy with the given fields cleared."""
        changes: Dict[str, Any] = {}
        for name in names:
            changes[name] = () if name in LIST_FIELDS else None
        kept = tuple(p for p in self.provenance if p.field not in names)
        return replace(self, provenance=kept, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly view for callers of the resolve entry point."""
        budget = None
        if self.budget is not None:
            budget = {
                "amount": self.budget.amount,
                "currency": self.budget.currency,
                "perPerson": self.budget.per_person,
                "tier": self.budget.tier.value if self.budget.tier else None,
            }
        return {
            "destinations": [
                {"city": d.name, "days": d.days, "confidence": d.confidence.value}
                for d in self.destinations
            ],
            "origin": self.origin,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": (
                self.resolved_end_date.isoformat() if self.resolved_end_date else None
            ),
            "duration": self.resolved_duration,
            "travelerCount": self.traveler_count,
            "budget": budget,
            "tripType": self.effective_trip_type.value,
            "interests": list(self.interests),
            "confidence": self.confidence.value,
            "suggestions": list(self.suggestions),
            "provenance": {
                p.field: {"source": p.source.value, "confidence": p.confidence.value}
                for p in self.provenance
            },
        }


@dataclass(frozen=True, slots=True)
class Message:
    """One message of the conversation history."""

    role: Role
    text: str
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class ConversationContext:
    """Complete state of one conversation.

    This is the only state carried between turns; it is serialized to an
    opaque string and handed back by the caller on the next turn.

    Attributes:
        session_id: Stable identifier for the conversation
        messages: Ordered message history
        intent: Accumulated trip intent (union of all turns)
        state: Current state machine state
        pending_field: Field the last assistant question asked about
        ask_counts: How many times each field was asked about
        turn: Number of user turns processed
        created_at: Session creation time
        updated_at: Time of the last processed turn
        version: Serialization schema version
    """

    session_id: str
    created_at: datetime
    updated_at: datetime
    messages: Tuple[Message, ...] = ()
    intent: TripIntent = field(default_factory=TripIntent)
    state: ConversationState = ConversationState.COLLECTING_DESTINATION
    pending_field: Optional[str] = None
    ask_counts: Dict[str, int] = field(default_factory=dict)
    turn: int = 0
    version: int = 1

    @property
    def user_messages(self) -> Tuple[Message, ...]:
        return tuple(m for m in self.messages if m.role == Role.USER)


@dataclass(frozen=True, slots=True)
class ParseRecord:
    """A confirmed resolution kept for pattern learning."""

    text: str
    destinations: Tuple[str, ...] = ()
    trip_type: TripType = TripType.GENERAL
    duration_days: Optional[int] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class LearnedPattern:
    """A recurring request shape mined from confirmed resolutions.

    Attributes:
        keywords: Sorted keyword signature
        frequency: Number of history records sharing the signature
        confidence: frequency / history size, in [0, 1]
        examples: Up to three example utterances
        destinations: Destinations common to most records of the group
        trip_type: Majority trip type of the group
    """

    keywords: Tuple[str, ...]
    frequency: int
    confidence: float
    examples: Tuple[str, ...] = ()
    destinations: Tuple[str, ...] = ()
    trip_type: Optional[TripType] = None


@dataclass(frozen=True, slots=True)
class DestinationMatch:
    """Closest canonical destination for an extracted phrase."""

    query: str
    name: str
    score: float
    alternatives: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ContextSignal:
    """Summary of a conversation produced by a sequence context model."""

    confidence: float
    topics: Tuple[str, ...] = ()
    turns: int = 0


@dataclass(frozen=True, slots=True)
class LayerResult:
    """Explicit outcome of one resolution layer.

    Attributes:
        layer: Stage name
        source: Field source assigned to values this layer supplies
        status: success / absent / error / skipped
        intent: Partial intent produced by the layer
        confidence: Layer confidence in [0, 1], if it reports one
        suggestions: Human-readable hints
        error: Error description when status is ERROR
        matches: Canonical destination matches (similarity layer)
        signal: Conversation summary (sequence layer)
    """

    layer: str
    source: FieldSource
    status: LayerStatus
    intent: Optional[TripIntent] = None
    confidence: Optional[float] = None
    suggestions: Tuple[str, ...] = ()
    error: Optional[str] = None
    matches: Tuple[DestinationMatch, ...] = ()
    signal: Optional[ContextSignal] = None

    @property
    def succeeded(self) -> bool:
        return self.status == LayerStatus.SUCCESS

    @classmethod
    def absent(cls, layer: str, source: FieldSource) -> LayerResult:
        return cls(layer=layer, source=source, status=LayerStatus.ABSENT)

    @classmethod
    def skipped(cls, layer: str, source: FieldSource, reason: str = "") -> LayerResult:
        return cls(layer=layer, source=source, status=LayerStatus.SKIPPED, error=reason or None)

    @classmethod
    def failed(cls, layer: str, source: FieldSource, error: str) -> LayerResult:
        return cls(layer=layer, source=source, status=LayerStatus.ERROR, error=error)


@dataclass(frozen=True, slots=True)
class ResolutionResult:
    """Response of one conversation turn."""

    message: str
    intent: TripIntent
    missing_fields: Tuple[str, ...]
    can_generate: bool
    serialized_context: str
    state: ConversationState
    session_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "intent": self.intent.to_dict(),
            "missingFields": list(self.missing_fields),
            "canGenerate": self.can_generate,
            "serializedContext": self.serialized_context,
            "state": self.state.value,
            "sessionId": self.session_id,
        }
