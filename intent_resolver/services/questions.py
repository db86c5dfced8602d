"""Clarifying questions and confirmation messages.

Wording varies with the number of times a field was already asked about
and mentions what is known (the destination); once a question has been
repeated a tip is added. Soft values from learned patterns and defaults
appear as hints, never as answers.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence, Tuple

from ..dates import format_date
from ..domain.models import FieldSource, TripIntent

QUESTIONS: Dict[str, Tuple[str, ...]] = {
    "destination": (
        "Where would you like to travel?",
        "What destination do you have in mind?",
        "Which city or country would you like to visit?",
    ),
    "startDate": (
        "When would you like to travel?",
        "What are your travel dates?",
        "When are you planning this trip?",
    ),
    "duration": (
        "How many days are you planning to travel?",
        "How long would you like your trip to be?",
        "What's the duration of your trip?",
    ),
    "travelerCount": (
        "How many people will be traveling?",
        "Will you be traveling solo or with others?",
        "How many people in total, including you?",
    ),
}

DESTINATION_QUESTIONS: Dict[str, Tuple[str, ...]] = {
    "startDate": (
        "When would you like to visit {destination}?",
        "What dates are you planning to travel to {destination}?",
        "When are you thinking of going to {destination}?",
    ),
    "duration": (
        "How many days would you like to spend in {destination}?",
        "How long will your {destination} trip be?",
        "What's the duration of your stay in {destination}?",
    ),
}

TIPS: Dict[str, str] = {
    "destination": "Popular destinations include Paris, Tokyo, Barcelona, New York and Bali.",
    "startDate": "You can say things like 'next week', 'in March' or 'May 15-20'.",
    "duration": "A weekend getaway is typically 2-3 days; a city break 4-5 days.",
    "travelerCount": "For example 'solo', 'for two' or '2 adults and 1 kid'.",
}

MALFORMED_PROMPT = (
    "I didn't catch that. Tell me where you'd like to go, "
    "for example 'a week in Lisbon starting June 3'."
)
LOST_CONTEXT_PREFIX = (
    "Sorry, I lost track of our conversation, so please restate anything I miss."
)
RETRY_PROMPT = (
    "I'm sorry, I'm having trouble processing your request right now. "
    "Could you try again?"
)


def _join(names: Sequence[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " and " + names[-1]


def _soft(intent: TripIntent, name: str) -> bool:
    source = intent.source_of(name)
    return intent.has(name) and source is not None and not source.is_hard


def _hint(field: str, intent: TripIntent) -> Optional[str]:
    if field == "duration" and _soft(intent, "duration_days"):
        return f"Similar trips usually last about {intent.duration_days} days."
    if field == "travelerCount" and _soft(intent, "traveler_count"):
        return f"Is it {intent.traveler_count} of you?"
    if field == "destination" and intent.suggestions:
        return intent.suggestions[0]
    return None


def clarifying_question(field: str, intent: TripIntent, asked: int = 0) -> str:
    """Build the question for one missing field.

    Args:
        field: Public name of the missing field.
        intent: Everything known so far, soft values included.
        asked: How many times this field was already asked about.

    Returns:
        A single question, optionally followed by a hint and a tip.
    """
    names = intent.destination_names
    templates = QUESTIONS.get(field)
    if templates is None:
        return f"Could you tell me more about the {field} for your trip?"
    if names and field in DESTINATION_QUESTIONS:
        templates = DESTINATION_QUESTIONS[field]

    question = templates[min(asked, len(templates) - 1)].format(destination=_join(names))

    if field == "travelerCount" and names and intent.resolved_duration:
        question = f"Great! A {intent.resolved_duration}-day trip to {_join(names)}. {question}"

    parts = [question]
    hint = _hint(field, intent)
    if hint:
        parts.append(hint)
    if asked >= 2:
        parts.append(TIPS[field])
    return " ".join(parts)


def confirmation_message(intent: TripIntent) -> str:
    """Summary shown once the request is complete."""
    lines = ["Perfect! Let me confirm the details:"]
    destinations = [
        f"{d.name} ({d.days} days)" if d.days else d.name for d in intent.destinations
    ]
    lines.append(f"• Destination: {_join(destinations)}")
    if intent.origin:
        lines.append(f"• From: {intent.origin}")
    if intent.start_date is not None:
        lines.append(f"• Starting: {format_date(intent.start_date)}")
    if intent.resolved_duration is not None:
        lines.append(f"• Duration: {intent.resolved_duration} days")
    if intent.has_hard("traveler_count"):
        count = intent.traveler_count
        lines.append("• Travelers: Solo traveler" if count == 1 else f"• Travelers: {count} travelers")
    if intent.has_hard("budget") and intent.budget is not None:
        lines.append(f"• Budget: {intent.budget.describe()}")
    if intent.has("trip_type") and intent.source_of("trip_type") != FieldSource.PATTERN:
        lines.append(f"• Trip type: {intent.effective_trip_type.value}")
    if intent.interests:
        lines.append(f"• Interests: {', '.join(intent.interests)}")
    for suggestion in intent.suggestions:
        lines.append(suggestion)
    lines.append("\nIs this correct? (Yes to proceed, or tell me what to change)")
    return "\n".join(lines)
