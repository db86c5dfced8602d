"""Context enrichment from earlier turns of a conversation.

A follow-up utterance such as "2 adults, mid-range budget" only makes
sense together with what was said before. The enricher rewrites it into
a self-contained string by appending facts from the accumulated intent
that the new utterance does not restate, and by replacing references
such as "there" with the most recent destination.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Tuple

from ..dates import format_date
from ..domain.models import BudgetTier, ConfidenceTier, ConversationContext, TripIntent

ANAPHORA = re.compile(
    r"\b(?:there|that\s+place|that\s+city|that\s+country|the\s+same\s+place)\b",
    re.IGNORECASE,
)

# Phrasings the lexical extractor maps back to the same tier without
# implying a trip type.
_TIER_PHRASES = {
    BudgetTier.BUDGET: "affordable",
    BudgetTier.MODERATE: "mid-range",
    BudgetTier.LUXURY: "high-end",
}
_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


@dataclass(frozen=True, slots=True)
class EnrichedUtterance:
    """Result of enriching one utterance.

    Attributes:
        text: Self-contained utterance
        borrowed: Fields supplied by earlier turns
        confidence: low (nothing borrowed), medium (one field), high (more)
        resolved_reference: Whether an anaphor was replaced
    """

    text: str
    borrowed: Tuple[str, ...] = ()
    confidence: ConfidenceTier = ConfidenceTier.LOW
    resolved_reference: bool = False


def _join(names: Tuple[str, ...]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " and " + names[-1]


def _amount_text(amount: float, currency: str) -> str:
    value = int(amount) if amount == int(amount) else amount
    if currency in _SYMBOLS:
        return f"{_SYMBOLS[currency]}{value}"
    return f"{value} {currency}"


@dataclass
class ContextEnricher:
    """Borrow missing facts from the accumulated intent of a session."""

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def enrich(
        self,
        text: str,
        context: ConversationContext,
        stated: TripIntent,
    ) -> EnrichedUtterance:
        """Rewrite an utterance with facts from earlier turns.

        Only values held by hard sources are borrowed; soft guesses from
        learned patterns or defaults never become part of the text.

        Args:
            text: The new utterance.
            context: Conversation so far (the new utterance is not in it).
            stated: What the new utterance states on its own.

        Returns:
            EnrichedUtterance with the rewritten text.
        """
        history = context.intent
        borrowed: List[str] = []
        enriched = text
        resolved_reference = False

        names = history.destination_names
        if names and ANAPHORA.search(enriched):
            enriched = ANAPHORA.sub(names[-1], enriched)
            resolved_reference = True
            borrowed.append("destinations")
        elif history.has_hard("destinations") and not stated.destinations:
            enriched += f" visiting {_join(names)}"
            borrowed.append("destinations")

        if history.has_hard("origin") and stated.origin is None:
            enriched += f" from {history.origin}"
            borrowed.append("origin")

        if history.has_hard("traveler_count") and stated.traveler_count is None:
            count = history.traveler_count
            if count == 1:
                enriched += " solo"
            elif count == 2:
                enriched += " for two"
            else:
                enriched += f" for {count} people"
            borrowed.append("traveler_count")

        if history.has_hard("budget") and stated.budget is None and history.budget is not None:
            budget = history.budget
            if budget.amount is not None:
                enriched += f" with a budget of {_amount_text(budget.amount, budget.currency)}"
                if budget.per_person:
                    enriched += " per person"
            if budget.tier is not None:
                enriched += f" {_TIER_PHRASES[budget.tier]}"
            borrowed.append("budget")

        if (
            history.has_hard("start_date")
            and stated.start_date is None
            and history.start_date is not None
        ):
            enriched += f" starting {format_date(history.start_date)}"
            borrowed.append("start_date")

        if len(borrowed) >= 2:
            confidence = ConfidenceTier.HIGH
        elif borrowed:
            confidence = ConfidenceTier.MEDIUM
        else:
            confidence = ConfidenceTier.LOW

        if borrowed:
            self._logger.debug(
                "Utterance enriched from context",
                extra={"borrowed": borrowed, "session_id": context.session_id},
            )
        return EnrichedUtterance(
            text=enriched,
            borrowed=tuple(borrowed),
            confidence=confidence,
            resolved_reference=resolved_reference,
        )
