"""Language-model fallback extraction.

Only used when the deterministic layers leave a required field empty.
The model is asked for a single JSON object; replies that break that
contract are repaired where possible (code fences, surrounding prose)
and every value goes through the same plausibility bounds as lexical
extraction before it is accepted.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import ExtractionConfig, LLMConfig, get_config
from ..domain.errors import CompletionError
from ..domain.models import Budget, BudgetTier, ConfidenceTier, Destination, TripIntent, TripType
from ..ports.completion import CompletionPort
from .gazetteer import find_place, is_common_word

PROMPT_TEMPLATE = """Extract travel information from the user's request.

Today is {today}.
Still unknown: {missing}.
User request: "{text}"

Return ONLY a valid JSON object with exactly this structure:
{{
  "destinations": [{{"city": "string", "days": number or null}}],
  "origin": "string or null",
  "startDate": "YYYY-MM-DD or null",
  "endDate": "YYYY-MM-DD or null",
  "duration": number or null,
  "travelerCount": number or null,
  "budget": {{"amount": number or null, "currency": "ISO code", "perPerson": boolean, "tier": "budget|moderate|luxury|null"}} or null,
  "tripType": "{trip_types}",
  "interests": ["string"]
}}

Rules:
1. Only fill a field when the request states it; otherwise use null.
2. "a week" is 7 days, "a weekend" is 3 days.
3. Resolve relative dates against today.

Return ONLY the JSON object, no other text."""

_PLACE_NAME = re.compile(r"^[^\W\d_][\w '’.-]{0,59}$")


def build_prompt(text: str, today: date, missing: Sequence[str]) -> str:
    return PROMPT_TEMPLATE.format(
        today=today.isoformat(),
        missing=", ".join(missing) or "nothing",
        text=text.replace('"', "'"),
        trip_types="|".join(t.value for t in TripType),
    )


def _strip_code_fences(text: str) -> str:
    t = text.strip()
    if t.startswith("```"):
        t = re.sub(r"^\s*```(?:json)?\s*", "", t, flags=re.IGNORECASE)
        t = re.sub(r"\s*```\s*$", "", t)
    return t.strip()


def parse_completion(raw: str) -> Tuple[Dict[str, Any], str]:
    """Parse a completion into a JSON object.

    Tries strict parsing, then stripped code fences, then the outermost
    ``{...}`` substring.

    Args:
        raw: Completion text.

    Returns:
        (payload, method) where method is strict, stripped_fences or
        extracted_braces.

    Raises:
        CompletionError: If no JSON object can be recovered.
    """
    text = (raw or "").strip()
    attempts = [("strict", text)]

    cleaned = _strip_code_fences(text)
    if cleaned != text:
        attempts.append(("stripped_fences", cleaned))

    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start != -1 and end > start:
        attempts.append(("extracted_braces", cleaned[start : end + 1]))

    for method, candidate in attempts:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            return payload, method

    raise CompletionError(f"Completion is not a JSON object: {text[:80]!r}")


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and float(value).is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _as_date(value: Any) -> Optional[date]:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


@dataclass(frozen=True)
class PlausibilityFilter:
    """Bounds check for model-provided values.

    Anything implausible is dropped, never clamped, exactly like the
    lexical extractor's bounds.
    """

    config: ExtractionConfig
    today: date

    def duration(self, value: Any) -> Optional[int]:
        days = _as_int(value)
        if days is not None and self.config.min_duration_days <= days <= self.config.max_duration_days:
            return days
        return None

    def travelers(self, value: Any) -> Optional[int]:
        count = _as_int(value)
        if count is not None and 1 <= count <= self.config.max_travelers:
            return count
        return None

    def start_date(self, value: Any) -> Optional[date]:
        day = _as_date(value)
        if day is not None and self.today <= day <= self.today + timedelta(days=self.config.max_days_ahead):
            return day
        return None

    def place(self, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return None
        name = value.strip()
        if not _PLACE_NAME.match(name) or is_common_word(name):
            return None
        place = find_place(name)
        return place.name if place else name

    def destinations(self, value: Any) -> Tuple[Destination, ...]:
        if not isinstance(value, list):
            return ()
        result: List[Destination] = []
        seen = set()
        for item in value:
            raw_name, days = (item.get("city"), item.get("days")) if isinstance(item, dict) else (item, None)
            name = self.place(raw_name)
            if name is None or name.casefold() in seen:
                continue
            seen.add(name.casefold())
            result.append(Destination(name, self.duration(days), ConfidenceTier.LOW))
        return tuple(result)

    def budget(self, value: Any) -> Optional[Budget]:
        if not isinstance(value, dict):
            return None
        amount = value.get("amount")
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            amount = None
        elif not 0 < amount <= self.config.max_budget:
            amount = None
        currency = value.get("currency")
        if not (isinstance(currency, str) and re.fullmatch(r"[A-Za-z]{3}", currency)):
            currency = self.config.default_currency
        tier = None
        if isinstance(value.get("tier"), str):
            try:
                tier = BudgetTier(value["tier"].lower())
            except ValueError:
                tier = None
        if amount is None and tier is None:
            return None
        return Budget(
            amount=float(amount) if amount is not None else None,
            currency=currency.upper(),
            per_person=value.get("perPerson") is True,
            tier=tier,
        )

    def trip_type(self, value: Any) -> Optional[TripType]:
        if not isinstance(value, str):
            return None
        try:
            trip_type = TripType(value.lower())
        except ValueError:
            return None
        return None if trip_type == TripType.GENERAL else trip_type

    def interests(self, value: Any) -> Tuple[str, ...]:
        if not isinstance(value, list):
            return ()
        tags = [v.strip().lower() for v in value if isinstance(v, str) and 0 < len(v.strip()) <= 40]
        return tuple(dict.fromkeys(tags))

    def to_intent(self, payload: Dict[str, Any]) -> TripIntent:
        """Build a partial intent from a parsed completion."""
        start = self.start_date(payload.get("startDate"))
        duration = self.duration(payload.get("duration"))
        end = _as_date(payload.get("endDate"))
        if start is not None and end is not None and duration is None:
            duration = self.duration((end - start).days + 1)
        origin = self.place(payload.get("origin"))
        destinations = tuple(
            d for d in self.destinations(payload.get("destinations"))
            if origin is None or d.key != origin.casefold()
        )
        return TripIntent(
            destinations=destinations,
            origin=origin,
            start_date=start,
            duration_days=duration,
            traveler_count=self.travelers(payload.get("travelerCount")),
            budget=self.budget(payload.get("budget")),
            trip_type=self.trip_type(payload.get("tripType")),
            interests=self.interests(payload.get("interests")),
        )


@dataclass
class LanguageModelFallback:
    """Ask a text-completion service for the fields still missing.

    Attributes:
        completion: Completion backend
        config: Model settings (timeout)
        extraction: Plausibility bounds
    """

    completion: CompletionPort
    config: LLMConfig = field(default_factory=lambda: get_config().llm)
    extraction: ExtractionConfig = field(default_factory=lambda: get_config().extraction)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def is_available(self) -> bool:
        return self.config.enabled and self.completion.is_available()

    def extract(self, text: str, today: date, missing: Sequence[str]) -> TripIntent:
        """Extract a partial intent with the language model.

        Args:
            text: Enriched utterance.
            today: Date of the request.
            missing: Required fields still empty.

        Returns:
            Partial TripIntent holding only plausible values.

        Raises:
            CompletionError: If the call fails or the reply is unusable.
        """
        raw = self.completion.complete(build_prompt(text, today, missing), self.config.timeout_seconds)
        payload, method = parse_completion(raw)
        if method != "strict":
            self._logger.warning(
                "Completion violated the JSON contract and was repaired",
                extra={"method": method},
            )
        intent = PlausibilityFilter(self.extraction, today).to_intent(payload)
        self._logger.info(
            "Language-model fallback extracted fields",
            extra={"fields": list(intent.present_fields())},
        )
        return intent
