"""Deterministic rule-based extraction of a partial TripIntent.

The extractor only emits a field when a qualifying pattern matched; it
never guesses. Values outside the configured bounds are dropped, not
clamped.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from ..config import ExtractionConfig, get_config
from ..dates import DurationMention, find_durations, inclusive_days, resolve_dates
from ..domain.models import (
    Budget,
    BudgetTier,
    ConfidenceTier,
    Destination,
    FieldProvenance,
    FieldSource,
    TripIntent,
    TripType,
)
from .gazetteer import find_place, is_common_word, place_pattern

_NUMBER = (
    r"(\d{1,3}|a|an|one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve)"
)
_NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12,
}

# Capitalized phrase of up to three words ("New Orleans", "Sao Paulo").
_NAME = r"[A-Z][\w'’.-]*(?:\s+[A-Z][\w'’.-]*){0,2}"
_NAME_LIST = _NAME + r"(?:(?:\s*,\s*(?:(?i:and)\s+)?|\s+(?i:and|&)\s+)" + _NAME + r")*"

ANCHORED_DESTINATIONS = re.compile(
    r"(?i:\b(?:trip|travel(?:l?ing)?|go(?:ing)?|fly(?:ing)?|head(?:ing)?|visit(?:ing)?"
    r"|getaway|vacation|holiday|journey|move|explore|exploring|see(?:ing)?|tour(?:ing)?)"
    r"\s+(?:to\s+|in\s+|around\s+)?)(?P<names>" + _NAME_LIST + r")"
)
SUFFIXED_DESTINATION = re.compile(
    r"\b(?P<names>" + _NAME + r")\s+(?i:vacation|trip|getaway|holiday|break)\b"
)
ORIGIN = re.compile(
    r"\b(?:from|based\s+in|i\s+live\s+in|living\s+in|flying\s+out\s+of"
    r"|departing\s+(?:from\s+)?|leaving\s+(?:from\s+)?|out\s+of)\s+",
    re.IGNORECASE,
)
CAPITALIZED = re.compile(_NAME)
LIST_SEPARATOR = re.compile(r"\s*,\s*(?:and\s+)?|\s+(?:and|&)\s+", re.IGNORECASE)

ADULTS_AND_KIDS = re.compile(
    _NUMBER + r"\s+adults?(?:\s*(?:and|,|\+|&|with)\s*" + _NUMBER
    + r"\s+(?:kids?|children|child|teens?|teenagers?|infants?|bab(?:y|ies)))?",
    re.IGNORECASE,
)
KIDS_ONLY = re.compile(
    r"\b(?:me|i)\s+and\s+(?:my\s+)?" + _NUMBER + r"\s+(?:kids|children|friends)\b",
    re.IGNORECASE,
)
GROUP_OF = re.compile(r"\b(?:family|group|party)\s+of\s+" + _NUMBER + r"\b", re.IGNORECASE)
N_PEOPLE = re.compile(
    r"\b" + _NUMBER + r"\s+(?:people|persons|travell?ers|guests|pax|of\s+us|adults?)\b",
    re.IGNORECASE,
)
FOR_TWO = re.compile(
    r"\bfor\s+(?:two|2)\b(?!\s+(?:days?|nights?|weeks?|months?|weekends?))",
    re.IGNORECASE,
)
SOLO = re.compile(
    r"\b(?:solo|alone|by\s+myself|on\s+my\s+own|just\s+me|only\s+me)\b", re.IGNORECASE
)
PAIR = re.compile(
    r"\b(?:couple|honeymoon|(?:my|with\s+my)\s+(?:wife|husband|partner|girlfriend|boyfriend|fianc[eé]e?)"
    r"|(?:wife|husband|partner)\s+and\s+i|the\s+two\s+of\s+us)\b",
    re.IGNORECASE,
)
FAMILY = re.compile(r"\bfamily\b", re.IGNORECASE)

CURRENCY_SYMBOLS = {"$": "USD", "€": "EUR", "£": "GBP", "¥": "JPY", "₹": "INR"}
CURRENCY_WORDS = {
    "usd": "USD", "dollar": "USD", "dollars": "USD", "bucks": "USD",
    "eur": "EUR", "euro": "EUR", "euros": "EUR",
    "gbp": "GBP", "pound": "GBP", "pounds": "GBP",
    "jpy": "JPY", "yen": "JPY", "inr": "INR", "rupees": "INR",
    "aud": "AUD", "cad": "CAD", "chf": "CHF",
}
_AMOUNT = r"(?P<num>\d[\d,]*(?:\.\d+)?)\s?(?P<k>k)?"
BUDGET_SYMBOL = re.compile(r"(?P<sym>[$€£¥₹])\s?" + _AMOUNT + r"(?![\w])", re.IGNORECASE)
BUDGET_CODE = re.compile(
    r"\b" + _AMOUNT + r"\s?(?P<code>" + "|".join(CURRENCY_WORDS) + r")\b", re.IGNORECASE
)
BUDGET_KEYWORD = re.compile(
    r"\bbudget\s+(?:of|is|around|about|:|=)?\s*(?:~\s*)?" + _AMOUNT + r"(?![\w/-])",
    re.IGNORECASE,
)
PER_PERSON = re.compile(
    r"^\W{0,3}(?:\w+\W+){0,3}?(?:per\s+person|pp\b|p\.p\.|each\b|per\s+head|a\s+head|/\s?person|per\s+traveller|per\s+traveler)",
    re.IGNORECASE,
)
BUDGET_TIERS: Tuple[Tuple[BudgetTier, re.Pattern[str]], ...] = (
    (BudgetTier.LUXURY, re.compile(r"\b(?:luxury|luxurious|high[- ]end|upscale|five[- ]star|5[- ]star|splurge)\b", re.IGNORECASE)),
    (BudgetTier.MODERATE, re.compile(r"\b(?:mid[- ]?range|moderate|mid[- ]level|middle[- ]of[- ]the[- ]road|reasonable|comfortable)\b", re.IGNORECASE)),
    (BudgetTier.BUDGET, re.compile(r"\b(?:cheap|shoestring|affordable|low[- ]cost|inexpensive|on\s+a\s+budget|tight\s+budget|low\s+budget|budget[- ](?:trip|travel|friendly|hotels?))\b", re.IGNORECASE)),
)

# First match wins, in this order.
TRIP_TYPES: Tuple[Tuple[TripType, re.Pattern[str]], ...] = (
    (TripType.HONEYMOON, re.compile(r"\bhoneymoon", re.IGNORECASE)),
    (TripType.BUSINESS, re.compile(r"\b(?:business|conference|work\s+trip|client\s+meeting|meetings?)\b", re.IGNORECASE)),
    (TripType.BACKPACKING, re.compile(r"\bbackpack", re.IGNORECASE)),
    (TripType.LUXURY, re.compile(r"\b(?:luxury|luxurious|upscale|five[- ]star|5[- ]star)\b", re.IGNORECASE)),
    (TripType.BUDGET, re.compile(r"\b(?:on\s+a\s+budget|budget\s+(?:trip|travel)|cheap|shoestring|low[- ]cost)\b", re.IGNORECASE)),
    (TripType.ADVENTURE, re.compile(r"\b(?:adventur\w*|hiking|trekking|trek|safari|climbing|rafting|diving|extreme)\b", re.IGNORECASE)),
    (TripType.RELAXATION, re.compile(r"\b(?:relax\w*|unwind|chill|spa|peaceful|laid[- ]back)\b", re.IGNORECASE)),
    (TripType.CULTURAL, re.compile(r"\b(?:cultur\w*|museums?|heritage|historic\w*)\b", re.IGNORECASE)),
    (TripType.SOLO, SOLO),
    (TripType.COUPLE, re.compile(r"\b(?:couple|romantic|anniversary|(?:my|with\s+my)\s+(?:wife|husband|partner|girlfriend|boyfriend))\b", re.IGNORECASE)),
    (TripType.FAMILY, re.compile(r"\b(?:family|kids|children)\b", re.IGNORECASE)),
)

INTERESTS: Dict[str, re.Pattern[str]] = {
    tag: re.compile(pattern, re.IGNORECASE)
    for tag, pattern in (
        ("food", r"\b(?:food|foodie|cuisine|restaurants?|eat(?:ing)?|culinary|street\s+food|wine)\b"),
        ("culture", r"\b(?:cultur\w*|local\s+life|traditions?)\b"),
        ("history", r"\b(?:history|historic\w*|ancient|ruins|castles?)\b"),
        ("nature", r"\b(?:nature|national\s+parks?|parks?|outdoors?|scenery|lakes?)\b"),
        ("adventure", r"\b(?:adventur\w*|hiking|trekking|rafting|zip[- ]?lining|climbing)\b"),
        ("nightlife", r"\b(?:nightlife|bars?|clubs?|clubbing|parties|party)\b"),
        ("shopping", r"\b(?:shopping|shops?|markets?|boutiques?)\b"),
        ("photography", r"\b(?:photography|photos?|instagram)\b"),
        ("architecture", r"\b(?:architecture|buildings|cathedrals?)\b"),
        ("art", r"\b(?:art|arts|galleries|gallery|museums?)\b"),
        ("music", r"\b(?:music|concerts?|festivals?|jazz|live\s+shows?)\b"),
        ("sports", r"\b(?:sports?|football|soccer|golf|skiing|surfing|tennis)\b"),
        ("wellness", r"\b(?:wellness|spa|yoga|massage|retreat)\b"),
        ("beach", r"\b(?:beach(?:es)?|seaside|coast|island|snorkel\w*)\b"),
        ("mountains", r"\b(?:mountains?|alps|alpine|peaks?)\b"),
        ("wildlife", r"\b(?:wildlife|safari|animals|zoo|birdwatching|whales?)\b"),
    )
}

BARE_NUMBER = re.compile(r"^\s*(?:about\s+|around\s+|maybe\s+)?" + _NUMBER + r"\s*[.!]?\s*$", re.IGNORECASE)


def _to_int(token: str) -> Optional[int]:
    token = token.lower()
    if token.isdigit():
        return int(token)
    return _NUMBER_WORDS.get(token)


@dataclass(frozen=True, slots=True)
class _PlaceHit:
    name: str
    start: int
    end: int
    confidence: ConfidenceTier
    is_country: bool = False
    country: str = ""


@dataclass
class LexicalExtractor:
    """Rule-based extractor for destinations, dates, durations, travelers,
    budget, trip type and interests.

    Attributes:
        config: Plausibility bounds
    """

    config: ExtractionConfig = field(default_factory=lambda: get_config().extraction)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def extract(
        self,
        text: str,
        today: date,
        pending_field: Optional[str] = None,
    ) -> TripIntent:
        """Extract a partial intent from one utterance.

        Args:
            text: Utterance (possibly enriched with borrowed context).
            today: Date of the request; relative dates resolve against it.
            pending_field: Field the previous question asked about, so a
                bare answer such as "5" can be attributed.

        Returns:
            Partial TripIntent holding only the fields that matched.
        """
        origin_hit = self._find_origin(text)
        hits = [
            h for h in self._find_places(text)
            if origin_hit is None or h.name.casefold() != origin_hit.name.casefold()
        ]
        hits = self._drop_covered_countries(hits)

        durations = find_durations(text)
        per_destination = self._per_destination_days(text, hits, durations)
        duration = self._total_duration(hits, durations, per_destination)

        start_date: Optional[date] = None
        resolution = resolve_dates(text, today)
        if resolution is not None:
            if today <= resolution.start <= today + timedelta(days=self.config.max_days_ahead):
                start_date = resolution.start
                if resolution.end is not None:
                    span = inclusive_days(resolution.start, resolution.end)
                    stated_later = durations and durations[-1].start > resolution.span[0]
                    if duration is None or not stated_later:
                        duration = span
            else:
                self._logger.debug(
                    "Dropped out-of-range start date",
                    extra={"start_date": resolution.start.isoformat()},
                )

        duration = self._bounded_duration(duration)
        if len(hits) == 1 and duration is not None and hits[0].name.casefold() in per_destination:
            # A single stop lasts the whole trip; a later restatement wins.
            per_destination[hits[0].name.casefold()] = duration

        destinations = tuple(
            Destination(
                name=h.name,
                days=self._bounded_duration(per_destination.get(h.name.casefold())),
                confidence=h.confidence,
            )
            for h in hits
        )

        travelers, travelers_soft = self._travelers(text)
        provenance: List[FieldProvenance] = []
        if travelers_soft:
            provenance.append(
                FieldProvenance("traveler_count", FieldSource.PREDICTIVE, ConfidenceTier.LOW)
            )

        intent = TripIntent(
            destinations=destinations,
            origin=origin_hit.name if origin_hit else None,
            start_date=start_date,
            duration_days=duration,
            traveler_count=travelers,
            budget=self._budget(text),
            trip_type=self._trip_type(text),
            interests=self._interests(text),
            provenance=tuple(provenance),
        )

        if pending_field:
            intent = self._apply_bare_answer(text, intent, pending_field)

        self._logger.debug(
            "Lexical extraction",
            extra={"fields": list(intent.present_fields())},
        )
        return intent

    # -- destinations -----------------------------------------------------

    def _find_places(self, text: str) -> List[_PlaceHit]:
        hits: List[_PlaceHit] = []
        covered: List[Tuple[int, int]] = []

        for match in place_pattern().finditer(text):
            place = find_place(match.group(0))
            if place is None:
                continue
            hits.append(
                _PlaceHit(place.name, match.start(), match.end(), ConfidenceTier.HIGH,
                          place.is_country, place.country)
            )
            covered.append(match.span())

        for pattern in (ANCHORED_DESTINATIONS, SUFFIXED_DESTINATION):
            for match in pattern.finditer(text):
                names_start = match.start("names")
                offset = 0
                for part in LIST_SEPARATOR.split(match.group("names")):
                    part_start = text.find(part, names_start + offset)
                    offset = max(offset, part_start - names_start + len(part))
                    name = self._clean_candidate(part)
                    if not name:
                        continue
                    end = part_start + len(name)
                    if any(s <= part_start < e or s < end <= e for s, e in covered):
                        continue
                    hits.append(_PlaceHit(name, part_start, end, ConfidenceTier.MEDIUM))
                    covered.append((part_start, end))

        hits.sort(key=lambda h: h.start)
        unique: List[_PlaceHit] = []
        seen = set()
        for hit in hits:
            if hit.name.casefold() not in seen:
                seen.add(hit.name.casefold())
                unique.append(hit)
        return unique

    @staticmethod
    def _clean_candidate(phrase: str) -> Optional[str]:
        """Trim a capitalized phrase at the first common word."""
        kept: List[str] = []
        for token in phrase.strip(" .,!?").split():
            if is_common_word(token):
                break
            kept.append(token.strip(".,!?"))
        if not kept:
            return None
        return " ".join(kept)

    @staticmethod
    def _drop_covered_countries(hits: List[_PlaceHit]) -> List[_PlaceHit]:
        """'Kyoto, Japan' means Kyoto; a country alone is kept."""
        countries_with_city = {h.country.casefold() for h in hits if not h.is_country and h.country}
        return [
            h for h in hits
            if not (h.is_country and h.name.casefold() in countries_with_city)
        ]

    def _find_origin(self, text: str) -> Optional[_PlaceHit]:
        for match in ORIGIN.finditer(text):
            rest = match.end()
            known = place_pattern().match(text, rest)
            if known:
                place = find_place(known.group(0))
                if place is not None:
                    return _PlaceHit(place.name, rest, known.end(), ConfidenceTier.HIGH,
                                     place.is_country, place.country)
            unknown = CAPITALIZED.match(text, rest)
            if unknown:
                name = self._clean_candidate(unknown.group(0))
                if name:
                    return _PlaceHit(name, rest, rest + len(name), ConfidenceTier.MEDIUM)
        return None

    # -- durations --------------------------------------------------------

    def _per_destination_days(
        self,
        text: str,
        hits: List[_PlaceHit],
        durations: List[DurationMention],
    ) -> Dict[str, int]:
        """Days allotted to single destinations ("3 days in Rome", "Rome for 3 days")."""
        days: Dict[str, int] = {}
        for mention in durations:
            if mention.each:
                for hit in hits:
                    days[hit.name.casefold()] = mention.days
                continue
            after = re.match(r"\s+(?:in|at)\s+", text[mention.end:])
            if after:
                target = mention.end + after.end()
                following = [h for h in hits if h.start == target]
                if following and not self._starts_list(text, following[0], hits):
                    days[following[0].name.casefold()] = mention.days
                continue
            for hit in hits:
                between = text[hit.end:mention.start]
                if re.fullmatch(r"\s+for\s+(?:about\s+)?", between, re.IGNORECASE):
                    days[hit.name.casefold()] = mention.days
        return days

    @staticmethod
    def _starts_list(text: str, hit: _PlaceHit, hits: List[_PlaceHit]) -> bool:
        for other in hits:
            if other.start > hit.end and re.fullmatch(
                r"\s*(?:,|and|&|,\s*and)\s*", text[hit.end:other.start], re.IGNORECASE
            ):
                return True
        return False

    @staticmethod
    def _total_duration(
        hits: List[_PlaceHit],
        durations: List[DurationMention],
        per_destination: Dict[str, int],
    ) -> Optional[int]:
        """Overall length; the last explicit statement wins.

        Several single-destination allotments add up ("3 days in Rome and
        2 in Florence"); "one week each" multiplies across destinations
        when nothing else states the total.
        """
        totals = [m for m in durations if not m.each]
        if not totals:
            each = [m for m in durations if m.each]
            if each and hits:
                return each[-1].days * len(hits)
            return None
        if len(per_destination) >= 2 and len(totals) == len(per_destination):
            return sum(per_destination.values())
        return totals[-1].days

    def _bounded_duration(self, days: Optional[int]) -> Optional[int]:
        if days is None:
            return None
        if self.config.min_duration_days <= days <= self.config.max_duration_days:
            return days
        self._logger.debug("Dropped out-of-range duration", extra={"duration_days": days})
        return None

    # -- travelers, budget, style ----------------------------------------

    def _bounded_travelers(self, count: Optional[int]) -> Optional[int]:
        if count is not None and 1 <= count <= self.config.max_travelers:
            return count
        return None

    def _travelers(self, text: str) -> Tuple[Optional[int], bool]:
        """Traveler count and whether it is only a soft family default."""
        match = ADULTS_AND_KIDS.search(text)
        if match:
            adults = _to_int(match.group(1)) or 0
            kids = _to_int(match.group(2)) if match.group(2) else 0
            return self._bounded_travelers(adults + (kids or 0)), False

        match = KIDS_ONLY.search(text)
        if match:
            count = _to_int(match.group(1))
            return self._bounded_travelers(count + 1 if count is not None else None), False

        for pattern in (GROUP_OF, N_PEOPLE):
            match = pattern.search(text)
            if match:
                return self._bounded_travelers(_to_int(match.group(1))), False

        if SOLO.search(text):
            return 1, False
        if PAIR.search(text) or FOR_TWO.search(text):
            return 2, False
        if FAMILY.search(text):
            return 4, True
        return None, False

    def _budget(self, text: str) -> Optional[Budget]:
        amount: Optional[float] = None
        currency = self.config.default_currency
        per_person = False

        for pattern in (BUDGET_SYMBOL, BUDGET_CODE, BUDGET_KEYWORD):
            match = pattern.search(text)
            if not match:
                continue
            value = float(match.group("num").replace(",", ""))
            if match.group("k"):
                value *= 1000
            groups = match.groupdict()
            if groups.get("sym"):
                currency = CURRENCY_SYMBOLS[groups["sym"]]
            elif groups.get("code"):
                currency = CURRENCY_WORDS[groups["code"].lower()]
            else:
                code = re.match(r"\s*(" + "|".join(CURRENCY_WORDS) + r")\b", text[match.end():], re.IGNORECASE)
                if code:
                    currency = CURRENCY_WORDS[code.group(1).lower()]
            if 0 < value <= self.config.max_budget:
                amount = value
                per_person = bool(PER_PERSON.search(text[match.end():match.end() + 30]))
            else:
                self._logger.debug("Dropped out-of-range budget", extra={"budget": value})
            break

        tier = None
        for candidate, pattern in BUDGET_TIERS:
            if pattern.search(text):
                tier = candidate
                break

        if amount is None and tier is None:
            return None
        return Budget(amount=amount, currency=currency, per_person=per_person, tier=tier)

    @staticmethod
    def _trip_type(text: str) -> Optional[TripType]:
        for trip_type, pattern in TRIP_TYPES:
            if pattern.search(text):
                return trip_type
        return None

    @staticmethod
    def _interests(text: str) -> Tuple[str, ...]:
        return tuple(tag for tag, pattern in INTERESTS.items() if pattern.search(text))

    # -- continuation answers --------------------------------------------

    def _apply_bare_answer(self, text: str, intent: TripIntent, pending_field: str) -> TripIntent:
        """Attribute a bare answer ("5", "Lisbon") to the field just asked about."""
        bare = BARE_NUMBER.match(text)
        if pending_field == "duration_days" and intent.duration_days is None and bare:
            return replace(intent, duration_days=self._bounded_duration(_to_int(bare.group(1))))
        if pending_field == "traveler_count" and intent.traveler_count is None and bare:
            return replace(intent, traveler_count=self._bounded_travelers(_to_int(bare.group(1))))
        if pending_field == "destinations" and not intent.destinations:
            words = text.strip(" .!?").split()
            if 0 < len(words) <= 3 and all(w[0].isupper() for w in words):
                name = self._clean_candidate(" ".join(words))
                if name and name.replace(" ", "").replace("-", "").isalpha():
                    return replace(
                        intent,
                        destinations=(Destination(name, confidence=ConfidenceTier.MEDIUM),),
                    )
        return intent
