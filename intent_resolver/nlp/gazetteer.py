"""Known-place gazetteer.

Canonical destinations with their country, a daily cost estimate and a
handful of profile tags, plus the countries recognised on their own.
The tags feed both the embedding descriptions and the interest-based
destination suggestions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True, slots=True)
class Place:
    """A canonical destination.

    Attributes:
        name: Display name
        country: Country name ('' for countries themselves)
        daily_cost: Typical daily spend per person in USD
        tags: Profile tags (interests the place is known for)
        aliases: Alternative spellings matched case-insensitively
        is_country: Whether this entry is a country
    """

    name: str
    country: str = ""
    daily_cost: int = 150
    tags: Tuple[str, ...] = ()
    aliases: Tuple[str, ...] = ()
    is_country: bool = False

    @property
    def description(self) -> str:
        return f"{self.name} {' '.join(self.tags)}".strip()


EXPENSIVE = 250
AFFORDABLE = 100
DEFAULT_DAILY_COST = 150

CITIES: Tuple[Place, ...] = (
    Place("Paris", "France", EXPENSIVE, ("romantic", "culture", "art", "food", "architecture")),
    Place("London", "United Kingdom", EXPENSIVE, ("history", "culture", "shopping", "music")),
    Place("Tokyo", "Japan", EXPENSIVE, ("food", "culture", "shopping", "nightlife"), ("tokio",)),
    Place("Kyoto", "Japan", DEFAULT_DAILY_COST, ("history", "culture", "nature", "architecture")),
    Place("New York", "United States", EXPENSIVE, ("culture", "shopping", "food", "art", "nightlife"), ("nyc", "new york city")),
    Place("Los Angeles", "United States", EXPENSIVE, ("beach", "shopping", "nightlife")),
    Place("San Francisco", "United States", EXPENSIVE, ("food", "architecture", "nature")),
    Place("Miami", "United States", EXPENSIVE, ("beach", "nightlife", "food")),
    Place("Las Vegas", "United States", DEFAULT_DAILY_COST, ("nightlife", "shopping", "music")),
    Place("Chicago", "United States", DEFAULT_DAILY_COST, ("architecture", "food", "music")),
    Place("Dubai", "United Arab Emirates", EXPENSIVE, ("shopping", "architecture", "beach")),
    Place("Singapore", "", EXPENSIVE, ("food", "shopping", "architecture")),
    Place("Bangkok", "Thailand", AFFORDABLE, ("food", "culture", "shopping", "nightlife")),
    Place("Phuket", "Thailand", AFFORDABLE, ("beach", "nightlife", "wellness")),
    Place("Bali", "Indonesia", AFFORDABLE, ("beach", "wellness", "nature", "culture")),
    Place("Hanoi", "Vietnam", AFFORDABLE, ("food", "history", "culture")),
    Place("Seoul", "South Korea", DEFAULT_DAILY_COST, ("food", "shopping", "nightlife", "culture")),
    Place("Hong Kong", "China", EXPENSIVE, ("food", "shopping", "architecture")),
    Place("Beijing", "China", DEFAULT_DAILY_COST, ("history", "culture", "architecture")),
    Place("Rome", "Italy", DEFAULT_DAILY_COST, ("history", "art", "food", "architecture")),
    Place("Florence", "Italy", DEFAULT_DAILY_COST, ("art", "history", "food")),
    Place("Venice", "Italy", EXPENSIVE, ("romantic", "architecture", "art")),
    Place("Milan", "Italy", DEFAULT_DAILY_COST, ("shopping", "art", "food")),
    Place("Barcelona", "Spain", DEFAULT_DAILY_COST, ("beach", "architecture", "food", "nightlife")),
    Place("Madrid", "Spain", DEFAULT_DAILY_COST, ("art", "food", "nightlife")),
    Place("Lisbon", "Portugal", AFFORDABLE, ("food", "culture", "beach", "history")),
    Place("Porto", "Portugal", AFFORDABLE, ("food", "architecture", "culture")),
    Place("Amsterdam", "Netherlands", DEFAULT_DAILY_COST, ("art", "culture", "nightlife")),
    Place("Berlin", "Germany", DEFAULT_DAILY_COST, ("history", "nightlife", "art", "music")),
    Place("Munich", "Germany", DEFAULT_DAILY_COST, ("food", "history", "mountains")),
    Place("Vienna", "Austria", DEFAULT_DAILY_COST, ("music", "history", "architecture")),
    Place("Prague", "Czech Republic", AFFORDABLE, ("history", "architecture", "nightlife")),
    Place("Budapest", "Hungary", AFFORDABLE, ("history", "wellness", "nightlife")),
    Place("Athens", "Greece", DEFAULT_DAILY_COST, ("history", "culture", "food")),
    Place("Santorini", "Greece", EXPENSIVE, ("beach", "romantic", "photography")),
    Place("Istanbul", "Turkey", AFFORDABLE, ("history", "culture", "food", "shopping")),
    Place("Copenhagen", "Denmark", EXPENSIVE, ("food", "architecture", "culture")),
    Place("Stockholm", "Sweden", EXPENSIVE, ("architecture", "culture", "nature")),
    Place("Reykjavik", "Iceland", EXPENSIVE, ("nature", "adventure", "photography")),
    Place("Dublin", "Ireland", DEFAULT_DAILY_COST, ("music", "nightlife", "history")),
    Place("Edinburgh", "United Kingdom", DEFAULT_DAILY_COST, ("history", "architecture", "culture")),
    Place("Zurich", "Switzerland", EXPENSIVE, ("mountains", "nature", "shopping")),
    Place("Interlaken", "Switzerland", EXPENSIVE, ("mountains", "adventure", "nature")),
    Place("Marrakech", "Morocco", AFFORDABLE, ("culture", "shopping", "food"), ("marrakesh",)),
    Place("Cairo", "Egypt", AFFORDABLE, ("history", "culture")),
    Place("Cape Town", "South Africa", DEFAULT_DAILY_COST, ("nature", "wildlife", "beach", "adventure")),
    Place("Nairobi", "Kenya", DEFAULT_DAILY_COST, ("wildlife", "nature", "adventure")),
    Place("Sydney", "Australia", EXPENSIVE, ("beach", "nature", "music")),
    Place("Melbourne", "Australia", DEFAULT_DAILY_COST, ("food", "art", "sports")),
    Place("Auckland", "New Zealand", DEFAULT_DAILY_COST, ("nature", "adventure", "sports")),
    Place("Queenstown", "New Zealand", DEFAULT_DAILY_COST, ("adventure", "mountains", "nature")),
    Place("Rio de Janeiro", "Brazil", DEFAULT_DAILY_COST, ("beach", "nightlife", "music"), ("rio",)),
    Place("Buenos Aires", "Argentina", AFFORDABLE, ("food", "music", "nightlife")),
    Place("Lima", "Peru", AFFORDABLE, ("food", "history")),
    Place("Cusco", "Peru", AFFORDABLE, ("history", "adventure", "mountains"), ("cuzco",)),
    Place("Mexico City", "Mexico", AFFORDABLE, ("food", "history", "art")),
    Place("Cancun", "Mexico", DEFAULT_DAILY_COST, ("beach", "nightlife", "wellness"), ("cancún",)),
    Place("Toronto", "Canada", DEFAULT_DAILY_COST, ("food", "culture", "shopping")),
    Place("Vancouver", "Canada", DEFAULT_DAILY_COST, ("nature", "mountains", "food")),
    Place("Havana", "Cuba", AFFORDABLE, ("music", "history", "culture")),
)

COUNTRIES: Tuple[Place, ...] = tuple(
    Place(name, "", cost, tags, aliases, is_country=True)
    for name, cost, tags, aliases in (
        ("Japan", EXPENSIVE, ("culture", "food", "history"), ()),
        ("Thailand", AFFORDABLE, ("beach", "food", "culture"), ()),
        ("Italy", DEFAULT_DAILY_COST, ("food", "art", "history"), ()),
        ("France", EXPENSIVE, ("food", "culture", "art"), ()),
        ("Spain", DEFAULT_DAILY_COST, ("beach", "food", "culture"), ()),
        ("Portugal", AFFORDABLE, ("beach", "food", "culture"), ()),
        ("Greece", DEFAULT_DAILY_COST, ("beach", "history", "food"), ()),
        ("Germany", DEFAULT_DAILY_COST, ("history", "culture"), ()),
        ("Iceland", EXPENSIVE, ("nature", "adventure"), ()),
        ("Mexico", AFFORDABLE, ("beach", "food", "history"), ()),
        ("Peru", AFFORDABLE, ("adventure", "history", "mountains"), ()),
        ("Brazil", DEFAULT_DAILY_COST, ("beach", "nature", "music"), ()),
        ("Vietnam", AFFORDABLE, ("food", "nature", "history"), ()),
        ("Indonesia", AFFORDABLE, ("beach", "nature"), ()),
        ("India", AFFORDABLE, ("culture", "history", "food"), ()),
        ("Morocco", AFFORDABLE, ("culture", "shopping"), ()),
        ("Egypt", AFFORDABLE, ("history", "culture"), ()),
        ("Kenya", DEFAULT_DAILY_COST, ("wildlife", "nature"), ()),
        ("South Africa", DEFAULT_DAILY_COST, ("wildlife", "nature", "adventure"), ()),
        ("Australia", EXPENSIVE, ("beach", "nature", "wildlife"), ()),
        ("New Zealand", DEFAULT_DAILY_COST, ("nature", "adventure"), ()),
        ("Canada", DEFAULT_DAILY_COST, ("nature", "mountains"), ()),
        ("Switzerland", EXPENSIVE, ("mountains", "nature"), ()),
        ("Croatia", DEFAULT_DAILY_COST, ("beach", "history"), ()),
        ("Turkey", AFFORDABLE, ("history", "food"), ()),
        ("Norway", EXPENSIVE, ("nature", "mountains"), ()),
        ("Scotland", DEFAULT_DAILY_COST, ("nature", "history"), ()),
        ("Ireland", DEFAULT_DAILY_COST, ("music", "nature"), ()),
        ("Costa Rica", DEFAULT_DAILY_COST, ("nature", "wildlife", "adventure"), ()),
        ("Argentina", AFFORDABLE, ("food", "nature"), ()),
        ("Chile", DEFAULT_DAILY_COST, ("nature", "mountains"), ()),
        ("China", DEFAULT_DAILY_COST, ("history", "culture"), ()),
        ("South Korea", DEFAULT_DAILY_COST, ("food", "culture"), ("korea",)),
        ("United States", EXPENSIVE, ("culture", "nature"), ("usa",)),
        ("United Kingdom", EXPENSIVE, ("history", "culture"), ("uk",)),
    )
)

ALL_PLACES: Tuple[Place, ...] = CITIES + COUNTRIES

# Capitalized words that look like places after "to"/"in" but are not.
COMMON_WORDS = frozenset(
    {
        "i", "im", "i'm", "we", "my", "our", "the", "a", "an", "and", "or",
        "me", "us", "it", "this", "that", "there", "here", "then",
        "please", "thanks", "hi", "hello", "hey", "yes", "no", "ok", "okay",
        "also", "maybe", "actually", "somewhere", "anywhere", "europe", "asia",
        "january", "february", "march", "april", "may", "june", "july",
        "august", "september", "october", "november", "december",
        "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept",
        "oct", "nov", "dec",
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
        "sunday", "today", "tomorrow", "tonight", "next", "last", "christmas",
        "easter", "summer", "winter", "spring", "autumn", "fall",
        "new", "year", "years", "weekend", "week", "weeks", "month", "day", "days",
        "travel", "trip", "visit", "go", "going", "stay", "budget", "family",
        "couple", "honeymoon", "business", "work", "adventure", "luxury",
        "in", "on", "at", "for", "with", "from", "to", "of", "by", "around",
        "during", "what", "how", "can", "could", "would", "let", "lets", "let's",
        "want", "need", "plan", "planning", "book", "help", "you", "too",
        "road", "beach", "ski", "girls", "boys", "dream", "quick", "short",
        "long", "big", "small", "little", "romantic", "solo", "group", "city",
        "school", "cheap", "fun", "great", "nice", "perfect", "relaxing",
        "sounds", "sure", "good",
    }
)


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text.strip()).casefold()


@lru_cache(maxsize=1)
def _lookup() -> Dict[str, Place]:
    table: Dict[str, Place] = {}
    for place in ALL_PLACES:
        table[_normalize(place.name)] = place
        for alias in place.aliases:
            table[_normalize(alias)] = place
    return table


@lru_cache(maxsize=1)
def place_pattern() -> re.Pattern[str]:
    """Regex matching any known name or alias, longest names first."""
    names = sorted(_lookup().keys(), key=len, reverse=True)
    alternation = "|".join(re.escape(n) for n in names)
    return re.compile(rf"(?<![\w'])(?:{alternation})(?![\w'])", re.IGNORECASE)


def find_place(name: str) -> Optional[Place]:
    """Return the canonical place for a name or alias."""
    return _lookup().get(_normalize(name))


def is_common_word(word: str) -> bool:
    return _normalize(word).strip(".,!?") in COMMON_WORDS


def canonical_names() -> List[str]:
    return [place.name for place in ALL_PLACES]


def daily_cost(name: str) -> int:
    place = find_place(name)
    return place.daily_cost if place else DEFAULT_DAILY_COST


def places_for_tags(tags: Sequence[str], limit: int = 3) -> List[str]:
    """Rank cities by how many of the given tags they carry."""
    wanted = {t.casefold() for t in tags}
    if not wanted:
        return []
    scored = []
    for index, place in enumerate(CITIES):
        overlap = len(wanted.intersection(place.tags))
        if overlap:
            scored.append((-overlap, index, place.name))
    scored.sort()
    return [name for _, _, name in scored[:limit]]
