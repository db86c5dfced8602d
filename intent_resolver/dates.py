"""Date and duration resolution for English travel requests.

Everything is computed relative to the ``today`` passed in by the
caller, never the system clock, so a conversation replays identically.

Start dates are resolved by category, highest priority first:

1. explicit ranges ("May 15-20", "15 to 20 June", ISO pairs)
2. explicit dates ("March 15th", "15 March 2027", ISO) and month
   qualifiers ("mid-March", "end of April", "in May")
3. relative terms ("tomorrow", "next weekend", "next week", "in 3 days")
4. seasons and holidays ("this summer", "christmas")
5. weekdays ("monday", "next friday")

Example
-------
    >>> resolve_dates("trip starting monday", date(2026, 10, 17)).start
    datetime.date(2026, 10, 19)
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import dateparser

MONTHS: Dict[str, int] = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

WEEKDAYS: Dict[str, int] = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}

NUMBER_WORDS: Dict[str, int] = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10, "eleven": 11,
    "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
    "twenty": 20, "thirty": 30,
}

# (month, day) at which each season or holiday period starts
SEASONS: Dict[str, tuple[int, int]] = {
    "spring": (3, 20),
    "summer": (6, 21),
    "autumn": (9, 22),
    "fall": (9, 22),
    "winter": (12, 21),
    "christmas": (12, 20),
    "xmas": (12, 20),
    "new year": (12, 30),
}

_MONTH = (
    r"(?P<{name}>jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sept?(?:ember)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)
_ORD = r"(?:st|nd|rd|th)?"
_SEP = r"\s*(?:-|–|—|to|through|thru|until|till)\s*"
_YEAR = r"(?:,?\s+(?P<year>\d{4}))?"

RANGE_MONTH_FIRST = re.compile(
    r"\b" + _MONTH.format(name="m1") + r"\s+(?P<d1>\d{1,2})" + _ORD + _SEP
    + r"(?:" + _MONTH.format(name="m2") + r"\s+)?(?P<d2>\d{1,2})" + _ORD + r"\b" + _YEAR,
    re.IGNORECASE,
)
RANGE_DAY_FIRST = re.compile(
    r"\b(?P<d1>\d{1,2})" + _ORD + _SEP + r"(?P<d2>\d{1,2})" + _ORD
    + r"\s+(?:of\s+)?" + _MONTH.format(name="m2") + r"\b" + _YEAR,
    re.IGNORECASE,
)
RANGE_ISO = re.compile(
    r"\b(?P<a>\d{4}-\d{2}-\d{2})" + _SEP + r"(?P<b>\d{4}-\d{2}-\d{2})\b"
)
DATE_MONTH_FIRST = re.compile(
    r"\b" + _MONTH.format(name="m") + r"\.?\s+(?P<d>\d{1,2})" + _ORD + r"\b(?!\s*(?:-|–|:))"
    + _YEAR,
    re.IGNORECASE,
)
DATE_DAY_FIRST = re.compile(
    r"\b(?P<d>\d{1,2})" + _ORD + r"\s+(?:of\s+)?" + _MONTH.format(name="m") + r"\b" + _YEAR,
    re.IGNORECASE,
)
DATE_ISO = re.compile(r"\b(?P<iso>\d{4}-\d{2}-\d{2})\b")
MONTH_QUALIFIED = re.compile(
    r"\b(?P<q>early|beginning\s+of|start\s+of|mid|middle\s+of|late|end\s+of"
    r"|in|during|this|next)[\s-]+(?:the\s+)?" + _MONTH.format(name="m") + r"\b",
    re.IGNORECASE,
)
IN_N_UNITS = re.compile(
    r"\bin\s+(?P<n>\d{1,2}|" + "|".join(NUMBER_WORDS) + r")\s+(?P<unit>day|week)s?\b",
    re.IGNORECASE,
)
SEASON = re.compile(
    r"\b(?P<prefix>(?:this|next|in|during|the|over)\s+(?:the\s+)?)?"
    r"(?P<season>spring|summer|autumn|fall|winter|christmas|xmas|new\s+year)\b",
    re.IGNORECASE,
)
WEEKDAY = re.compile(
    r"\b(?:(?P<mod>this|next|coming|on)\s+)?(?P<day>" + "|".join(WEEKDAYS) + r")s?\b",
    re.IGNORECASE,
)

DURATION = re.compile(
    r"(?<!\bin\s)(?<!\bwithin\s)\b(?P<n>\d{1,3}|" + "|".join(NUMBER_WORDS) + r")"
    r"(?:\s+(?:more|full|whole))?[\s-]+(?P<unit>day|night|week|month)s?\b"
    r"(?P<each>\s+(?:each|apiece|in\s+each|per\s+(?:city|stop|destination|place)))?",
    re.IGNORECASE,
)
FORTNIGHT = re.compile(r"(?<!\bin\s)\b(?:a|one)\s+fortnight\b", re.IGNORECASE)
LONG_WEEKEND = re.compile(r"\blong\s+weekend\b", re.IGNORECASE)
WEEKEND = re.compile(r"\bweekend\b", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class DateResolution:
    """Resolved trip window.

    Attributes:
        start: First day of the trip
        end: Last day, only for explicit ranges
        kind: Category that matched (range, explicit, relative, season, weekday)
        span: (start, end) character offsets of the matched text
    """

    start: date
    end: Optional[date] = None
    kind: str = "explicit"
    span: tuple[int, int] = (0, 0)


@dataclass(frozen=True, slots=True)
class DurationMention:
    """A stated length of stay.

    Attributes:
        days: Length in days
        start: Offset of the mention in the text
        end: End offset of the mention
        each: True when the length applies to each destination
    """

    days: int
    start: int
    end: int
    each: bool = False


def _number(token: str) -> Optional[int]:
    token = token.lower()
    if token.isdigit():
        return int(token)
    return NUMBER_WORDS.get(token)


def _month(token: Optional[str]) -> Optional[int]:
    if not token:
        return None
    key = token.lower().rstrip(".")
    if key in MONTHS:
        return MONTHS[key]
    for name, number in MONTHS.items():
        if len(key) >= 3 and name.startswith(key):
            return number
    return None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _upcoming(month: int, day: int, today: date) -> Optional[date]:
    """Next occurrence of month/day on or after today."""
    for year in (today.year, today.year + 1):
        candidate = _safe_date(year, month, day)
        if candidate is not None and candidate >= today:
            return candidate
    # Feb 29 with no leap year in reach
    return None


def normalize_date(fragment: str, today: date) -> Optional[date]:
    """Parse an explicit date fragment with dateparser.

    Missing years resolve to the next occurrence on or after ``today``.

    Args:
        fragment: Text such as "March 15th" or "15 March 2027".
        today: Reference date.

    Returns:
        The parsed date, or None if the fragment is not a valid date.
    """
    parsed = dateparser.parse(
        fragment,
        languages=["en"],
        settings={
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": datetime(today.year, today.month, today.day),
            "DATE_ORDER": "MDY",
            "REQUIRE_PARTS": ["day", "month"],
        },
    )
    if parsed is None:
        return None
    return parsed.date()


def _iso(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _explicit(month: int, day: int, year: Optional[str], fragment: str, today: date) -> Optional[date]:
    if year:
        return _safe_date(int(year), month, day)
    parsed = normalize_date(fragment, today)
    if parsed is not None and parsed.month == month and parsed.day == day and parsed >= today:
        return parsed
    return _upcoming(month, day, today)


def _find_range(text: str, today: date) -> Optional[DateResolution]:
    match = RANGE_ISO.search(text)
    if match:
        start = _iso(match.group("a"))
        end = _iso(match.group("b"))
        if start and end and end >= start:
            return DateResolution(start, end, "range", match.span())

    for pattern in (RANGE_MONTH_FIRST, RANGE_DAY_FIRST):
        match = pattern.search(text)
        if not match:
            continue
        groups = match.groupdict()
        end_month = _month(groups.get("m2")) or _month(groups.get("m1"))
        start_month = _month(groups.get("m1")) or end_month
        if start_month is None or end_month is None:
            continue
        d1, d2 = int(groups["d1"]), int(groups["d2"])
        year = groups.get("year")
        start = _explicit(start_month, d1, year, f"{calendar.month_name[start_month]} {d1}", today)
        if start is None:
            continue
        end = _safe_date(start.year, end_month, d2)
        if end is not None and end < start:
            end = _safe_date(start.year + 1, end_month, d2)
        if end is None:
            continue
        return DateResolution(start, end, "range", match.span())
    return None


def _find_explicit(text: str, today: date) -> Optional[DateResolution]:
    match = DATE_ISO.search(text)
    if match:
        parsed = _iso(match.group("iso"))
        if parsed:
            return DateResolution(parsed, None, "explicit", match.span())

    candidates = []
    for pattern in (DATE_MONTH_FIRST, DATE_DAY_FIRST):
        for match in pattern.finditer(text):
            month = _month(match.group("m"))
            day = int(match.group("d"))
            if month is None:
                continue
            resolved = _explicit(month, day, match.group("year"), match.group(0), today)
            if resolved is not None:
                candidates.append((match.start(), DateResolution(resolved, None, "explicit", match.span())))
    if candidates:
        candidates.sort(key=lambda item: item[0])
        return candidates[0][1]

    match = MONTH_QUALIFIED.search(text)
    if match:
        month = _month(match.group("m"))
        if month is not None:
            qualifier = re.sub(r"\s+", " ", match.group("q").lower())
            year = today.year
            last_day = calendar.monthrange(year, month)[1]
            day = {
                "mid": 15,
                "middle of": 15,
                "late": 20,
                "end of": last_day,
            }.get(qualifier, 1)
            start = _safe_date(year, month, min(day, last_day))
            if month == today.month and qualifier in ("in", "this", "during"):
                # "in October" said during October means the rest of this month
                start = today
            elif start is None or start < today:
                last_day = calendar.monthrange(year + 1, month)[1]
                start = _safe_date(year + 1, month, min(day, last_day))
            if start is not None:
                return DateResolution(start, None, "explicit", match.span())
    return None


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def upcoming_saturday(today: date) -> date:
    """Saturday of the current weekend (today if it is Saturday)."""
    return today + timedelta(days=(5 - today.weekday()) % 7)


def _find_relative(text: str, today: date) -> Optional[DateResolution]:
    lowered = text.lower()
    checks = (
        (r"\bday after tomorrow\b", lambda: today + timedelta(days=2)),
        (r"\btomorrow\b", lambda: today + timedelta(days=1)),
        (r"\b(?:today|tonight)\b", lambda: today),
        # next weekend is the one of the following Monday-based week
        (r"\bnext\s+weekend\b", lambda: today + timedelta(days=7 - today.weekday() + 5)),
        (r"\b(?:this|the)\s+(?:long\s+)?weekend\b", lambda: upcoming_saturday(today)),
        (r"\bnext\s+week\b", lambda: today + timedelta(days=7)),
        (r"\bnext\s+month\b", lambda: _add_months(today, 1)),
    )
    for pattern, compute in checks:
        match = re.search(pattern, lowered)
        if match:
            return DateResolution(compute(), None, "relative", match.span())

    match = IN_N_UNITS.search(text)
    if match:
        n = _number(match.group("n"))
        if n is not None:
            days = n * 7 if match.group("unit").lower() == "week" else n
            return DateResolution(today + timedelta(days=days), None, "relative", match.span())
    return None


def _find_season(text: str, today: date) -> Optional[DateResolution]:
    for match in SEASON.finditer(text):
        season = re.sub(r"\s+", " ", match.group("season").lower())
        if season == "fall" and not match.group("prefix"):
            continue
        month, day = SEASONS[season]
        start = _upcoming(month, day, today)
        if start is not None:
            return DateResolution(start, None, "season", match.span())
    return None


def resolve_weekday(name: str, today: date, modifier: Optional[str] = None) -> date:
    """Resolve a weekday name to a date.

    "this monday" may be today; a bare, "on", "next" or "coming" monday is
    always strictly after today. The result always falls on the named day.

    Args:
        name: Weekday name.
        today: Reference date.
        modifier: Optional "this"/"next"/"coming"/"on".

    Returns:
        The resolved date.
    """
    target = WEEKDAYS[name.lower().rstrip("s")]
    if modifier and modifier.lower() == "this":
        return today + timedelta(days=(target - today.weekday()) % 7)
    return today + timedelta(days=(target - today.weekday() - 1) % 7 + 1)


def _find_weekday(text: str, today: date) -> Optional[DateResolution]:
    match = WEEKDAY.search(text)
    if not match:
        return None
    start = resolve_weekday(match.group("day"), today, match.group("mod"))
    return DateResolution(start, None, "weekday", match.span())


def resolve_dates(text: str, today: date) -> Optional[DateResolution]:
    """Resolve the trip start (and explicit end) mentioned in text.

    Args:
        text: Utterance text.
        today: Date of the request.

    Returns:
        DateResolution from the highest-priority category that matched,
        or None.
    """
    for finder in (_find_range, _find_explicit, _find_relative, _find_season, _find_weekday):
        found = finder(text, today)
        if found is not None:
            return found
    return None


def find_durations(text: str) -> List[DurationMention]:
    """Find every stated length of stay, in order of appearance.

    Nights count as nights + 1 days, weeks as 7 days and months as 30.
    "weekend" (3) and "long weekend" (4) only count when no explicit
    length is present. Bounds are not applied here.
    """
    mentions: List[DurationMention] = []
    for match in DURATION.finditer(text):
        n = _number(match.group("n"))
        if n is None:
            continue
        unit = match.group("unit").lower()
        if unit == "week":
            days = n * 7
        elif unit == "month":
            days = n * 30
        elif unit == "night":
            days = n + 1
        else:
            days = n
        mentions.append(DurationMention(days, match.start(), match.end(), bool(match.group("each"))))

    for match in FORTNIGHT.finditer(text):
        mentions.append(DurationMention(14, match.start(), match.end()))

    if not mentions:
        match = LONG_WEEKEND.search(text) or WEEKEND.search(text)
        if match:
            days = 4 if "long" in match.group(0).lower() else 3
            mentions.append(DurationMention(days, match.start(), match.end()))

    mentions.sort(key=lambda m: m.start)
    return mentions


def inclusive_days(start: date, end: date) -> int:
    """Number of trip days between two dates, both included."""
    return (end - start).days + 1


def format_date(day: date) -> str:
    """Human format used in messages and enriched text: 'March 15, 2027'."""
    return f"{calendar.month_name[day.month]} {day.day}, {day.year}"
