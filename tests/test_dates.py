"""Tests for date and duration resolution."""

import os
import sys
from datetime import date, timedelta

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from intent_resolver.dates import (
    find_durations,
    format_date,
    inclusive_days,
    resolve_dates,
    resolve_weekday,
    upcoming_saturday,
)

# A Wednesday
TODAY = date(2026, 10, 14)


class TestRelativeDates:
    def test_tomorrow(self):
        assert resolve_dates("leaving tomorrow", TODAY).start == date(2026, 10, 15)

    def test_day_after_tomorrow(self):
        assert resolve_dates("the day after tomorrow", TODAY).start == date(2026, 10, 16)

    def test_next_weekend_is_saturday_of_next_week(self):
        result = resolve_dates("Next weekend, 3 days", TODAY)
        assert result.start == date(2026, 10, 24)
        assert result.start.weekday() == 5
        assert result.kind == "relative"

    def test_this_weekend_is_upcoming_saturday(self):
        assert resolve_dates("this weekend", TODAY).start == date(2026, 10, 17)

    def test_upcoming_saturday_on_saturday_is_today(self):
        saturday = date(2026, 10, 17)
        assert upcoming_saturday(saturday) == saturday

    def test_next_week(self):
        assert resolve_dates("next week", TODAY).start == TODAY + timedelta(days=7)

    def test_next_month_clamps_day(self):
        assert resolve_dates("next month", date(2027, 1, 31)).start == date(2027, 2, 28)

    def test_in_n_days(self):
        result = resolve_dates("in 3 days", TODAY)
        assert result.start == date(2026, 10, 17)

    def test_in_two_weeks(self):
        assert resolve_dates("in two weeks", TODAY).start == date(2026, 10, 28)


class TestExplicitDates:
    def test_month_day_rolls_to_next_year(self):
        assert resolve_dates("starting March 15", TODAY).start == date(2027, 3, 15)

    def test_day_of_month(self):
        assert resolve_dates("from the 15th of March", TODAY).start == date(2027, 3, 15)

    def test_month_day_later_this_year(self):
        assert resolve_dates("December 3rd", TODAY).start == date(2026, 12, 3)

    def test_iso_date(self):
        result = resolve_dates("arriving 2026-12-01", TODAY)
        assert result.start == date(2026, 12, 1)
        assert result.end is None

    def test_range_month_first(self):
        result = resolve_dates("May 15-20", TODAY)
        assert result.start == date(2027, 5, 15)
        assert result.end == date(2027, 5, 20)
        assert result.kind == "range"

    def test_range_across_months(self):
        result = resolve_dates("May 28 to June 2", TODAY)
        assert result.start == date(2027, 5, 28)
        assert result.end == date(2027, 6, 2)

    def test_range_beats_relative(self):
        result = resolve_dates("next week, actually Nov 2-6", TODAY)
        assert result.start == date(2026, 11, 2)

    def test_end_of_month(self):
        assert resolve_dates("end of April", TODAY).start == date(2027, 4, 30)

    def test_mid_month(self):
        assert resolve_dates("mid-December", TODAY).start == date(2026, 12, 15)

    def test_in_current_month_starts_today(self):
        assert resolve_dates("in October", TODAY).start == TODAY


class TestSeasons:
    def test_summer(self):
        result = resolve_dates("this summer", TODAY)
        assert result.start == date(2027, 6, 21)
        assert result.kind == "season"

    def test_christmas(self):
        assert resolve_dates("over christmas", TODAY).start == date(2026, 12, 20)

    def test_bare_fall_is_not_a_season(self):
        assert resolve_dates("I hope I don't fall", TODAY) is None

    def test_in_the_fall(self):
        assert resolve_dates("in the fall", TODAY).start == date(2027, 9, 22)


class TestWeekdays:
    @pytest.mark.parametrize("offset", range(7))
    def test_monday_always_lands_on_monday(self, offset):
        today = TODAY + timedelta(days=offset)
        result = resolve_dates("trip to Paris starting monday", today)
        assert result.start.weekday() == 0
        assert today < result.start <= today + timedelta(days=7)

    def test_this_friday_can_be_today(self):
        friday = date(2026, 10, 16)
        assert resolve_weekday("friday", friday, "this") == friday

    def test_bare_weekday_is_strictly_future(self):
        friday = date(2026, 10, 16)
        assert resolve_weekday("friday", friday) == date(2026, 10, 23)


class TestDurations:
    @pytest.mark.parametrize(
        "text,days",
        [
            ("3 days", 3),
            ("two weeks", 14),
            ("a week", 7),
            ("a fortnight", 14),
            ("5 nights", 6),
            ("a month", 30),
            ("10-day trip", 10),
            ("a long weekend", 4),
            ("a weekend away", 3),
        ],
    )
    def test_single_duration(self, text, days):
        mentions = find_durations(text)
        assert [m.days for m in mentions] == [days]

    def test_each_flag(self):
        mentions = find_durations("one week each")
        assert mentions[0].days == 7
        assert mentions[0].each

    def test_in_n_days_is_not_a_duration(self):
        assert find_durations("leaving in 3 days") == []

    def test_weekend_ignored_when_explicit_count_present(self):
        assert [m.days for m in find_durations("next weekend, 3 days")] == [3]

    def test_mentions_in_order(self):
        assert [m.days for m in find_durations("3 days... actually make it 5 days")] == [3, 5]


def test_inclusive_days():
    assert inclusive_days(date(2027, 5, 15), date(2027, 5, 20)) == 6


def test_format_date():
    assert format_date(date(2027, 3, 15)) == "March 15, 2027"
