"""Tests for calendar helpers."""

from datetime import date

from services.time_utils import (
    clamp_day, count_working_days, parse_date, seconds_to_hours, to_day,
    working_days_elapsed
)


class TestParseDate:
    """Test Jira date parsing."""

    def test_parses_full_jira_datetime(self):
        result = parse_date("2024-01-15T10:30:00.000+0000")
        assert result is not None
        assert (result.year, result.month, result.day) == (2024, 1, 15)

    def test_parses_zulu_suffix(self):
        result = parse_date("2024-01-15T10:30:00.000Z")
        assert result is not None
        assert result.hour == 10

    def test_parses_date_only(self):
        assert parse_date("2024-01-15").day == 15

    def test_returns_none_for_empty_or_garbage(self):
        assert parse_date("") is None
        assert parse_date(None) is None
        assert parse_date("not a date") is None

    def test_to_day_keeps_local_calendar_day(self):
        """Bucketing uses the timestamp's own offset."""
        assert to_day("2024-01-03T23:30:00.000-0500") == date(2024, 1, 3)


class TestSecondsToHours:

    def test_rounds_to_one_decimal(self):
        assert seconds_to_hours(5400) == 1.5
        assert seconds_to_hours(1000) == 0.3

    def test_missing_is_zero(self):
        assert seconds_to_hours(None) == 0.0
        assert seconds_to_hours(0) == 0.0


class TestCountWorkingDays:
    """Working days are Mon-Fri, both ends inclusive."""

    def test_two_week_sprint(self):
        assert count_working_days(date(2024, 1, 1), date(2024, 1, 12)) == 10

    def test_weekend_boundaries_ignored(self):
        # Sat 2024-01-06 to Sun 2024-01-14 holds one full working week
        assert count_working_days(date(2024, 1, 6), date(2024, 1, 14)) == 5

    def test_weekend_only_falls_back_to_default(self):
        assert count_working_days(date(2024, 1, 6), date(2024, 1, 7)) == 10

    def test_custom_fallback(self):
        assert count_working_days(date(2024, 1, 6), date(2024, 1, 7), default=3) == 3


class TestWorkingDaysElapsed:

    def test_start_day_is_zero(self):
        assert working_days_elapsed(date(2024, 1, 1), date(2024, 1, 1)) == 0

    def test_weekend_is_flat(self):
        start = date(2024, 1, 1)
        friday = working_days_elapsed(start, date(2024, 1, 5))
        assert friday == 4
        assert working_days_elapsed(start, date(2024, 1, 6)) == friday
        assert working_days_elapsed(start, date(2024, 1, 7)) == friday
        assert working_days_elapsed(start, date(2024, 1, 8)) == friday + 1

    def test_before_start_is_zero(self):
        assert working_days_elapsed(date(2024, 1, 3), date(2024, 1, 1)) == 0


def test_clamp_day():
    start, end = date(2024, 1, 1), date(2024, 1, 12)
    assert clamp_day(date(2024, 2, 1), start, end) == end
    assert clamp_day(date(2023, 12, 1), start, end) == start
    assert clamp_day(date(2024, 1, 5), start, end) == date(2024, 1, 5)
