"""Tests for calendar window helpers."""

from datetime import date, datetime, time

import pytest

from budget_buddy.periods import (
    days_in_month,
    end_of_day,
    end_of_month,
    end_of_week,
    period_key,
    period_name,
    shift_months,
    start_of_day,
    start_of_month,
    start_of_week,
)


class TestDayWindows:
    """Tests for day boundaries."""

    def test_start_and_end_of_day(self):
        """A day spans midnight to the last microsecond."""
        moment = datetime(2026, 10, 18, 15, 42)
        assert start_of_day(moment) == datetime(2026, 10, 18)
        assert end_of_day(moment) == datetime.combine(date(2026, 10, 18), time.max)

    def test_accepts_plain_dates(self):
        """Dates are treated as midnight of that day."""
        assert start_of_day(date(2026, 10, 18)) == datetime(2026, 10, 18)


class TestWeekWindows:
    """Weeks run Sunday to Saturday."""

    @pytest.mark.parametrize(
        "moment",
        [
            datetime(2026, 10, 18, 0, 0),   # Sunday
            datetime(2026, 10, 21, 12, 0),  # Wednesday
            datetime(2026, 10, 24, 23, 59),  # Saturday
        ],
    )
    def test_week_of(self, moment):
        """Every day of the week maps to the same Sunday."""
        assert start_of_week(moment) == datetime(2026, 10, 18)
        assert end_of_week(moment).date() == date(2026, 10, 24)

    def test_week_crossing_month(self):
        """A week can start in the previous month."""
        assert start_of_week(datetime(2026, 11, 2)) == datetime(2026, 11, 1)
        assert start_of_week(datetime(2026, 10, 1)) == datetime(2026, 9, 27)


class TestMonthWindows:
    """Tests for month boundaries and period keys."""

    @pytest.mark.parametrize(
        "moment, days",
        [
            (date(2026, 2, 1), 28),
            (date(2028, 2, 1), 29),
            (date(2026, 4, 1), 30),
            (date(2026, 10, 1), 31),
        ],
    )
    def test_days_in_month(self, moment, days):
        """Month lengths follow the calendar, leap years included."""
        assert days_in_month(moment) == days
        assert end_of_month(moment).day == days

    def test_start_of_month(self):
        """The month starts on the first at midnight."""
        assert start_of_month(datetime(2026, 10, 18, 12)) == datetime(2026, 10, 1)

    def test_shift_months(self):
        """Shifting lands on the first of the target month across years."""
        assert shift_months(datetime(2026, 1, 31), -1) == datetime(2025, 12, 1)
        assert shift_months(datetime(2026, 10, 18), 3) == datetime(2027, 1, 1)
        assert shift_months(datetime(2026, 10, 18), 0) == datetime(2026, 10, 1)

    def test_period_key_and_name(self):
        """Period keys are zero-padded YYYY-MM."""
        assert period_key(datetime(2026, 3, 9)) == "2026-03"
        assert period_name("2026-03") == "March 2026"
