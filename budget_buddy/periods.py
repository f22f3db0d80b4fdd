"""
Calendar Windows

Day, week and month boundaries used by both the dashboard and the savings
manager. All datetimes are naive local time; weeks start on Sunday.

Period keys are "YYYY-MM" strings identifying a calendar month.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Union


DateLike = Union[date, datetime]


def as_datetime(value: DateLike) -> datetime:
    """Promote a date to midnight of that day; datetimes pass through."""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def start_of_day(moment: DateLike) -> datetime:
    return datetime.combine(as_datetime(moment).date(), time.min)


def end_of_day(moment: DateLike) -> datetime:
    return datetime.combine(as_datetime(moment).date(), time.max)


def start_of_week(moment: DateLike) -> datetime:
    """Sunday 00:00 of the week containing `moment`."""
    moment = as_datetime(moment)
    days_since_sunday = (moment.weekday() + 1) % 7
    return start_of_day(moment - timedelta(days=days_since_sunday))


def end_of_week(moment: DateLike) -> datetime:
    """Saturday 23:59:59.999999 of the week containing `moment`."""
    return end_of_day(start_of_week(moment) + timedelta(days=6))


def days_in_month(moment: DateLike) -> int:
    return calendar.monthrange(moment.year, moment.month)[1]


def start_of_month(moment: DateLike) -> datetime:
    return datetime(moment.year, moment.month, 1)


def end_of_month(moment: DateLike) -> datetime:
    return end_of_day(date(moment.year, moment.month, days_in_month(moment)))


def shift_months(moment: DateLike, months: int) -> datetime:
    """First day of the month `months` away from `moment` (negative goes back)."""
    index = moment.year * 12 + (moment.month - 1) + months
    return datetime(index // 12, index % 12 + 1, 1)


def period_key(moment: DateLike) -> str:
    return f"{moment.year:04d}-{moment.month:02d}"


def period_name(key: str) -> str:
    """'2026-10' -> 'October 2026'."""
    return datetime.strptime(key, "%Y-%m").strftime("%B %Y")
