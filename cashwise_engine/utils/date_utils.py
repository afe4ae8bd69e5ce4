"""Date manipulation utilities"""

from calendar import monthrange
from datetime import date, datetime, time
from typing import Tuple
from zoneinfo import ZoneInfo

from cashwise_engine.config import settings


def days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def add_months(base: date, months: int, desired_day: int | None = None) -> date:
    """
    Shift a date by whole calendar months (negative values go back).

    The day is `desired_day` (default: the base day), clamped to the last day
    of the target month, so Jan 31 + 1 month is Feb 28/29, never March.
    """
    total_months = base.month - 1 + months
    year = base.year + total_months // 12
    month = total_months % 12 + 1
    day = desired_day if desired_day is not None else base.day
    return date(year, month, min(day, days_in_month(year, month)))


def add_years(base: date, years: int) -> date:
    """Same month/day `years` later; Feb 29 clamps to Feb 28"""
    return add_months(base, 12 * years)


def month_bounds(on_date: date) -> Tuple[date, date]:
    """First and last day of the month containing on_date"""
    first = on_date.replace(day=1)
    last = first.replace(day=days_in_month(first.year, first.month))
    return first, last


def end_of_day(on_date: date) -> datetime:
    return datetime.combine(on_date, time.max)


def parse_time_of_day(value: str | None, default: time = time(9, 0)) -> time:
    """Parse "HH:MM"; malformed parts fall back to the default hour/minute"""
    if not value:
        return default
    hour_part, _, minute_part = value.partition(":")
    try:
        hour = int(hour_part)
    except ValueError:
        hour = default.hour
    try:
        minute = int(minute_part)
    except ValueError:
        minute = default.minute
    if not 0 <= hour <= 23:
        hour = default.hour
    if not 0 <= minute <= 59:
        minute = default.minute
    return time(hour, minute)


def local_now() -> datetime:
    """Naive wall-clock time in the configured timezone"""
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()
