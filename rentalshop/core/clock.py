"""Time source and business-calendar helpers.

Everything that needs "now" takes a Clock so tests can pin time. Calendar-day
questions (same-day return, today's orders, month buckets) are answered in the
configured business timezone, while stored timestamps stay in UTC.
"""
from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, Tuple

import pytz

from ..config import settings


class Clock:
    """Wall clock returning timezone-aware UTC datetimes"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    def __init__(self, current: datetime):
        self.current = to_utc(current)

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


system_clock = Clock()


def get_clock() -> Clock:
    return system_clock


def business_tz():
    return pytz.timezone(settings.BUSINESS_TIMEZONE)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _fromisoformat(value: str) -> datetime:
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix allowed, naive means UTC)"""
    return to_utc(_fromisoformat(value))


def parse_business_timestamp(value: str) -> datetime:
    """Like parse_timestamp, but a naive value is wall time in the business timezone"""
    parsed = _fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = business_tz().localize(parsed)
    return to_utc(parsed)


def business_date(value: datetime) -> date:
    return to_utc(value).astimezone(business_tz()).date()


def is_same_business_day(first: Optional[datetime], second: Optional[datetime]) -> bool:
    if first is None or second is None:
        return False
    return business_date(first) == business_date(second)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """UTC [start, end] covering one business day"""
    tz = business_tz()
    start = tz.localize(datetime.combine(day, time.min))
    end = tz.localize(datetime.combine(day, time.max))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """UTC [start, end] covering one business month"""
    first = date(year, month, 1)
    if month == 12:
        next_first = date(year + 1, 1, 1)
    else:
        next_first = date(year, month + 1, 1)
    start, _ = day_bounds(first)
    _, end = day_bounds(next_first - timedelta(days=1))
    return start, end
