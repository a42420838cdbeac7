"""
Date and datetime helpers shared by the PTO services
"""
from datetime import date, datetime, timedelta, timezone
from typing import Iterator

UTC = timezone.utc

# 0 = Sunday ... 6 = Saturday, the weekday numbering used by recurring blackouts
WEEKDAY_NAMES = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)"""
    return datetime.now(UTC)


def sunday_based_weekday(d: date) -> int:
    """Weekday of d with Sunday = 0 (Python's weekday() has Monday = 0)"""
    return (d.weekday() + 1) % 7


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end inclusive"""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def format_day(d: date) -> str:
    """e.g. 'Friday, Jan 15'"""
    return d.strftime("%A, %b %d")


def format_long_date(d: date) -> str:
    """e.g. 'Jan 15, 2027'"""
    return d.strftime("%b %d, %Y")
