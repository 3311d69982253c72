"""Calendar-day and relative-time helpers."""

from __future__ import annotations

from datetime import datetime, timedelta

_DAY = timedelta(days=1)
_MILLISECOND = timedelta(milliseconds=1)


def _now_like(moment: datetime) -> datetime:
    """Current time, aware in the local zone when ``moment`` is aware."""
    if moment.tzinfo is not None and moment.utcoffset() is not None:
        return datetime.now().astimezone()
    return datetime.now()


def date_of(moment: datetime) -> datetime:
    """Midnight of the day of ``moment``, in the same time zone."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def is_today(moment: datetime) -> bool:
    """True if ``moment`` falls on the current day."""
    return same_day(moment, _now_like(moment))


def same_day(first: datetime, second: datetime) -> bool:
    """True if both moments fall on the same calendar day."""
    return diff_days(first, second) == 0


def diff_days(first: datetime, second: datetime) -> int:
    """Whole days from the day of ``first`` to the day of ``second``."""
    return int((date_of(second) - date_of(first)) / _DAY)


def duration_later(delta: timedelta) -> datetime:
    """The current time plus ``delta``."""
    return datetime.now() + delta


def days_later(days: int) -> datetime:
    """The current time plus ``days`` days."""
    return duration_later(timedelta(days=days))


def twenty_four_hours_later() -> datetime:
    """The current time plus 24 hours."""
    return duration_later(timedelta(hours=24))


def six_hours_later() -> datetime:
    """The current time plus 6 hours."""
    return duration_later(timedelta(hours=6))


def is_expired(expiration: datetime) -> bool:
    """True if ``expiration`` lies in the past."""
    return _now_like(expiration) > expiration


def print_elapsed(before: datetime, prefix: str) -> None:
    """Print the milliseconds elapsed since ``before``."""
    elapsed = _now_like(before) - before
    print(f"{prefix} time :{int(elapsed / _MILLISECOND)}")


def is_leap_year(year: int) -> bool:
    """True for Gregorian leap years."""
    return year % 400 == 0 or (year % 4 == 0 and year % 100 != 0)