"""
Clock abstraction used by the session services.

All expiry decisions go through an injected clock so tests can move time
forward without sleeping.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC value.

    SQLite hands back naive datetimes for DateTime(timezone=True) columns;
    everything this service writes is UTC, so naive values are UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Manually driven clock.

    Usage:
        clock = FixedClock(datetime(2025, 1, 1, tzinfo=timezone.utc))
        clock.advance(days=31)
    """

    def __init__(self, start: datetime | None = None):
        self._now = as_utc(start) if start else datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, **delta) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = as_utc(value)


system_clock = SystemClock()
