"""
Clock sources.

Everything in EarnTime that needs "now" takes a Clock so timers and
archival cutoffs can be tested without waiting on the wall clock.
"""

from datetime import datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current local time."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in the local timezone (naive datetimes)."""

    def now(self) -> datetime:
        return datetime.now()


class ManualClock:
    """
    Clock that only moves when told to.

    Usage:
        clock = ManualClock(datetime(2025, 3, 1, 9, 0))
        clock.advance(seconds=90)
    """

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime(2025, 1, 1, 12, 0, 0)

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, seconds: float = 0, minutes: float = 0, days: float = 0) -> datetime:
        self._now += timedelta(seconds=seconds, minutes=minutes, days=days)
        return self._now
