"""Shared test helpers."""

from datetime import datetime, timedelta

from earntime.models import EarnedSession, SpendLog, TaskCategory

# Saturday noon, far from midnight so day buckets are unambiguous
REFERENCE = datetime(2025, 3, 15, 12, 0, 0)


def make_session(
    end_date: datetime,
    earned_minutes: int = 25,
    category: TaskCategory = TaskCategory.FOCUS_SESSION,
    is_archived: bool = False,
    custom_label: str | None = None,
) -> EarnedSession:
    """An earned session that ran for earned_minutes and ended at end_date."""
    duration = earned_minutes * 60.0
    return EarnedSession(
        category=category,
        custom_label=custom_label,
        start_date=end_date - timedelta(seconds=duration),
        end_date=end_date,
        duration_seconds=duration,
        earned_minutes=earned_minutes,
        is_archived=is_archived,
    )


def make_log(created_at: datetime, minutes_used: int = 15, is_archived: bool = False) -> SpendLog:
    return SpendLog(created_at=created_at, minutes_used=minutes_used, is_archived=is_archived)


def run_ticks(timer, count: int, clock=None) -> None:
    """Deliver `count` ticks, advancing the clock one second per tick."""
    for _ in range(count):
        if clock is not None:
            clock.advance(seconds=1)
        timer.tick()
