"""
EarnTime - Credit Ledger

Pure functions over snapshots of earned sessions and spend logs.
Nothing here holds state, so every function is safe to call from any
thread.

The balance is clamped at zero for display only. Nothing stops the
recorded history from implying a negative total; callers prevent
overspending at authorization time with ensure_can_spend().
"""

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from earntime.exceptions import InsufficientCreditsError, ValidationError
from earntime.models import EarnedSession, SpendLog, TaskCategory

ARCHIVE_AFTER_DAYS = 7


def total_earned(sessions: Iterable[EarnedSession]) -> int:
    return sum(session.earned_minutes for session in sessions)


def total_spent(logs: Iterable[SpendLog]) -> int:
    return sum(log.minutes_used for log in logs)


def available_minutes(sessions: Iterable[EarnedSession], logs: Iterable[SpendLog]) -> int:
    """Minutes left to spend: earned minus spent, never below zero."""
    return max(0, total_earned(sessions) - total_spent(logs))


def start_of_day(value: datetime) -> datetime:
    """Local midnight at the start of value's calendar day."""
    return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo)


def earned_minutes_by_day(sessions: Iterable[EarnedSession]) -> dict[date, int]:
    """Sum earned minutes per calendar day of each session's end_date."""
    daily: dict[date, int] = {}
    for session in sessions:
        day = session.end_date.date()
        daily[day] = daily.get(day, 0) + session.earned_minutes
    return daily


def spent_minutes_by_day(logs: Iterable[SpendLog]) -> dict[date, int]:
    """Sum spent minutes per calendar day of each log's created_at."""
    daily: dict[date, int] = {}
    for log in logs:
        day = log.created_at.date()
        daily[day] = daily.get(day, 0) + log.minutes_used
    return daily


def archive_cutoff(
    reference_date: datetime | None = None,
    days: int = ARCHIVE_AFTER_DAYS,
) -> datetime:
    """Records that ended before this instant are old enough to archive."""
    reference = reference_date if reference_date is not None else datetime.now()
    return reference - timedelta(days=days)


def ensure_can_spend(
    sessions: Iterable[EarnedSession],
    logs: Iterable[SpendLog],
    minutes: int,
) -> int:
    """
    Check that a spend of `minutes` is allowed before starting it.

    Args:
        sessions: Non-archived earned sessions
        logs: Non-archived spend logs
        minutes: Minutes the user wants to spend

    Returns:
        The available balance

    Raises:
        ValidationError: If minutes is not positive
        InsufficientCreditsError: If the balance does not cover the spend
    """
    if minutes <= 0:
        raise ValidationError(
            "Choose how many minutes to spend first",
            {"minutes": minutes},
        )
    available = available_minutes(sessions, logs)
    if available < minutes:
        raise InsufficientCreditsError(
            "Not enough credits. Earn more credits before starting a screen-time session.",
            required=minutes,
            available=available,
        )
    return available


def best_category(sessions: Iterable[EarnedSession]) -> tuple[TaskCategory, int] | None:
    """Category with the most earned minutes, or None without sessions."""
    totals: dict[TaskCategory, int] = {}
    for session in sessions:
        totals[session.category] = totals.get(session.category, 0) + session.earned_minutes
    if not totals:
        return None
    category = max(totals, key=lambda c: totals[c])
    return category, totals[category]
