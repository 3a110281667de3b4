"""
EarnTime Record Models

Dataclasses for the two persisted record kinds:
- EarnedSession: a completed timed activity that credits minutes
- SpendLog: minutes debited against the balance

Both map to SQLite tables via from_row()/to_row().
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from earntime.exceptions import PersistenceError


# ============================================================================
# ENUMS
# ============================================================================


class TaskCategory(str, Enum):
    """Kind of activity that earns minutes. Values are the stored raw strings."""

    FOCUS_SESSION = "focus"
    EXERCISE = "exercise"
    CHORES = "chores"
    READING = "reading"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def default_duration_minutes(self) -> int:
        return _DEFAULT_DURATIONS[self]

    @classmethod
    def from_raw(cls, value: str | None) -> TaskCategory:
        """
        Decode a stored category string.

        Unknown values written by a newer version fall back to CUSTOM
        instead of failing the whole row.
        """
        if value is None:
            return cls.CUSTOM
        try:
            return cls(value)
        except ValueError:
            return cls.CUSTOM


_DISPLAY_NAMES = {
    TaskCategory.FOCUS_SESSION: "Focus Session",
    TaskCategory.EXERCISE: "Exercise",
    TaskCategory.CHORES: "Chores",
    TaskCategory.READING: "Reading",
    TaskCategory.CUSTOM: "Custom",
}

_DEFAULT_DURATIONS = {
    TaskCategory.FOCUS_SESSION: 25,
    TaskCategory.EXERCISE: 30,
    TaskCategory.CHORES: 15,
    TaskCategory.READING: 20,
    TaskCategory.CUSTOM: 10,
}

SPEND_TIMER_SOURCE = "Manual Spend"


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def generate_id() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse ISO datetime string to datetime object."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None


def _stored_datetime(value: str | None, column: str, record_id: str) -> datetime:
    """Read a required timestamp column, refusing rows that do not parse."""
    parsed = parse_datetime(value)
    if parsed is None:
        raise PersistenceError(
            f"Corrupt {column} in record {record_id}",
            {"record_id": record_id, "column": column, "value": value},
        )
    return parsed


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (90s -> 2 min)."""
    if value < 0:
        return -round_half_up(-value)
    return int(math.floor(value + 0.5))


def earned_minutes_for(elapsed_seconds: float) -> int:
    """Minutes credited for an activity: nearest minute, never below 1."""
    return max(1, round_half_up(elapsed_seconds / 60.0))


# ============================================================================
# RECORDS
# ============================================================================


@dataclass
class EarnedSession:
    """
    A completed earning activity.

    Maps to: earned_sessions table
    """

    category: TaskCategory
    start_date: datetime
    end_date: datetime
    duration_seconds: float
    earned_minutes: int
    custom_label: str | None = None
    notes: str | None = None
    is_archived: bool = False
    id: str = field(default_factory=generate_id)

    @property
    def duration_minutes(self) -> int:
        """Display duration, truncated to whole minutes."""
        return int(self.duration_seconds // 60)

    @property
    def display_name(self) -> str:
        if self.custom_label:
            return self.custom_label
        return self.category.display_name

    @classmethod
    def from_row(cls, row: tuple) -> EarnedSession:
        """
        Create from database row.

        Raises:
            PersistenceError: If a stored date does not parse
        """
        return cls(
            id=row[0],
            category=TaskCategory.from_raw(row[1]),
            custom_label=row[2],
            start_date=_stored_datetime(row[3], "start_date", row[0]),
            end_date=_stored_datetime(row[4], "end_date", row[0]),
            duration_seconds=float(row[5] or 0.0),
            earned_minutes=int(row[6] or 0),
            notes=row[7],
            is_archived=bool(row[8]),
        )

    def to_row(self) -> tuple:
        """Convert to database row for INSERT."""
        return (
            self.id,
            self.category.value,
            self.custom_label,
            self.start_date.isoformat(),
            self.end_date.isoformat(),
            self.duration_seconds,
            self.earned_minutes,
            self.notes,
            1 if self.is_archived else 0,
        )


@dataclass
class SpendLog:
    """
    Minutes debited against the balance.

    Maps to: spend_logs table
    """

    minutes_used: int
    created_at: datetime = field(default_factory=datetime.now)
    source: str = "Manual"
    notes: str | None = None
    is_archived: bool = False
    id: str = field(default_factory=generate_id)

    @classmethod
    def from_row(cls, row: tuple) -> SpendLog:
        """Create from database row."""
        return cls(
            id=row[0],
            created_at=_stored_datetime(row[1], "created_at", row[0]),
            minutes_used=int(row[2] or 0),
            source=row[3] or "Manual",
            notes=row[4],
            is_archived=bool(row[5]),
        )

    def to_row(self) -> tuple:
        """Convert to database row for INSERT."""
        return (
            self.id,
            self.created_at.isoformat(),
            self.minutes_used,
            self.source,
            self.notes,
            1 if self.is_archived else 0,
        )
