"""
Log Entry Data Structures for EarnTime.

Structured entries for timer transitions and for ledger writes
(saves, soft deletes, archival runs).
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class TimerLogEntry:
    """Log entry for an earning or spending timer phase change."""

    timestamp: str  # ISO 8601
    timer: str  # "earning" or "spending"
    event: str  # "start", "tick", "finish_early", "cancel", "reset", "commit"
    from_state: str
    to_state: str

    # Countdown
    minutes: int = 0
    remaining_seconds: int = 0
    category: str = ""

    # Emitted record (if any)
    elapsed_seconds: float | None = None
    earned_minutes: int | None = None
    record_id: str | None = None

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), default=str)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimerLogEntry":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class LedgerLogEntry:
    """Log entry for a write against the record store."""

    timestamp: str  # ISO 8601
    operation: str  # "save_session", "save_spend", "soft_delete", "archive"
    success: bool = True

    record_ids: list[str] = field(default_factory=list)
    sessions_affected: int = 0
    logs_affected: int = 0
    minutes: int = 0

    # Archival
    cutoff: str | None = None

    # Error (if any)
    error: str | None = None
    error_type: str | None = None

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), default=str)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LedgerLogEntry":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def now_iso() -> str:
    """Get current time as ISO 8601 string."""
    return datetime.now().isoformat()
