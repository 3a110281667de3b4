"""
EarnTime - Daily Stats and Export

Turns the ledger's per-day maps into a sorted, sparse daily series for a
time range, and renders that series as CSV or JSON export documents.
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path

from earntime.exceptions import SerializationError
from earntime.ledger import earned_minutes_by_day, spent_minutes_by_day, start_of_day
from earntime.models import EarnedSession, SpendLog

CSV_HEADER = "date,earned_minutes,spent_minutes"


class RangeOption(str, Enum):
    """Time window applied before aggregation."""

    LAST_7_DAYS = "last7Days"
    LAST_30_DAYS = "last30Days"
    ALL_TIME = "allTime"

    @property
    def label(self) -> str:
        return _RANGE_LABELS[self]

    @property
    def slug(self) -> str:
        """Label as used in export filenames, e.g. "7-days"."""
        return self.label.lower().replace(" ", "-")

    def cutoff_date(self, reference: datetime | None = None) -> datetime | None:
        """
        Earliest instant kept by this range, or None for all time.

        The window counts whole calendar days including today, so
        LAST_7_DAYS starts at midnight six days before the reference.
        """
        if self == RangeOption.ALL_TIME:
            return None
        today = start_of_day(reference if reference is not None else datetime.now())
        days_back = 6 if self == RangeOption.LAST_7_DAYS else 29
        return today - timedelta(days=days_back)

    @classmethod
    def parse(cls, value: str) -> RangeOption:
        """Accept a value, a slug ("7-days") or a short form ("7d", "30d", "all")."""
        aliases = {
            "7d": cls.LAST_7_DAYS,
            "30d": cls.LAST_30_DAYS,
            "all": cls.ALL_TIME,
        }
        lowered = value.strip().lower()
        if lowered in aliases:
            return aliases[lowered]
        for option in cls:
            if lowered in (option.value.lower(), option.slug):
                return option
        raise ValueError(f"Unknown range: {value!r}")


_RANGE_LABELS = {
    RangeOption.LAST_7_DAYS: "7 Days",
    RangeOption.LAST_30_DAYS: "30 Days",
    RangeOption.ALL_TIME: "All Time",
}


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"

    @property
    def file_extension(self) -> str:
        return self.value

    @property
    def content_type(self) -> str:
        if self == ExportFormat.CSV:
            return "text/csv"
        return "application/json"


@dataclass(frozen=True)
class DailyStat:
    """Minutes earned and spent on one calendar day."""

    day: date
    earned_minutes: int
    spent_minutes: int

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "earnedMinutes": self.earned_minutes,
            "spentMinutes": self.spent_minutes,
        }


@dataclass(frozen=True)
class ExportDocument:
    """A finished export payload with its suggested filename."""

    data: bytes
    filename: str
    content_type: str

    def write_to(self, directory: Path | str) -> Path:
        """Write the payload into directory and return the file path."""
        target_dir = Path(directory).expanduser()
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / self.filename
        path.write_bytes(self.data)
        return path


def filter_sessions(
    sessions: Iterable[EarnedSession],
    range_option: RangeOption,
    reference: datetime | None = None,
) -> list[EarnedSession]:
    cutoff = range_option.cutoff_date(reference)
    if cutoff is None:
        return list(sessions)
    return [s for s in sessions if s.end_date >= cutoff]


def filter_logs(
    logs: Iterable[SpendLog],
    range_option: RangeOption,
    reference: datetime | None = None,
) -> list[SpendLog]:
    cutoff = range_option.cutoff_date(reference)
    if cutoff is None:
        return list(logs)
    return [log for log in logs if log.created_at >= cutoff]


def daily_series(
    sessions: Iterable[EarnedSession],
    logs: Iterable[SpendLog],
    range_option: RangeOption = RangeOption.LAST_7_DAYS,
    reference: datetime | None = None,
) -> list[DailyStat]:
    """
    One row per day with any activity in the range, oldest first.

    Days with neither earning nor spending are left out rather than
    filled with zeros.
    """
    earned = earned_minutes_by_day(filter_sessions(sessions, range_option, reference))
    spent = spent_minutes_by_day(filter_logs(logs, range_option, reference))
    return [
        DailyStat(day=day, earned_minutes=earned.get(day, 0), spent_minutes=spent.get(day, 0))
        for day in sorted(set(earned) | set(spent))
    ]


def to_csv(series: Sequence[DailyStat]) -> str:
    rows = [CSV_HEADER]
    for stat in series:
        rows.append(f"{stat.day.isoformat()},{stat.earned_minutes},{stat.spent_minutes}")
    return "\n".join(rows)


def parse_csv(text: str) -> list[DailyStat]:
    """
    Read back a CSV export.

    Raises:
        ValueError: If the header or a row is malformed
    """
    reader = csv.reader(io.StringIO(text))
    header = next(reader, None)
    if header is None or ",".join(header) != CSV_HEADER:
        raise ValueError(f"Expected header {CSV_HEADER!r}, got {header!r}")
    series = []
    for row in reader:
        if not row:
            continue
        if len(row) != 3:
            raise ValueError(f"Expected 3 columns, got {row!r}")
        series.append(
            DailyStat(
                day=date.fromisoformat(row[0]),
                earned_minutes=int(row[1]),
                spent_minutes=int(row[2]),
            )
        )
    return series


def to_json(series: Sequence[DailyStat]) -> str:
    return json.dumps([stat.to_dict() for stat in series], indent=2)


def export_filename(range_option: RangeOption, export_format: ExportFormat) -> str:
    return f"earn-time-stats-{range_option.slug}.{export_format.file_extension}"


def make_export_document(
    series: Sequence[DailyStat],
    range_option: RangeOption,
    export_format: ExportFormat,
) -> ExportDocument:
    """
    Encode a daily series for export.

    Raises:
        SerializationError: If the payload cannot be encoded
    """
    try:
        if export_format == ExportFormat.CSV:
            data = to_csv(series).encode("utf-8")
        else:
            data = to_json(series).encode("utf-8")
    except (TypeError, ValueError) as e:
        # UnicodeEncodeError is a ValueError
        raise SerializationError(
            f"Could not encode {export_format.value.upper()} export: {e}",
            export_format=export_format.value,
        ) from e
    return ExportDocument(
        data=data,
        filename=export_filename(range_option, export_format),
        content_type=export_format.content_type,
    )
