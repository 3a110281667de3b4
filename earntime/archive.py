"""
EarnTime - Archival

Hides records older than a week from the balance and the charts by
setting is_archived. Selection is a pure function; the Archiver applies
a selection to the store all at once or not at all, and refuses to run
twice at the same time.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from earntime.clock import Clock, SystemClock
from earntime.exceptions import PersistenceError
from earntime.ledger import ARCHIVE_AFTER_DAYS, archive_cutoff
from earntime.logging import LedgerLogEntry, ledger_logger, now_iso
from earntime.models import EarnedSession, SpendLog
from earntime.persistence import EarnTimeRepository

logger = logging.getLogger(__name__)


@dataclass
class ArchiveSelection:
    """Records an archival run will mark, and the cutoff that picked them."""

    cutoff: datetime
    sessions: list[EarnedSession] = field(default_factory=list)
    logs: list[SpendLog] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.sessions and not self.logs

    @property
    def count(self) -> int:
        return len(self.sessions) + len(self.logs)


def select_for_archive(
    sessions: Iterable[EarnedSession],
    logs: Iterable[SpendLog],
    reference_date: datetime | None = None,
    days: int = ARCHIVE_AFTER_DAYS,
) -> ArchiveSelection:
    """
    Pick every unarchived record that ended before the cutoff.

    Already-archived records are skipped, so running the same selection
    again after applying it selects nothing.
    """
    cutoff = archive_cutoff(reference_date, days=days)
    return ArchiveSelection(
        cutoff=cutoff,
        sessions=[s for s in sessions if not s.is_archived and s.end_date < cutoff],
        logs=[log for log in logs if not log.is_archived and log.created_at < cutoff],
    )


def mark_archived(selection: ArchiveSelection) -> None:
    """Set is_archived on every selected snapshot."""
    for session in selection.sessions:
        session.is_archived = True
    for log in selection.logs:
        log.is_archived = True


def unmark_archived(selection: ArchiveSelection) -> None:
    """Undo mark_archived() after a failed write."""
    for session in selection.sessions:
        session.is_archived = False
    for log in selection.logs:
        log.is_archived = False


class Archiver:
    """
    Runs archival against the record store.

    Only one run may be in flight; a second call made while one is
    running returns None without doing anything.
    """

    def __init__(
        self,
        repository: EarnTimeRepository,
        clock: Clock | None = None,
        days: int = ARCHIVE_AFTER_DAYS,
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.days = days
        self._lock = threading.Lock()

    @property
    def is_archiving(self) -> bool:
        return self._lock.locked()

    def run(self, reference_date: datetime | None = None) -> ArchiveSelection | None:
        """
        Archive everything older than the cutoff.

        Args:
            reference_date: Instant the cutoff is measured from (default: now)

        Returns:
            The applied selection, or None if another run was in progress

        Raises:
            PersistenceError: If the store could not be read or written.
                No record is left archived in that case.
        """
        if not self._lock.acquire(blocking=False):
            logger.warning("Archival already in progress, ignoring request")
            return None
        try:
            reference = reference_date or self.clock.now()
            selection = select_for_archive(
                self.repository.list_sessions(),
                self.repository.list_logs(),
                reference,
                days=self.days,
            )
            if selection.is_empty:
                logger.info("Nothing to archive")
                return selection

            mark_archived(selection)
            try:
                self.repository.set_archived(
                    session_ids=[s.id for s in selection.sessions],
                    log_ids=[log.id for log in selection.logs],
                )
            except PersistenceError as e:
                unmark_archived(selection)
                self._log_run(selection, error=e)
                raise PersistenceError(
                    f"Archive failed, nothing was archived: {e.message}",
                    {"sessions": len(selection.sessions), "logs": len(selection.logs)},
                ) from e

            self._log_run(selection)
            logger.info(
                f"Archived {len(selection.sessions)} sessions and "
                f"{len(selection.logs)} spend logs older than {selection.cutoff:%Y-%m-%d %H:%M}"
            )
            return selection
        finally:
            self._lock.release()

    def _log_run(self, selection: ArchiveSelection, error: Exception | None = None) -> None:
        entry = LedgerLogEntry(
            timestamp=now_iso(),
            operation="archive",
            success=error is None,
            record_ids=[s.id for s in selection.sessions] + [log.id for log in selection.logs],
            sessions_affected=len(selection.sessions),
            logs_affected=len(selection.logs),
            cutoff=selection.cutoff.isoformat(),
        )
        if error is not None:
            entry.error = str(error)
            entry.error_type = type(error).__name__
            ledger_logger.error(entry.to_json())
        else:
            ledger_logger.info(entry.to_json())
