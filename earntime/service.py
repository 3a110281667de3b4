"""
EarnTime Service

Glues the timers, the ledger and the record store together the way the
app uses them: save a finished earning session, authorize and commit a
spend, soft delete, summarize, export and archive.

Every write that fails leaves no trace: the record is not stored, any
flag flipped on a snapshot is put back, and PersistenceError carries a
message fit to show the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from earntime.archive import ArchiveSelection, Archiver
from earntime.clock import Clock, SystemClock
from earntime.exceptions import PersistenceError, RecordNotFoundError, StateTransitionError
from earntime.ledger import (
    ARCHIVE_AFTER_DAYS,
    available_minutes,
    best_category,
    ensure_can_spend,
    total_earned,
    total_spent,
)
from earntime.logging import LedgerLogEntry, ledger_logger, now_iso
from earntime.models import EarnedSession, SpendLog, TaskCategory
from earntime.persistence import EarnTimeRepository
from earntime.stats import (
    DailyStat,
    ExportDocument,
    ExportFormat,
    RangeOption,
    daily_series,
    filter_logs,
    filter_sessions,
    make_export_document,
)
from earntime.timers.earning import EarningPhase, EarningTimer
from earntime.timers.spending import SpendingPhase, SpendingTimer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Summary:
    """Totals over a range, as shown above the chart."""

    total_earned: int
    total_spent: int
    balance: int
    best_category: TaskCategory | None = None
    best_category_minutes: int = 0


class EarnTimeService:
    """
    One earning timer, one spending timer and the store behind them.

    Usage:
        with EarnTimeRepository() as repo:
            service = EarnTimeService(repo)
            service.earning.start()
            ...
            service.save_completed_session()
    """

    def __init__(
        self,
        repository: EarnTimeRepository,
        clock: Clock | None = None,
        archive_after_days: int = ARCHIVE_AFTER_DAYS,
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.earning = EarningTimer(self.clock)
        self.spending = SpendingTimer(self.clock)
        self.archiver = Archiver(repository, self.clock, days=archive_after_days)

    # =========================================================================
    # BALANCE
    # =========================================================================

    def balance(self) -> int:
        """Minutes available to spend across unarchived records."""
        return available_minutes(self.repository.list_sessions(), self.repository.list_logs())

    # =========================================================================
    # EARNING
    # =========================================================================

    def save_completed_session(self, notes: str | None = None) -> EarnedSession:
        """
        Store the earning timer's result and return the timer to idle.

        If the write fails the timer stays COMPLETED so the save can be
        retried.

        Raises:
            StateTransitionError: If the earning timer has no result
            PersistenceError: If the session could not be saved
        """
        self.earning.require_phase(EarningPhase.COMPLETED)
        result = self.earning.result
        if result is None:
            raise StateTransitionError(
                "The finished session has no result to save",
                from_state=EarningPhase.COMPLETED.name,
                to_state=EarningPhase.IDLE.name,
            )
        session = result.to_session(notes=notes)
        try:
            self.repository.add_session(session)
        except PersistenceError as e:
            self._log_write("save_session", [session.id], minutes=session.earned_minutes, error=e)
            raise PersistenceError(
                f"We could not save your session. Please try again.\n{e.message}",
                {"session_id": session.id},
            ) from e
        self._log_write("save_session", [session.id], minutes=session.earned_minutes)
        self.earning.reset()
        return session

    # =========================================================================
    # SPENDING
    # =========================================================================

    def start_spend(self, minutes: int | None = None) -> int:
        """
        Check the balance and start the spend countdown.

        Calling this while a countdown is already running does nothing.

        Returns:
            The balance at authorization time

        Raises:
            ValidationError: If minutes is not positive
            InsufficientCreditsError: If the balance does not cover the spend
        """
        if self.spending.phase != SpendingPhase.IDLE:
            return self.balance()
        requested = self.spending.minutes_to_spend if minutes is None else minutes
        available = ensure_can_spend(
            self.repository.list_sessions(),
            self.repository.list_logs(),
            requested,
        )
        self.spending.configure(requested)
        self.spending.start()
        return available

    def commit_spend(self, notes: str | None = None) -> SpendLog | None:
        """
        Store the finished spend countdown as a SpendLog.

        Returns:
            The stored log, or None if there was no finished countdown

        Raises:
            PersistenceError: If the log could not be saved
        """
        log = self.spending.commit()
        if log is None:
            return None
        log.notes = notes
        try:
            self.repository.add_log(log)
        except PersistenceError as e:
            self._log_write("save_spend", [log.id], minutes=log.minutes_used, error=e)
            raise PersistenceError(
                f"We could not save your screen-time log. Please try again.\n{e.message}",
                {"log_id": log.id},
            ) from e
        self._log_write("save_spend", [log.id], minutes=log.minutes_used)
        return log

    def record_spend(self, minutes: int, source: str = "Manual", notes: str | None = None) -> SpendLog:
        """
        Log minutes spent without running the countdown.

        Raises:
            ValidationError: If minutes is not positive
            InsufficientCreditsError: If the balance does not cover the spend
            PersistenceError: If the log could not be saved
        """
        ensure_can_spend(self.repository.list_sessions(), self.repository.list_logs(), minutes)
        log = SpendLog(created_at=self.clock.now(), minutes_used=minutes, source=source, notes=notes)
        try:
            self.repository.add_log(log)
        except PersistenceError as e:
            self._log_write("save_spend", [log.id], minutes=minutes, error=e)
            raise
        self._log_write("save_spend", [log.id], minutes=minutes)
        return log

    # =========================================================================
    # SOFT DELETE
    # =========================================================================

    def soft_delete_session(self, session_id: str) -> EarnedSession:
        """
        Hide a session from the balance and the charts.

        Raises:
            RecordNotFoundError: If the session does not exist
            PersistenceError: If the flag could not be saved
        """
        session = self.repository.get_session(session_id)
        if session is None:
            raise RecordNotFoundError(f"Session {session_id} not found", {"session_id": session_id})
        was_archived = session.is_archived
        session.is_archived = True
        try:
            self.repository.set_archived(session_ids=[session.id])
        except PersistenceError as e:
            session.is_archived = was_archived
            self._log_write("soft_delete", [session.id], error=e)
            raise PersistenceError(f"Could not delete session: {e.message}", {"session_id": session.id}) from e
        self._log_write("soft_delete", [session.id])
        return session

    def soft_delete_log(self, log_id: str) -> SpendLog:
        """
        Hide a spend log from the balance and the charts.

        Raises:
            RecordNotFoundError: If the log does not exist
            PersistenceError: If the flag could not be saved
        """
        log = self.repository.get_log(log_id)
        if log is None:
            raise RecordNotFoundError(f"Spend log {log_id} not found", {"log_id": log_id})
        was_archived = log.is_archived
        log.is_archived = True
        try:
            self.repository.set_archived(log_ids=[log.id])
        except PersistenceError as e:
            log.is_archived = was_archived
            self._log_write("soft_delete", [log.id], error=e)
            raise PersistenceError(f"Could not delete log: {e.message}", {"log_id": log.id}) from e
        self._log_write("soft_delete", [log.id])
        return log

    # =========================================================================
    # STATS, EXPORT, ARCHIVE
    # =========================================================================

    def recent_activity(self, limit: int = 10) -> tuple[list[EarnedSession], list[SpendLog]]:
        """Newest unarchived sessions and spend logs."""
        return self.repository.list_sessions()[:limit], self.repository.list_logs()[:limit]

    def daily_series(
        self,
        range_option: RangeOption = RangeOption.LAST_7_DAYS,
        reference: datetime | None = None,
    ) -> list[DailyStat]:
        return daily_series(
            self.repository.list_sessions(),
            self.repository.list_logs(),
            range_option,
            reference or self.clock.now(),
        )

    def summary(
        self,
        range_option: RangeOption = RangeOption.LAST_7_DAYS,
        reference: datetime | None = None,
    ) -> Summary:
        reference = reference or self.clock.now()
        sessions = filter_sessions(self.repository.list_sessions(), range_option, reference)
        logs = filter_logs(self.repository.list_logs(), range_option, reference)
        earned = total_earned(sessions)
        spent = total_spent(logs)
        best = best_category(sessions)
        return Summary(
            total_earned=earned,
            total_spent=spent,
            balance=max(0, earned - spent),
            best_category=best[0] if best else None,
            best_category_minutes=best[1] if best else 0,
        )

    def export(
        self,
        range_option: RangeOption = RangeOption.LAST_7_DAYS,
        export_format: ExportFormat = ExportFormat.CSV,
        reference: datetime | None = None,
    ) -> ExportDocument:
        """
        Raises:
            SerializationError: If the payload cannot be encoded
        """
        series = self.daily_series(range_option, reference)
        return make_export_document(series, range_option, export_format)

    def archive_old_records(self, reference: datetime | None = None) -> ArchiveSelection | None:
        """Archive records older than the cutoff; None if a run is already active."""
        return self.archiver.run(reference)

    def _log_write(
        self,
        operation: str,
        record_ids: list[str],
        minutes: int = 0,
        error: Exception | None = None,
    ) -> None:
        entry = LedgerLogEntry(
            timestamp=now_iso(),
            operation=operation,
            success=error is None,
            record_ids=record_ids,
            minutes=minutes,
        )
        if error is not None:
            entry.error = str(error)
            entry.error_type = type(error).__name__
            ledger_logger.error(entry.to_json())
            logger.warning(f"{operation} failed: {error}")
        else:
            ledger_logger.info(entry.to_json())
