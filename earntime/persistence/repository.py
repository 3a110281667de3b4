"""
EarnTime Repository - Database access layer

SQLite storage for earned sessions and spend logs.
Single connection per repository instance, with context manager support.

Records are never physically deleted here: archival and soft delete only
flip is_archived. Every sqlite3 failure surfaces as PersistenceError.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from pathlib import Path

from earntime.exceptions import PersistenceError, RecordNotFoundError
from earntime.models import EarnedSession, SpendLog

logger = logging.getLogger(__name__)

# Default database location
DEFAULT_DB_PATH = Path.home() / ".config" / "earntime" / "earntime.db"

_SESSION_COLUMNS = (
    "id, category, custom_label, start_date, end_date, "
    "duration_seconds, earned_minutes, notes, is_archived"
)
_LOG_COLUMNS = "id, created_at, minutes_used, source, notes, is_archived"


class EarnTimeRepository:
    """
    Repository for all EarnTime persistence operations.

    Usage:
        with EarnTimeRepository(path) as repo:
            repo.add_session(session)
            sessions = repo.list_sessions()
    """

    def __init__(self, db_path: Path | str | None = None):
        """
        Initialize repository.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
                If None, uses default location.
        """
        if db_path == ":memory:":
            self.db_path: Path | str = ":memory:"
        else:
            self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._conn: sqlite3.Connection | None = None
        self._initialized = False

    def __enter__(self) -> EarnTimeRepository:
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def conn(self) -> sqlite3.Connection:
        """Get database connection, initializing if needed."""
        if self._conn is None:
            self.initialize()
        return self._conn  # type: ignore

    def initialize(self) -> None:
        """
        Initialize database connection and schema.

        Creates the database file and parent directories if needed.
        """
        if self._initialized and self._conn:
            return

        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self._conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                isolation_level=None,  # Autocommit mode, we use explicit transactions
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")

            self._apply_schema()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(
                f"Could not open the EarnTime database: {e}",
                {"db_path": str(self.db_path)},
            ) from e

        self._initialized = True
        logger.info(f"Initialized EarnTime database at {self.db_path}")

    def _apply_schema(self) -> None:
        """Apply the database schema from schema.sql."""
        schema_path = Path(__file__).parent / "schema.sql"
        schema_sql = schema_path.read_text()
        self._conn.executescript(schema_sql)  # type: ignore
        logger.debug("Database schema applied")

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None
            self._initialized = False

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Cursor, None, None]:
        """
        Execute operations in a transaction.

        Usage:
            with repo.transaction() as cursor:
                cursor.execute(...)
        """
        cursor = self.conn.cursor()
        try:
            cursor.execute("BEGIN")
            yield cursor
            cursor.execute("COMMIT")
        except Exception:
            cursor.execute("ROLLBACK")
            raise
        finally:
            cursor.close()

    # =========================================================================
    # EARNED SESSIONS
    # =========================================================================

    def add_session(self, session: EarnedSession) -> EarnedSession:
        """Insert a new earned session."""
        try:
            with self.transaction() as cursor:
                cursor.execute(
                    f"INSERT INTO earned_sessions ({_SESSION_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    session.to_row(),
                )
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Could not save session: {e}",
                {"session_id": session.id},
            ) from e
        logger.info(f"Saved session {session.id[:8]} (+{session.earned_minutes} min)")
        return session

    def get_session(self, session_id: str) -> EarnedSession | None:
        """Get session by ID, archived or not."""
        rows = self._query(
            f"SELECT {_SESSION_COLUMNS} FROM earned_sessions WHERE id = ?",
            (session_id,),
        )
        return EarnedSession.from_row(rows[0]) if rows else None

    def list_sessions(self, include_archived: bool = False) -> list[EarnedSession]:
        """List sessions, newest end_date first."""
        if include_archived:
            rows = self._query(f"SELECT {_SESSION_COLUMNS} FROM earned_sessions ORDER BY end_date DESC")
        else:
            rows = self._query(
                f"SELECT {_SESSION_COLUMNS} FROM earned_sessions "
                "WHERE is_archived = 0 ORDER BY end_date DESC"
            )
        return [EarnedSession.from_row(row) for row in rows]

    def count_sessions(self, include_archived: bool = False) -> int:
        if include_archived:
            rows = self._query("SELECT COUNT(*) FROM earned_sessions")
        else:
            rows = self._query("SELECT COUNT(*) FROM earned_sessions WHERE is_archived = 0")
        return rows[0][0]

    # =========================================================================
    # SPEND LOGS
    # =========================================================================

    def add_log(self, log: SpendLog) -> SpendLog:
        """Insert a new spend log."""
        try:
            with self.transaction() as cursor:
                cursor.execute(
                    f"INSERT INTO spend_logs ({_LOG_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                    log.to_row(),
                )
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Could not save screen-time log: {e}",
                {"log_id": log.id},
            ) from e
        logger.info(f"Saved spend log {log.id[:8]} (-{log.minutes_used} min)")
        return log

    def get_log(self, log_id: str) -> SpendLog | None:
        """Get spend log by ID, archived or not."""
        rows = self._query(f"SELECT {_LOG_COLUMNS} FROM spend_logs WHERE id = ?", (log_id,))
        return SpendLog.from_row(rows[0]) if rows else None

    def list_logs(self, include_archived: bool = False) -> list[SpendLog]:
        """List spend logs, newest created_at first."""
        if include_archived:
            rows = self._query(f"SELECT {_LOG_COLUMNS} FROM spend_logs ORDER BY created_at DESC")
        else:
            rows = self._query(
                f"SELECT {_LOG_COLUMNS} FROM spend_logs WHERE is_archived = 0 ORDER BY created_at DESC"
            )
        return [SpendLog.from_row(row) for row in rows]

    def count_logs(self, include_archived: bool = False) -> int:
        if include_archived:
            rows = self._query("SELECT COUNT(*) FROM spend_logs")
        else:
            rows = self._query("SELECT COUNT(*) FROM spend_logs WHERE is_archived = 0")
        return rows[0][0]

    # =========================================================================
    # ARCHIVE FLAG
    # =========================================================================

    def set_archived(
        self,
        session_ids: Iterable[str] = (),
        log_ids: Iterable[str] = (),
        archived: bool = True,
    ) -> int:
        """
        Flip is_archived on sessions and logs in a single transaction.

        Either every listed record is updated or none is: an unknown id
        rolls the whole batch back.

        Returns:
            Number of records updated

        Raises:
            RecordNotFoundError: If any id does not exist
            PersistenceError: If the write fails
        """
        flag = 1 if archived else 0
        session_ids = list(session_ids)
        log_ids = list(log_ids)
        updated = 0
        try:
            with self.transaction() as cursor:
                for session_id in session_ids:
                    cursor.execute(
                        "UPDATE earned_sessions SET is_archived = ? WHERE id = ?",
                        (flag, session_id),
                    )
                    if cursor.rowcount != 1:
                        raise RecordNotFoundError(
                            f"Session {session_id} not found",
                            {"session_id": session_id},
                        )
                    updated += 1
                for log_id in log_ids:
                    cursor.execute(
                        "UPDATE spend_logs SET is_archived = ? WHERE id = ?",
                        (flag, log_id),
                    )
                    if cursor.rowcount != 1:
                        raise RecordNotFoundError(
                            f"Spend log {log_id} not found",
                            {"log_id": log_id},
                        )
                    updated += 1
        except sqlite3.Error as e:
            raise PersistenceError(
                f"Could not update archive flags: {e}",
                {"sessions": len(session_ids), "logs": len(log_ids)},
            ) from e
        logger.debug(f"Set is_archived={archived} on {updated} records")
        return updated

    def _query(self, sql: str, params: tuple = ()) -> list[tuple]:
        try:
            cursor = self.conn.cursor()
            try:
                cursor.execute(sql, params)
                return cursor.fetchall()
            finally:
                cursor.close()
        except sqlite3.Error as e:
            raise PersistenceError(f"Could not read records: {e}") from e
