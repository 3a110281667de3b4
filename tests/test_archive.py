"""Tests for archival selection and the Archiver."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from earntime.archive import Archiver, mark_archived, select_for_archive, unmark_archived
from earntime.exceptions import PersistenceError
from earntime.ledger import available_minutes

from helpers import REFERENCE, make_log, make_session


class TestSelectForArchive:
    """Pure selection against a reference instant."""

    def test_boundary(self):
        old = make_session(REFERENCE - timedelta(days=7, seconds=1))
        exact = make_session(REFERENCE - timedelta(days=7))
        recent = make_session(REFERENCE - timedelta(days=6))
        selection = select_for_archive([old, exact, recent], [], REFERENCE)
        assert selection.sessions == [old]
        assert selection.cutoff == REFERENCE - timedelta(days=7)

    def test_logs_use_created_at(self):
        old = make_log(REFERENCE - timedelta(days=10))
        recent = make_log(REFERENCE - timedelta(hours=1))
        selection = select_for_archive([], [old, recent], REFERENCE)
        assert selection.logs == [old]

    def test_already_archived_skipped(self):
        archived = make_session(REFERENCE - timedelta(days=30), is_archived=True)
        selection = select_for_archive([archived], [], REFERENCE)
        assert selection.is_empty

    def test_applying_twice_selects_nothing(self):
        sessions = [make_session(REFERENCE - timedelta(days=9))]
        logs = [make_log(REFERENCE - timedelta(days=8))]
        first = select_for_archive(sessions, logs, REFERENCE)
        assert first.count == 2
        mark_archived(first)
        assert select_for_archive(sessions, logs, REFERENCE).is_empty

    def test_unmark_restores(self):
        session = make_session(REFERENCE - timedelta(days=9))
        selection = select_for_archive([session], [], REFERENCE)
        mark_archived(selection)
        unmark_archived(selection)
        assert session.is_archived is False

    def test_archival_can_change_balance(self):
        sessions = [
            make_session(REFERENCE - timedelta(days=10), 60),
            make_session(REFERENCE - timedelta(days=1), 20),
        ]
        assert available_minutes(sessions, []) == 80
        mark_archived(select_for_archive(sessions, [], REFERENCE))
        active = [s for s in sessions if not s.is_archived]
        assert available_minutes(active, []) == 20


class TestArchiver:
    """Archiver against a real SQLite store."""

    def test_run_archives_old_records(self, repo, clock):
        old_session = make_session(REFERENCE - timedelta(days=8))
        new_session = make_session(REFERENCE - timedelta(days=2))
        old_log = make_log(REFERENCE - timedelta(days=14))
        repo.add_session(old_session)
        repo.add_session(new_session)
        repo.add_log(old_log)

        selection = Archiver(repo, clock).run()

        assert selection.count == 2
        assert [s.id for s in repo.list_sessions()] == [new_session.id]
        assert repo.list_logs() == []
        assert repo.get_session(old_session.id).is_archived is True
        assert repo.get_log(old_log.id).is_archived is True

    def test_run_is_idempotent(self, repo, clock):
        repo.add_session(make_session(REFERENCE - timedelta(days=8)))
        archiver = Archiver(repo, clock)
        assert archiver.run().count == 1
        second = archiver.run()
        assert second.is_empty
        assert repo.count_sessions(include_archived=True) == 1

    def test_explicit_reference_date(self, repo, clock):
        repo.add_session(make_session(REFERENCE - timedelta(days=2)))
        selection = Archiver(repo, clock).run(reference_date=REFERENCE + timedelta(days=6))
        assert selection.count == 1

    def test_failed_write_archives_nothing(self, repo, clock):
        session = make_session(REFERENCE - timedelta(days=8))
        log = make_log(REFERENCE - timedelta(days=9))
        repo.add_session(session)
        repo.add_log(log)
        archiver = Archiver(repo, clock)

        with patch.object(repo, "set_archived", side_effect=PersistenceError("disk full")):
            with pytest.raises(PersistenceError) as exc_info:
                archiver.run()

        assert "nothing was archived" in exc_info.value.message
        assert repo.get_session(session.id).is_archived is False
        assert repo.get_log(log.id).is_archived is False
        assert not archiver.is_archiving

    def test_concurrent_run_is_rejected(self, repo, clock):
        repo.add_session(make_session(REFERENCE - timedelta(days=8)))
        archiver = Archiver(repo, clock)

        archiver._lock.acquire()
        try:
            assert archiver.is_archiving
            assert archiver.run() is None
        finally:
            archiver._lock.release()

        assert repo.count_sessions() == 1
        assert archiver.run().count == 1

    def test_custom_days(self, repo, clock):
        repo.add_session(make_session(REFERENCE - timedelta(days=4)))
        assert Archiver(repo, clock, days=3).run().count == 1
