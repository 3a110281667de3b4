"""Shared test fixtures for EarnTime."""

import pytest

from earntime.clock import ManualClock
from earntime.logging import LogConfig, reset_loggers, set_config
from earntime.persistence import EarnTimeRepository
from earntime.service import EarnTimeService

from helpers import REFERENCE


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path):
    """Write JSONL logs under the test's tmp dir instead of ~/.earntime."""
    set_config(LogConfig(log_dir=tmp_path / "logs"))
    reset_loggers()
    yield tmp_path / "logs"
    reset_loggers()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(REFERENCE)


@pytest.fixture
def repo(tmp_path):
    repository = EarnTimeRepository(tmp_path / "earntime.db")
    repository.initialize()
    yield repository
    repository.close()


@pytest.fixture
def service(repo, clock) -> EarnTimeService:
    return EarnTimeService(repo, clock)
