import asyncio
import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from pacekeeper.domain.models.outcomes import StepFailed, StepSucceeded
from pacekeeper.infrastructure.maintenance.log_cleanup import LocalLogCleanup

NOW = datetime(2024, 1, 31, 12, 0, 0)


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    path = tmp_path / "Logs"
    path.mkdir()
    return path


@pytest.fixture
def noon_clock(clock_factory):
    return clock_factory(start_now=NOW)


def touch(directory: Path, name: str, modified: datetime) -> Path:
    path = directory / name
    path.write_text("log line\n")
    stamp = modified.timestamp()
    os.utime(path, (stamp, stamp))
    return path


def test_missing_directory_is_created(tmp_path, noon_clock):
    target = tmp_path / "does" / "not" / "exist"
    cleanup = LocalLogCleanup(str(target), noon_clock)

    outcome = asyncio.run(cleanup.run_log_cleanup(30, 10))

    assert isinstance(outcome, StepSucceeded)
    assert target.is_dir()


def test_deletes_logs_older_than_retention(log_dir, noon_clock):
    old = touch(log_dir, "app_20231201.log", NOW - timedelta(days=45))
    recent = touch(log_dir, "app_20240120.log", NOW - timedelta(days=11))
    not_a_log = touch(log_dir, "notes.txt", NOW - timedelta(days=90))
    cleanup = LocalLogCleanup(str(log_dir), noon_clock)

    outcome = asyncio.run(cleanup.run_log_cleanup(30, 10))

    assert isinstance(outcome, StepSucceeded)
    assert not old.exists()
    assert recent.exists()
    assert not_a_log.exists()


def test_zero_retention_keeps_old_logs(log_dir, noon_clock):
    old = touch(log_dir, "app.log", NOW - timedelta(days=400))
    cleanup = LocalLogCleanup(str(log_dir), noon_clock)

    asyncio.run(cleanup.run_log_cleanup(0, 10))

    assert old.exists()


def test_caps_todays_session_files_keeping_newest(log_dir, noon_clock):
    sessions = [
        touch(log_dir, f"session_20240131_0{hour}0000.log", NOW.replace(hour=hour))
        for hour in range(1, 6)
    ]
    legacy_case = touch(log_dir, "Session_20240131_000500.log", NOW.replace(hour=0, minute=5))
    yesterday = touch(log_dir, "session_20240130_230000.log", NOW - timedelta(hours=13))
    cleanup = LocalLogCleanup(str(log_dir), noon_clock)

    outcome = asyncio.run(cleanup.run_log_cleanup(30, 3))

    assert isinstance(outcome, StepSucceeded)
    assert not legacy_case.exists()
    assert [p.exists() for p in sessions] == [False, False, True, True, True]
    assert yesterday.exists()


def test_zero_session_cap_keeps_everything(log_dir, noon_clock):
    sessions = [touch(log_dir, f"session_{i}.log", NOW.replace(hour=i)) for i in range(1, 4)]
    cleanup = LocalLogCleanup(str(log_dir), noon_clock)

    asyncio.run(cleanup.run_log_cleanup(30, 0))

    assert all(p.exists() for p in sessions)


def test_undeletable_file_is_reported(log_dir, noon_clock, mocker):
    touch(log_dir, "old.log", NOW - timedelta(days=60))
    mocker.patch(
        "pacekeeper.infrastructure.maintenance.log_cleanup.aiofiles.os.remove",
        side_effect=PermissionError("in use"),
    )
    cleanup = LocalLogCleanup(str(log_dir), noon_clock)

    outcome = asyncio.run(cleanup.run_log_cleanup(30, 10))

    assert isinstance(outcome, StepFailed)
    assert "old.log" in outcome.reason
