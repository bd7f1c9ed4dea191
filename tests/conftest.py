import asyncio
import os
from datetime import datetime, timedelta
from typing import List

import pytest
from typer.testing import CliRunner

from pacekeeper.domain.interfaces.clock import Clock
from pacekeeper.infrastructure.config import settings


class ManualClock(Clock):
    """Clock under test control. ``sleep`` records the request and, by default, advances time."""

    def __init__(self, start_monotonic: float = 1000.0,
                 start_now: datetime = datetime(2024, 1, 31, 8, 0, 0),
                 advance_on_sleep: bool = True):
        self._monotonic = start_monotonic
        self._now = start_now
        self.advance_on_sleep = advance_on_sleep
        self.sleeps: List[float] = []

    def monotonic(self) -> float:
        return self._monotonic

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._monotonic += seconds
        self._now += timedelta(seconds=seconds)

    def set_now(self, value: datetime) -> None:
        self._now = value

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if self.advance_on_sleep and seconds > 0:
            self.advance(seconds)
        # Let other tasks run, as a real sleep would
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> ManualClock:
    """A manual clock starting at monotonic 1000.0 and 2024-01-31 08:00."""
    return ManualClock()


@pytest.fixture
def frozen_clock() -> ManualClock:
    """A manual clock whose sleeps do not advance time."""
    return ManualClock(advance_on_sleep=False)


@pytest.fixture
def clock_factory():
    """The ManualClock class, for tests that need a custom start time."""
    return ManualClock


@pytest.fixture
def events():
    """Collects emitted domain events; pass ``events.append`` as the event sink."""
    return []


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keeps tests away from the user's ~/.pacekeeper config, .env files and PACEKEEPER_* variables."""
    for key in list(os.environ):
        if key.startswith("PACEKEEPER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PACEKEEPER_CONFIG", str(tmp_path / "config.yaml"))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(settings, "_loaded_from", None)
    monkeypatch.setattr(settings, "_config", {})
    yield
    settings.clear_test_config()
