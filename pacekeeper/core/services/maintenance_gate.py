"""Decides whether a maintenance pass is due.

The decision depends only on the configured frequency, the last recorded
run and the time passed in; nothing is read from or written to anywhere
else, so it is safe to evaluate repeatedly and from any thread.

| frequency    | due when                                                   |
|--------------|------------------------------------------------------------|
| EveryStartup | always                                                     |
| Daily        | never run, or today's date is after the last run's date    |
| Weekly       | never run, or at least 7 calendar days since the last run  |
| Monthly      | never run, or (year, month) differs from the last run's    |
"""

import logging
from datetime import datetime
from typing import Optional

from pacekeeper.domain.models.config import MaintenanceConfig, MaintenanceFrequency

logger = logging.getLogger(__name__)

WEEKLY_INTERVAL_DAYS = 7


def is_due(frequency: MaintenanceFrequency, last_run: Optional[datetime], now: datetime) -> bool:
    """Returns True when maintenance should run at ``now``."""
    if last_run is None or frequency is MaintenanceFrequency.EVERY_STARTUP:
        return True
    if frequency is MaintenanceFrequency.DAILY:
        return now.date() > last_run.date()
    if frequency is MaintenanceFrequency.WEEKLY:
        # Calendar days, not elapsed hours: Monday 23:00 -> next Monday 01:00 counts as 7
        return (now.date() - last_run.date()).days >= WEEKLY_INTERVAL_DAYS
    if frequency is MaintenanceFrequency.MONTHLY:
        return (now.year, now.month) != (last_run.year, last_run.month)
    raise ValueError(f"Unknown maintenance frequency: {frequency!r}")


class MaintenanceGate:
    """Run-due-ness for one maintenance configuration snapshot."""

    def __init__(self, config: MaintenanceConfig):
        self.config = config

    def is_due(self, now: datetime) -> bool:
        return is_due(self.config.frequency, self.config.last_run, now)

    def explain(self, now: datetime) -> str:
        """Human-readable reason for the current decision."""
        last_run = self.config.last_run
        frequency = self.config.frequency
        if last_run is None:
            return "first-time maintenance run"
        if frequency is MaintenanceFrequency.EVERY_STARTUP:
            return "maintenance runs on every startup"
        due = self.is_due(now)
        if frequency is MaintenanceFrequency.DAILY:
            return f"daily check: last run {last_run:%Y-%m-%d}, due: {due}"
        if frequency is MaintenanceFrequency.WEEKLY:
            days = (now.date() - last_run.date()).days
            return f"weekly check: {days} day(s) since last run, due: {due}"
        return f"monthly check: last run {last_run:%Y-%m}, due: {due}"
