"""Orphaned task cleanup over a YAML schedule store.

The store is a YAML document with a top-level ``tasks`` list. Each entry
looks like::

    - id: 7f3c...
      name: Nightly invoices
      enabled: true
      frequency: Daily          # or Once, Weekly, ...
      next_run_time: 2024-02-01T02:00:00
      last_run_time: 2024-01-31T02:00:04
      csv_file_path: /data/invoices.csv

A task is orphaned when its CSV input no longer exists, or when it is a
disabled one-time task that has already run. Orphans are dropped and the
store is written back in place.
"""

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import aiofiles
import aiofiles.os
import yaml

from pacekeeper.domain.interfaces.cleanup import OrphanedTaskCleanup
from pacekeeper.domain.interfaces.clock import Clock
from pacekeeper.domain.models.outcomes import StepFailed, StepOutcome, StepSucceeded

logger = logging.getLogger(__name__)

ONE_TIME_FREQUENCY = "once"


class ScheduleStoreCleanup(OrphanedTaskCleanup):
    """Removes schedule entries that can never run again."""

    def __init__(self, store_path: str, clock: Clock):
        self.store_path = Path(store_path)
        self.clock = clock
        logger.debug(f"ScheduleStoreCleanup initialized for {self.store_path}")

    async def run_orphaned_task_cleanup(self) -> StepOutcome:
        logger.info("Cleaning up schedule-related data")
        if not await aiofiles.os.path.isfile(self.store_path):
            logger.debug(f"No schedule store at {self.store_path}, nothing to clean")
            return StepSucceeded(detail="no schedule store")

        try:
            async with aiofiles.open(self.store_path, mode="r", encoding="utf-8") as f:
                document = yaml.safe_load(await f.read()) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to read schedule store {self.store_path}: {e}")
            return StepFailed(reason=f"cannot read schedule store: {e}")

        tasks = document.get("tasks") if isinstance(document, dict) else None
        if tasks is None:
            tasks = []
        if not isinstance(tasks, list):
            return StepFailed(reason="schedule store 'tasks' is not a list")

        kept: List[Any] = []
        removed: List[str] = []
        for task in tasks:
            if not isinstance(task, dict):
                logger.warning(f"Dropping malformed schedule entry: {task!r}")
                removed.append(repr(task))
                continue
            reason = await self._orphan_reason(task)
            if reason:
                label = task.get("name") or task.get("id") or "<unnamed>"
                logger.info(f"Removing orphaned task '{label}': {reason}")
                removed.append(str(label))
            else:
                kept.append(task)

        if not removed:
            logger.info("Schedule data cleanup completed, no orphaned tasks")
            return StepSucceeded(detail="no orphaned tasks")

        document["tasks"] = kept
        try:
            await self._write(document)
        except OSError as e:
            logger.error(f"Failed to write schedule store {self.store_path}: {e}")
            return StepFailed(reason=f"cannot write schedule store: {e}")

        logger.info(f"Schedule data cleanup completed, removed {len(removed)} task(s)")
        return StepSucceeded(detail=f"removed {len(removed)} orphaned task(s)")

    async def _orphan_reason(self, task: Dict[str, Any]) -> str:
        """Why ``task`` is orphaned, or an empty string if it is not."""
        csv_path = task.get("csv_file_path")
        if csv_path and not await aiofiles.os.path.exists(csv_path):
            return f"CSV file {csv_path} no longer exists"

        frequency = str(task.get("frequency", "")).strip().lower()
        enabled = task.get("enabled", True)
        if frequency == ONE_TIME_FREQUENCY and enabled is False and self._has_run(task):
            return "one-time task already ran and is disabled"
        return ""

    def _has_run(self, task: Dict[str, Any]) -> bool:
        if task.get("last_run_time"):
            return True
        next_run = task.get("next_run_time")
        if isinstance(next_run, str):
            try:
                next_run = datetime.fromisoformat(next_run)
            except ValueError:
                return False
        if not isinstance(next_run, datetime):
            return False
        if next_run.tzinfo is not None:
            # Clock time is naive local time
            next_run = next_run.astimezone().replace(tzinfo=None)
        return next_run < self.clock.now()

    async def _write(self, document: Dict[str, Any]) -> None:
        content = yaml.safe_dump(document, sort_keys=False, default_flow_style=False)
        fd, tmp_path = tempfile.mkstemp(dir=self.store_path.parent, prefix=".schedule-", suffix=".yaml")
        os.close(fd)
        try:
            async with aiofiles.open(tmp_path, mode="w", encoding="utf-8") as f:
                await f.write(content)
            await aiofiles.os.replace(tmp_path, self.store_path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
