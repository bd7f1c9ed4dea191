"""Log retention cleanup against a local log directory.

Uses `aiofiles.os` so that directory scans and deletions do not block the
event loop the throttle and coordinator share.
"""

import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Tuple

import aiofiles.os

from pacekeeper.domain.interfaces.cleanup import LogCleanup
from pacekeeper.domain.interfaces.clock import Clock
from pacekeeper.domain.models.outcomes import StepFailed, StepOutcome, StepSucceeded

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".log"
SESSION_PREFIX = "session_"


class LocalLogCleanup(LogCleanup):
    """Deletes expired ``*.log`` files and caps today's session logs."""

    def __init__(self, log_directory: str, clock: Clock):
        self.log_directory = Path(log_directory)
        self.clock = clock
        logger.debug(f"LocalLogCleanup initialized for {self.log_directory}")

    async def run_log_cleanup(self, retention_days: int, max_session_files_per_day: int) -> StepOutcome:
        if not await aiofiles.os.path.isdir(self.log_directory):
            logger.info(f"Creating log directory: {self.log_directory}")
            try:
                await aiofiles.os.makedirs(self.log_directory, exist_ok=True)
            except OSError as e:
                return StepFailed(reason=f"cannot create log directory {self.log_directory}: {e}")
            return StepSucceeded(detail="log directory created")

        now = self.clock.now()
        try:
            deleted_old, failed_old = await self._delete_expired(retention_days, now)
            deleted_sessions, failed_sessions = await self._enforce_session_cap(max_session_files_per_day, now)
        except OSError as e:
            logger.error(f"Error cleaning up logs in {self.log_directory}: {e}", exc_info=True)
            return StepFailed(reason=f"cannot scan {self.log_directory}: {e}")

        failed = failed_old + failed_sessions
        if failed:
            return StepFailed(reason=f"could not delete {', '.join(failed)}")
        return StepSucceeded(
            detail=f"{deleted_old} expired log(s), {deleted_sessions} extra session log(s) removed"
        )

    async def _log_files(self) -> List[Tuple[str, datetime]]:
        """(name, modified time) of every ``*.log`` file in the directory."""
        files = []
        for name in await aiofiles.os.listdir(self.log_directory):
            if not name.lower().endswith(LOG_SUFFIX):
                continue
            path = self.log_directory / name
            if not await aiofiles.os.path.isfile(path):
                continue
            stat_result = await aiofiles.os.stat(path)
            files.append((name, datetime.fromtimestamp(stat_result.st_mtime)))
        return files

    async def _delete(self, names: List[str], kind: str) -> Tuple[int, List[str]]:
        deleted, failed = 0, []
        for name in names:
            try:
                await aiofiles.os.remove(self.log_directory / name)
                deleted += 1
                logger.info(f"Deleted {kind}: {name}")
            except FileNotFoundError:
                logger.debug(f"{name} already gone")
            except OSError as e:
                logger.warning(f"Failed to delete file {name}: {e}")
                failed.append(name)
        return deleted, failed

    async def _delete_expired(self, retention_days: int, now: datetime) -> Tuple[int, List[str]]:
        if retention_days <= 0:
            logger.debug("Log retention days is 0, skipping cleanup")
            return 0, []
        cutoff = now - timedelta(days=retention_days)
        expired = [name for name, modified in await self._log_files() if modified < cutoff]
        logger.info(f"Found {len(expired)} log file(s) older than {retention_days} day(s)")
        return await self._delete(expired, "old log file")

    async def _enforce_session_cap(self, max_per_day: int, now: datetime) -> Tuple[int, List[str]]:
        if max_per_day <= 0:
            logger.debug("Max session files limit is 0, skipping enforcement")
            return 0, []
        today = [
            (name, modified) for name, modified in await self._log_files()
            if name.lower().startswith(SESSION_PREFIX) and modified.date() == now.date()
        ]
        excess = len(today) - max_per_day
        if excess <= 0:
            logger.debug(f"{len(today)} session file(s) today, nothing to delete")
            return 0, []
        # Oldest first; name breaks ties since names embed the start time
        oldest = sorted(today, key=lambda item: (item[1], item[0]))[:excess]
        logger.info(f"Cleaning up {excess} old session file(s)")
        return await self._delete([name for name, _ in oldest], "old session file")
