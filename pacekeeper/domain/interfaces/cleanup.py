"""Interfaces for the maintenance cleanup collaborators.

The maintenance runner only invokes these and classifies their outcomes;
how logs are enumerated or which scheduled tasks count as orphaned is up to
the implementation.
"""

import abc

from pacekeeper.domain.models.outcomes import StepOutcome


class LogCleanup(abc.ABC):
    """Removes expired log files."""

    @abc.abstractmethod
    async def run_log_cleanup(self, retention_days: int, max_session_files_per_day: int) -> StepOutcome:
        """Deletes logs older than ``retention_days`` and caps today's session files.

        Args:
            retention_days: Age in days after which a log file is deleted (0 disables).
            max_session_files_per_day: Session logs kept for today (0 disables).

        Returns:
            StepSucceeded, or StepFailed with a reason.
        """
        pass


class OrphanedTaskCleanup(abc.ABC):
    """Removes scheduled tasks that can no longer run."""

    @abc.abstractmethod
    async def run_orphaned_task_cleanup(self) -> StepOutcome:
        """Returns StepSucceeded, or StepFailed with a reason."""
        pass
