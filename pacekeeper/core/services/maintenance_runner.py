"""Runs the enabled maintenance steps in a fixed order and aggregates outcomes.

Log retention cleanup always runs before orphaned task cleanup: the latter
writes log entries of its own, which the former must not get a chance to
delete in the same pass.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Tuple

from pacekeeper.core.services.maintenance_gate import MaintenanceGate
from pacekeeper.domain.errors import MaintenanceStepFailure
from pacekeeper.domain.events.engine_events import EventSink, MaintenanceStepFinished, log_event
from pacekeeper.domain.interfaces.cleanup import LogCleanup, OrphanedTaskCleanup
from pacekeeper.domain.interfaces.clock import Clock
from pacekeeper.domain.models.config import MaintenanceConfig
from pacekeeper.domain.models.outcomes import (
    MaintenanceRunResult, MaintenanceStatus, StepFailed, StepFailure, StepOutcome, StepSucceeded
)

logger = logging.getLogger(__name__)

LOG_CLEANUP_STEP = "log_cleanup"
ORPHANED_TASK_CLEANUP_STEP = "orphaned_task_cleanup"


class MaintenanceRunner:
    """Drives the cleanup collaborators for one configuration snapshot."""

    def __init__(
        self,
        config: MaintenanceConfig,
        log_cleanup: LogCleanup,
        orphaned_task_cleanup: OrphanedTaskCleanup,
        clock: Clock,
        event_sink: Optional[EventSink] = None,
    ):
        self.config = config
        self.gate = MaintenanceGate(config)
        self.log_cleanup = log_cleanup
        self.orphaned_task_cleanup = orphaned_task_cleanup
        self.clock = clock
        self._emit = event_sink or log_event

    def _planned_steps(self) -> List[Tuple[str, Callable[[], Awaitable[StepOutcome]]]]:
        steps = []
        if self.config.enable_log_cleanup:
            steps.append((LOG_CLEANUP_STEP, lambda: self.log_cleanup.run_log_cleanup(
                self.config.log_retention_days, self.config.max_session_files_per_day)))
        else:
            logger.debug("Log cleanup is disabled")
        if self.config.enable_orphaned_task_cleanup:
            steps.append((ORPHANED_TASK_CLEANUP_STEP, self.orphaned_task_cleanup.run_orphaned_task_cleanup))
        else:
            logger.debug("Orphaned task cleanup is disabled")
        return steps

    async def _run_step(self, step: str, invoke: Callable[[], Awaitable[StepOutcome]]) -> Optional[StepFailure]:
        logger.info(f"Running maintenance step: {step}")
        try:
            outcome = await invoke()
        except Exception as e:
            # A raising collaborator is a failed step, not a failed run
            failure = MaintenanceStepFailure(step, str(e) or type(e).__name__)
            logger.error(str(failure), exc_info=True)
            self._emit(MaintenanceStepFinished(step=step, succeeded=False, detail=failure.reason))
            return StepFailure(step=step, reason=failure.reason)

        if isinstance(outcome, StepSucceeded):
            logger.info(f"Maintenance step {step} completed{': ' + outcome.detail if outcome.detail else ''}")
            self._emit(MaintenanceStepFinished(step=step, succeeded=True, detail=outcome.detail or None))
            return None
        if isinstance(outcome, StepFailed):
            logger.warning(f"Maintenance step {step} failed: {outcome.reason}")
            self._emit(MaintenanceStepFinished(step=step, succeeded=False, detail=outcome.reason))
            return StepFailure(step=step, reason=outcome.reason)
        reason = f"returned {type(outcome).__name__}, expected a step outcome"
        logger.error(f"Maintenance step {step} {reason}")
        return StepFailure(step=step, reason=reason)

    async def run(self, now: Optional[datetime] = None, *, force: bool = False) -> MaintenanceRunResult:
        """Runs maintenance if due (or if ``force``), returning the aggregated result.

        Args:
            now: Time to evaluate due-ness against and record as the start; defaults to clock.now().
            force: Skip the due check for this run.
        """
        started_at = now or self.clock.now()

        if not force and not self.gate.is_due(started_at):
            logger.info(f"Maintenance not due ({self.gate.explain(started_at)})")
            return MaintenanceRunResult.skipped("not due")

        logger.info(f"Starting maintenance tasks ({'forced' if force else self.gate.explain(started_at)})")
        try:
            failures: List[StepFailure] = []
            steps_run: List[str] = []
            for step, invoke in self._planned_steps():
                steps_run.append(step)
                failure = await self._run_step(step, invoke)
                if failure is not None:
                    failures.append(failure)
        except Exception as e:
            logger.error(f"Error running maintenance tasks: {e}", exc_info=True)
            return MaintenanceRunResult.failed(str(e), started_at=started_at)

        if not steps_run:
            logger.info("No maintenance tasks were enabled to run")

        status = MaintenanceStatus.PARTIALLY_FAILED if failures else MaintenanceStatus.SUCCEEDED
        result = MaintenanceRunResult(
            status=status,
            reason="" if not failures else f"{len(failures)} step(s) failed",
            failures=tuple(failures),
            steps_run=tuple(steps_run),
            started_at=started_at,
            finished_at=self.clock.now(),
        )
        logger.info(result.summary())
        return result
