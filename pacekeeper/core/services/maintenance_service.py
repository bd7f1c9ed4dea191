"""Application service for the startup maintenance pass.

Owns the current maintenance snapshot, runs the gate and runner, and after a
run that should advance the schedule asks the configuration provider to
persist the new last-run timestamp. The in-memory snapshot advances even when
persisting fails, so the run counts as done for the rest of this process;
the only cost of a failed write is that maintenance comes due sooner after
the next restart.
"""

import logging
from datetime import datetime
from typing import Optional

from pacekeeper.core.services.maintenance_gate import MaintenanceGate
from pacekeeper.core.services.maintenance_runner import MaintenanceRunner
from pacekeeper.domain.errors import PersistenceFailure
from pacekeeper.domain.events.engine_events import EventSink
from pacekeeper.domain.interfaces.cleanup import LogCleanup, OrphanedTaskCleanup
from pacekeeper.domain.interfaces.clock import Clock
from pacekeeper.domain.interfaces.config import ConfigurationProvider
from pacekeeper.domain.models.config import MaintenanceConfig
from pacekeeper.domain.models.outcomes import MaintenanceRunResult

logger = logging.getLogger(__name__)


class MaintenanceService:
    """Runs maintenance when due and records the run."""

    def __init__(
        self,
        config: MaintenanceConfig,
        config_provider: ConfigurationProvider,
        log_cleanup: LogCleanup,
        orphaned_task_cleanup: OrphanedTaskCleanup,
        clock: Clock,
        event_sink: Optional[EventSink] = None,
    ):
        # Only ever rebound to a new frozen snapshot, so readers on other threads see old or new, never a mix
        self._config = config
        self.config_provider = config_provider
        self.log_cleanup = log_cleanup
        self.orphaned_task_cleanup = orphaned_task_cleanup
        self.clock = clock
        self.event_sink = event_sink

    def current_config(self) -> MaintenanceConfig:
        return self._config

    def is_due(self, now: Optional[datetime] = None) -> bool:
        return MaintenanceGate(self._config).is_due(now or self.clock.now())

    async def run_at_startup(self, *, force: bool = False) -> MaintenanceRunResult:
        """Runs one maintenance pass against the current snapshot.

        Never raises for step or persistence failures; those are reported in
        the result and the log.
        """
        runner = MaintenanceRunner(
            config=self._config,
            log_cleanup=self.log_cleanup,
            orphaned_task_cleanup=self.orphaned_task_cleanup,
            clock=self.clock,
            event_sink=self.event_sink,
        )
        result = await runner.run(force=force)

        if result.should_advance_last_run and result.started_at is not None:
            self._advance_last_run(result.started_at)
        return result

    def _advance_last_run(self, started_at: datetime) -> None:
        self._config = self._config.with_last_run(started_at)
        try:
            persisted = self.config_provider.persist_last_run(started_at)
        except PersistenceFailure as e:
            logger.warning(f"Could not persist last maintenance run ({e}); maintenance may re-run sooner than scheduled.")
            return
        if persisted:
            logger.info(f"Last maintenance run updated to {started_at:%Y-%m-%d %H:%M:%S}")
        else:
            logger.warning("Failed to persist last maintenance run; maintenance may re-run sooner than scheduled.")
