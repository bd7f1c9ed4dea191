"""Main entry point for the pacekeeper application.

Sets up the Typer CLI application, performs dependency injection (Composition Root)
and defines the CLI commands.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Any, Coroutine, Dict, Optional

import typer

# --- Core Layer ---
from pacekeeper.core.services.maintenance_gate import MaintenanceGate
from pacekeeper.core.services.maintenance_service import MaintenanceService

# --- Domain Layer ---
from pacekeeper.domain.errors import ConfigValidationError
from pacekeeper.domain.models.outcomes import MaintenanceStatus

# --- Infrastructure Layer ---
from pacekeeper.infrastructure.cli.display import ConsoleDisplay
from pacekeeper.infrastructure.clock.system_clock import SystemClock
from pacekeeper.infrastructure.config.settings import YamlConfigurationProvider, get_config
from pacekeeper.infrastructure.maintenance.log_cleanup import LocalLogCleanup
from pacekeeper.infrastructure.maintenance.schedule_cleanup import ScheduleStoreCleanup
from pacekeeper.infrastructure.monitoring.logger_setup import parse_log_level, setup_logging
from pacekeeper.infrastructure.resilience.retry_coordinator import RetryCoordinator
from pacekeeper.infrastructure.resilience.throttle_gate import ThrottleGate

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE_STORE = "schedules.yaml"

# --- Dependency Injection Container (Manual) ---

def create_dependencies(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.

    Raises:
        ConfigValidationError: If the configuration snapshots do not validate.
    """
    dependencies: Dict[str, Any] = {}

    # 1. Load Configuration First
    provider = YamlConfigurationProvider(config_file)
    throttle_config = provider.load_throttle_config()
    maintenance_config = provider.load_maintenance_config()
    clock = SystemClock()

    setup_logging(
        log_level=parse_log_level(get_config('logging.level', 'INFO')),
        log_format=get_config('logging.format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        log_file=get_config('logging.file'),
        session_directory=maintenance_config.log_directory if get_config('logging.session_file', False) else None,
        started_at=clock.now(),
    )
    logger.info("Configuration and logging initialized.")

    # 2. Infrastructure Adapters
    dependencies['config_provider'] = provider
    dependencies['clock'] = clock
    dependencies['ui'] = ConsoleDisplay()
    dependencies['throttle_config'] = throttle_config
    dependencies['throttle_gate'] = ThrottleGate(throttle_config, clock)
    # Exposed for library callers that wrap remote operations; no command uses it
    dependencies['retry_coordinator'] = RetryCoordinator(dependencies['throttle_gate'])
    dependencies['log_cleanup'] = LocalLogCleanup(maintenance_config.log_directory, clock)
    store_path = get_config('schedules.store_path') or str(provider.config_file.parent / DEFAULT_SCHEDULE_STORE)
    dependencies['orphaned_task_cleanup'] = ScheduleStoreCleanup(store_path, clock)

    # 3. Core Services
    dependencies['maintenance_service'] = MaintenanceService(
        config=maintenance_config,
        config_provider=provider,
        log_cleanup=dependencies['log_cleanup'],
        orphaned_task_cleanup=dependencies['orphaned_task_cleanup'],
        clock=clock,
    )
    logger.info("All dependencies initialized successfully.")
    return dependencies


# --- Typer App Definition ---
app = typer.Typer(
    name="pacekeeper",
    help="pacekeeper: adaptive request throttling and scheduled housekeeping.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, Any], ui: ConsoleDisplay) -> Any:
    """Runs a coroutine from a sync Typer command, reporting unexpected errors."""
    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        ui.display_error(f"Command execution failed: {e}")
        raise typer.Exit(code=1)


ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", dir_okay=False, resolve_path=True,
                 help="YAML configuration file (default: $PACEKEEPER_CONFIG or ~/.pacekeeper/config.yaml)."),
]


@app.callback()
def main_callback(ctx: typer.Context, config: ConfigOption = None):
    """Load configuration and wire services before any command runs."""
    try:
        ctx.obj = create_dependencies(config)
    except ConfigValidationError as e:
        logger.error(f"Fatal Error during application initialization: {e}")
        ConsoleDisplay().display_error(f"Application Initialization Failed: {e}")
        raise typer.Exit(code=1)


# --- CLI Commands ---

@app.command()
def maintain(
    ctx: typer.Context,
    force: Annotated[bool, typer.Option("--force", "-f", help="Run even if maintenance is not due.")] = False,
):
    """Run startup maintenance if it is due."""
    deps = ctx.obj
    service: MaintenanceService = deps['maintenance_service']
    result = run_async(service.run_at_startup(force=force), deps['ui'])
    deps['ui'].display_maintenance_result(result)
    if result.status in (MaintenanceStatus.PARTIALLY_FAILED, MaintenanceStatus.FAILED):
        raise typer.Exit(code=1)


@app.command()
def status(ctx: typer.Context):
    """Show the loaded configuration and whether maintenance is due."""
    deps = ctx.obj
    service: MaintenanceService = deps['maintenance_service']
    maintenance_config = service.current_config()
    gate = MaintenanceGate(maintenance_config)
    now = deps['clock'].now()
    deps['ui'].display_status(deps['throttle_config'], maintenance_config, gate.is_due(now), gate.explain(now))


@app.command()
def watch(
    ctx: typer.Context,
    interval_minutes: Annotated[int, typer.Option("--interval-minutes", "-i", min=1,
                                                  help="Minutes between maintenance checks.")] = 60,
    max_runs: Annotated[int, typer.Option("--max-runs", min=0,
                                          help="Stop after this many checks (0 runs until interrupted).")] = 0,
):
    """Periodically re-check and run maintenance while the process stays up."""
    deps = ctx.obj
    service: MaintenanceService = deps['maintenance_service']
    ui: ConsoleDisplay = deps['ui']
    if not service.current_config().enable_periodic_maintenance:
        ui.display_warning("Periodic maintenance is disabled (maintenance.enable_periodic_maintenance).")
        raise typer.Exit(code=1)

    async def _watch() -> None:
        runs = 0
        while True:
            result = await service.run_at_startup()
            ui.display_maintenance_result(result)
            runs += 1
            if max_runs and runs >= max_runs:
                return
            await deps['clock'].sleep(interval_minutes * 60)

    ui.display_info(f"Checking maintenance every {interval_minutes} minute(s). Press Ctrl+C to stop.")
    try:
        run_async(_watch(), ui)
    except KeyboardInterrupt:
        ui.display_info("Stopped watching.")


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
