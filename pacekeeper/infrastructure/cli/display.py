"""Console output for the pacekeeper CLI, rendered with rich."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from pacekeeper.domain.models.config import MaintenanceConfig, ThrottleConfig
from pacekeeper.domain.models.outcomes import MaintenanceRunResult, MaintenanceStatus

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    MaintenanceStatus.SUCCEEDED: "green",
    MaintenanceStatus.SKIPPED: "blue",
    MaintenanceStatus.PARTIALLY_FAILED: "yellow",
    MaintenanceStatus.FAILED: "red",
}


class ConsoleDisplay:
    """Renders messages, configuration snapshots and maintenance results."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_maintenance_result(self, result: MaintenanceRunResult) -> None:
        """Shows the status, the steps run and any step failures of one maintenance pass."""
        style = STATUS_STYLES.get(result.status, "white")
        table = Table(show_header=False, box=ROUNDED, border_style=style, padding=(0, 1))
        table.add_column("Field", style="bold")
        table.add_column("Value")

        table.add_row("Status", f"[bold {style}]{result.status.value}[/bold {style}]")
        if result.reason:
            table.add_row("Reason", result.reason)
        if result.started_at:
            table.add_row("Started", _format_timestamp(result.started_at))
        if result.finished_at:
            table.add_row("Finished", _format_timestamp(result.finished_at))
        if result.status is not MaintenanceStatus.SKIPPED:
            table.add_row("Steps run", ", ".join(result.steps_run) or "none enabled")
        for failure in result.failures:
            table.add_row(f"[red]{failure.step}[/red]", failure.reason)

        self.console.print(Panel(table, title="[bold]Maintenance[/bold]", border_style=style, box=SIMPLE))

    def display_status(self, throttle: ThrottleConfig, maintenance: MaintenanceConfig,
                       due: bool, explanation: str) -> None:
        """Shows both configuration snapshots and the current due decision."""
        self.console.print(self._settings_table("Throttle", throttle.to_mapping()))
        self.console.print(self._settings_table("Maintenance", maintenance.to_mapping()))
        verdict = "[bold green]due[/bold green]" if due else "[bold blue]not due[/bold blue]"
        self.console.print(f"Maintenance is {verdict} ({explanation})")

    def _settings_table(self, title: str, settings: Dict[str, Any]) -> Table:
        table = Table(title=title, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for key, value in settings.items():
            table.add_row(key, "never" if value is None and key == "last_run" else str(value))
        return table


def _format_timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")
