"""Rich console rendering for operation progress and results.

Provides progress bars fed by OperationProgress callbacks, summary tables
and error panels.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn
from rich.style import Style
from rich.table import Table
from rich.text import Text

from actionflow.actions.models import (
    AIAction,
    BatchOperationResult,
    OperationProgress,
    ProgressStatus,
)
from actionflow.core.errors import BaseError
from actionflow.core.validation import SecurityLevel, SecurityValidationResult, ValidationResult

# Style mapping for progress states
STATUS_STYLES: dict[ProgressStatus, Style] = {
    ProgressStatus.PENDING: Style(color="yellow"),
    ProgressStatus.RUNNING: Style(color="blue", bold=True),
    ProgressStatus.COMPLETED: Style(color="green", bold=True),
    ProgressStatus.FAILED: Style(color="red", bold=True),
}

SECURITY_STYLES: dict[SecurityLevel, str] = {
    SecurityLevel.SAFE: "green",
    SecurityLevel.WARNING: "yellow",
    SecurityLevel.DANGER: "red",
}

STATUS_ICONS: dict[ProgressStatus, str] = {
    ProgressStatus.PENDING: "📋",
    ProgressStatus.RUNNING: "✏️",
    ProgressStatus.COMPLETED: "✅",
    ProgressStatus.FAILED: "❌",
}


@dataclass
class ProgressEntry:
    """A recorded progress update."""

    update: OperationProgress
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


class ProgressDisplay:
    """Console display for batch execution.

    Provides:
    - A progress bar driven by OperationProgress updates
    - A line per completed or failed action
    - Summary and error panels
    """

    def __init__(
        self,
        console: Console | None = None,
        verbose: bool = False,
    ) -> None:
        """Initialize the display.

        Args:
            console: Rich console (uses default if None)
            verbose: Whether to show every intermediate update
        """
        self.console = console or Console()
        self.verbose = verbose
        self.entries: list[ProgressEntry] = []
        self._progress: Progress | None = None
        self._task: TaskID | None = None

    def start(self, description: str = "Applying actions") -> None:
        """Start the progress bar."""
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=self.console,
            transient=True,
        )
        self._task = self._progress.add_task(description, total=100)
        self._progress.start()

    def stop(self) -> None:
        """Stop the progress bar."""
        if self._progress is not None:
            self._progress.stop()
        self._progress = None
        self._task = None

    def __enter__(self) -> ProgressDisplay:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()

    def on_progress(self, update: OperationProgress) -> None:
        """Progress callback to hand to the orchestrator."""
        self.entries.append(ProgressEntry(update))

        if self._progress is not None and self._task is not None:
            description = f"{update.action} {update.file_path or ''}".strip()
            if update.progress is not None:
                self._progress.update(self._task, completed=update.progress, description=description)
            else:
                self._progress.update(self._task, description=description)

        if update.status in (ProgressStatus.COMPLETED, ProgressStatus.FAILED) or self.verbose:
            self._print_update(update)

    def _print_update(self, update: OperationProgress) -> None:
        icon = STATUS_ICONS.get(update.status, "•")
        text = Text(f"{icon} ")
        text.append(update.action, style=STATUS_STYLES.get(update.status, Style()))
        if update.file_path:
            text.append(f" {update.file_path}")
        if self.verbose and update.progress is not None:
            text.append(f" ({update.progress}%)", style="dim")
        if update.error:
            text.append(f"\n  {update.error}", style="red")
        self.console.print(text)

    def show_batch_result(self, result: BatchOperationResult) -> None:
        """Display a results table and a summary panel.

        Args:
            result: Outcome of execute_artifact or execute_concurrent
        """
        table = Table(title="Results", show_header=True)
        table.add_column("#", style="dim", width=4)
        table.add_column("Action", width=10)
        table.add_column("File", width=40)
        table.add_column("Status", width=10)

        for index, op in enumerate(result.results, start=1):
            status = Text("ok", style="green") if op.success else Text("failed", style="red")
            table.add_row(str(index), op.action or "-", op.file_path or "-", status)
        self.console.print(table)

        skipped = result.total_operations - len(result.results)
        summary = (
            f"{result.successful_operations}/{result.total_operations} succeeded, "
            f"{result.failed_operations} failed"
        )
        if skipped:
            summary += f" ({skipped} not attempted)"

        self.console.print(
            Panel(
                summary,
                title="[bold green]✅ Done[/bold green]"
                if result.success
                else "[bold red]❌ Failed[/bold red]",
                border_style="green" if result.success else "red",
            )
        )
        for error in result.errors:
            self.console.print(f"  [red]{error}[/red]")

    def show_path_result(self, file_path: str, result: SecurityValidationResult) -> None:
        """Display a path validation result."""
        color = SECURITY_STYLES.get(result.security_level, "white")
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Key", style="bold")
        table.add_column("Value")
        table.add_row("Path", file_path)
        table.add_row("Valid", "yes" if result.valid else "no")
        table.add_row("Security", Text(result.security_level.value, style=color))
        for error in result.errors:
            table.add_row("Error", Text(error, style="red"))
        for warning in result.warnings:
            table.add_row("Warning", Text(warning, style="yellow"))
        for threat in result.threats:
            table.add_row("Threat", Text(threat, style="red"))

        self.console.print(Panel(table, title="[bold]Path Validation[/bold]", border_style=color))

    def show_check_result(
        self,
        checks: list[tuple[AIAction, ValidationResult]],
        estimate_ms: float,
    ) -> None:
        """Display per-action validation and an execution time estimate."""
        table = Table(title="Plan Check", show_header=True)
        table.add_column("#", style="dim", width=4)
        table.add_column("Action", width=10)
        table.add_column("Target", width=40)
        table.add_column("Result")

        for index, (action, result) in enumerate(checks, start=1):
            target = action.file_path or action.command or "-"
            outcome = (
                Text("ok", style="green")
                if result.valid
                else Text("; ".join(result.errors), style="red")
            )
            table.add_row(str(index), action.type or "-", target, outcome)

        self.console.print(table)
        self.console.print(f"[dim]Estimated execution time: {estimate_ms / 1000:.1f}s[/dim]")

    def show_error(self, error: BaseException) -> None:
        """Display an error panel using the user-facing message."""
        if isinstance(error, BaseError):
            message = error.user_message
            title = f"[bold red]⚠️ {error.code.value}[/bold red]"
        else:
            message = str(error)
            title = "[bold red]⚠️ Error[/bold red]"
        self.console.print(Panel(message, title=title, border_style="red"))
