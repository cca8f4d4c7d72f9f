"""Logging configuration for ctxsum."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Literal

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

if TYPE_CHECKING:
    from ctxsum.orchestrator import ProgressEvent

console = Console()
err_console = Console(stderr=True)

LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.INFO,
    "verbose": logging.DEBUG,
}


def setup_logging(
    verbosity: Literal["quiet", "normal", "verbose"] = "normal",
) -> logging.Logger:
    """Attach a Rich handler to the package logger.

    Library modules log through ``logging.getLogger(__name__)`` and never
    install handlers themselves; only the CLI calls this.
    """
    logger = logging.getLogger("ctxsum")
    logger.handlers.clear()
    logger.setLevel(LEVELS[verbosity])

    verbose = verbosity == "verbose"
    handler = RichHandler(
        console=err_console,
        show_time=verbose,
        show_path=verbose,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)

    return logger


def get_logger() -> logging.Logger:
    """Get the package logger instance."""
    return logging.getLogger("ctxsum")


def create_progress() -> Progress:
    """Create a Rich progress bar for per-file analysis."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=err_console,
        transient=True,
    )


def progress_updater(progress: Progress, task_id: TaskID) -> Callable[[ProgressEvent], None]:
    """Return an analyzer progress callback that drives one Rich task.

    The bar follows the processed count; the description shows the current
    stage and file name.
    """

    def update(event: ProgressEvent) -> None:
        label = f"{event.stage}: {event.file_name}" if event.file_name else event.stage
        progress.update(
            task_id,
            description=label,
            completed=event.processed,
            total=max(event.total, 1),
        )

    return update


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message to stderr."""
    err_console.print(f"[yellow]Warning:[/yellow] {message}")


def print_success(message: str) -> None:
    """Print a success message to stdout."""
    console.print(f"[green]{message}[/green]")


def print_info(message: str) -> None:
    """Print an info message to stdout."""
    console.print(message)
