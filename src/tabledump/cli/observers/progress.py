"""
CLI Progress Display for tabledump

Shows the running row count of an export with rich: a bar with ETA when the
total row count is known, a spinner with the count and elapsed time when it
is not.
"""

from enum import Enum
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TaskID, TextColumn,
    TimeElapsedColumn, TimeRemainingColumn
)

from tabledump.exporters.base import NullProgress, ProgressReporter


class ProgressDisplay(Enum):
    """Progress display mode enumeration."""
    RICH = "rich"
    NONE = "none"


class RichRowProgress:
    """Progress reporter backed by a rich Progress display."""

    def __init__(self, console: Optional[Console] = None, transient: bool = False):
        self.console = console or Console(stderr=True)
        self.transient = transient
        self.rows = 0
        self._progress: Optional[Progress] = None
        self._task: Optional[TaskID] = None

    def start(self, description: str, total: Optional[int] = None) -> None:
        columns = [SpinnerColumn(), TextColumn("[progress.description]{task.description}")]
        if total is not None:
            columns += [BarColumn(), MofNCompleteColumn(), TimeElapsedColumn(), TimeRemainingColumn()]
        else:
            columns += [TextColumn("[cyan]{task.completed:,}[/cyan] rows"), TimeElapsedColumn()]

        self._progress = Progress(*columns, console=self.console, transient=self.transient)
        self._progress.start()
        self._task = self._progress.add_task(description, total=total)

    def update(self, rows: int) -> None:
        self.rows = rows
        if self._progress is not None and self._task is not None:
            self._progress.update(self._task, completed=rows)

    def finish(self, rows: int) -> None:
        self.update(rows)
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
        self.console.print(f"Total rows downloaded: {rows:,}")


def create_progress(display: ProgressDisplay = ProgressDisplay.RICH,
                    console: Optional[Console] = None) -> ProgressReporter:
    """Build a progress reporter for the requested display mode."""
    if display is ProgressDisplay.NONE:
        return NullProgress()
    return RichRowProgress(console=console)
