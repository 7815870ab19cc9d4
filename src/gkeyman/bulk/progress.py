"""Progress display for bulk operations.

Classes:
    ProgressReporter: Renders completed/total state for a running batch

Functions:
    render_progress: Fixed-width text rendering of a completed/total pair
"""

import time
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

BAR_WIDTH = 50


def render_progress(completed: int, total: int, width: int = BAR_WIDTH) -> str:
    """Render a bounded-width progress line such as ``[#####     ] 50% (5/10)``.

    ``completed`` is clamped to ``[0, total]``. A non-positive total renders a
    distinct ``invalid total`` marker.
    """
    if total <= 0:
        return f"[invalid total: {total}]"
    completed = max(0, min(completed, total))
    percent = completed * 100 // total
    filled = max(0, min(width, percent * width // 100))
    return f"[{'#' * filled}{' ' * (width - filled)}] {percent}% ({completed}/{total})"


class ProgressReporter:
    """Shows progress of a batch on a Rich console.

    All calls are expected from the scheduler's coordinating thread; worker
    threads never touch the display.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        description: str = "Processing",
        live: bool = True,
    ):
        """Initialize the reporter.

        Args:
            console: Rich console for output
            description: Label shown next to the bar
            live: Use an animated Rich progress bar; otherwise print plain lines
        """
        self.console = console or Console()
        self.description = description
        self.live = live
        self.progress: Optional[Progress] = None
        self.task_id: Optional[TaskID] = None
        self.start_time: Optional[float] = None
        self.last_rendered: str = ""

    def start(self, total: int) -> None:
        """Start the display for a batch of ``total`` items."""
        self.start_time = time.time()
        if not self.live or total <= 0:
            return
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=BAR_WIDTH),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("({task.completed}/{task.total})"),
            TextColumn(
                "[green]S:{task.fields[succeeded]}[/green] [red]F:{task.fields[failed]}[/red]"
            ),
            TimeElapsedColumn(),
            console=self.console,
        )
        self.progress.start()
        self.task_id = self.progress.add_task(
            self.description, total=total, succeeded=0, failed=0
        )

    def report(
        self,
        completed: int,
        total: int,
        succeeded: Optional[int] = None,
        failed: Optional[int] = None,
    ) -> str:
        """Update the display and return the rendered progress text.

        Args:
            completed: Items with a terminal outcome so far
            total: Items in the batch
            succeeded: Optional running success count
            failed: Optional running failure count
        """
        rendered = render_progress(completed, total)
        self.last_rendered = rendered

        if total <= 0:
            self.console.print(f"[yellow]{rendered}[/yellow]")
            return rendered

        clamped = max(0, min(completed, total))
        if self.progress is not None and self.task_id is not None:
            fields = {}
            if succeeded is not None:
                fields["succeeded"] = succeeded
            if failed is not None:
                fields["failed"] = failed
            self.progress.update(self.task_id, completed=clamped, **fields)
        elif not self.live:
            counts = ""
            if succeeded is not None and failed is not None:
                counts = f" (S:{succeeded} F:{failed} T:{total})"
            self.console.print(f"{self.description} {rendered}{counts}", markup=False)
        return rendered

    def finish(self) -> None:
        """Stop the live display."""
        if self.progress is not None:
            self.progress.stop()
            self.progress = None
            self.task_id = None

    def get_elapsed_time(self) -> float:
        if self.start_time:
            return time.time() - self.start_time
        return 0.0

    def __enter__(self) -> "ProgressReporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.finish()
