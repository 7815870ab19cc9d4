"""Reporting components for bulk operations.

Classes:
    ReportGenerator: Generates the end-of-batch summary with Rich formatting
"""

import time
from pathlib import Path
from typing import Dict, Optional

from rich.columns import Columns
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .models import BatchResult

MAX_LISTED_FAILURES = 20


class ReportGenerator:
    """Generates summary reports for bulk operations."""

    def __init__(self, console: Console):
        """Initialize report generator.

        Args:
            console: Rich console for output
        """
        self.console = console

    def generate_summary_report(
        self,
        results: BatchResult,
        operation: str,
        artifacts: Optional[Dict[str, Path]] = None,
        note: Optional[str] = None,
    ) -> None:
        """Display the summary of a finished batch.

        Args:
            results: Result returned by the scheduler
            operation: Human-readable operation name
            artifacts: Output files to list, keyed by description
            note: Optional closing remark
        """
        summary_table = Table(show_header=False, box=None, padding=(0, 1))
        summary_table.add_column("Metric", style="bold cyan")
        summary_table.add_column("Value", style="bold")

        summary_table.add_row("Operation", operation)
        summary_table.add_row("Total", str(results.total))
        summary_table.add_row("Successful", f"[green]{results.success_count}[/green]")
        summary_table.add_row("Failed", f"[red]{results.failure_count}[/red]")
        summary_table.add_row("Success Rate", f"{results.success_rate:.2f}%")
        summary_table.add_row("Average Time", self._format_average(results))
        summary_table.add_row("Duration", self._format_duration(results.duration))

        border = "red" if results.degraded else "blue"
        self.console.print()
        self.console.print(
            Panel(summary_table, title=f"[bold]{operation} Summary[/bold]", border_style=border)
        )

        status_panels = []
        if results.success_count > 0:
            status_panels.append(
                Panel(
                    f"[bold green]{results.success_count}[/bold green]\nSuccessful",
                    style="green",
                    width=15,
                )
            )
        if results.failure_count > 0:
            status_panels.append(
                Panel(
                    f"[bold red]{results.failure_count}[/bold red]\nFailed", style="red", width=15
                )
            )
        if status_panels:
            self.console.print(Columns(status_panels, equal=True))

        if results.start_time and results.end_time:
            started = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(results.start_time))
            finished = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(results.end_time))
            self.console.print(f"[dim]Started {started}, completed {finished}[/dim]")

        if results.failure_count > 0:
            self._print_failures(results)

        if artifacts:
            self.console.print("\n[bold]Output files:[/bold]")
            for description, path in artifacts.items():
                self.console.print(f"  - {description}: {path}")

        if note:
            self.console.print(f"\n[dim]{note}[/dim]")

    def _print_failures(self, results: BatchResult) -> None:
        failures = results.failures()
        table = Table(title="Failed Items", show_lines=False)
        table.add_column("Project", style="cyan")
        table.add_column("Stage", style="yellow")
        table.add_column("Reason", style="red", overflow="fold")

        for key, failure in failures[:MAX_LISTED_FAILURES]:
            reason = failure.reason
            if failure.succeeded is not None:
                reason = f"{reason} ({failure.succeeded} succeeded)"
            table.add_row(key, failure.stage.value, reason)

        self.console.print()
        self.console.print(table)
        if len(failures) > MAX_LISTED_FAILURES:
            self.console.print(
                f"[dim]... and {len(failures) - MAX_LISTED_FAILURES} more failed items "
                "(see the log for details)[/dim]"
            )

    def _format_average(self, results: BatchResult) -> str:
        if results.success_count > 0:
            return f"{results.duration / results.success_count:.1f}s per successful item"
        return "N/A (no successful items)"

    def _format_duration(self, seconds: float) -> str:
        """Format duration in seconds to human-readable string."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            minutes = int(seconds // 60)
            remaining_seconds = int(seconds % 60)
            return f"{minutes}m {remaining_seconds}s"
        else:
            hours = int(seconds // 3600)
            remaining_minutes = int((seconds % 3600) // 60)
            return f"{hours}h {remaining_minutes}m"
