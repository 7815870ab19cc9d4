"""Shared helpers for gkeyman commands."""

import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console

from ..bulk import (
    BatchResult,
    ProgressReporter,
    QuotaPlanner,
    QuotaPolicy,
    QuotaPrompt,
    ReportGenerator,
    TaskScheduler,
    WorkItem,
    WorkItemProcessor,
    discover_work_items,
)
from ..errors import ConfigurationError, PreconditionFailure, QuotaPlanningAborted
from ..gcp_clients import GcloudProvider, ResourceProvider
from ..utils.config import BatchSettings, Config
from ..utils.validators import validate_positive_int, validate_project_prefix

console = Console()
config = Config()

PREVIEW_COUNT = 5


def timestamp_suffix() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def validate_create_options(count: Optional[int], prefix: Optional[str]) -> None:
    """Reject bad --count and --prefix values before touching the provider."""
    if count is not None and not validate_positive_int(count, "--count"):
        raise typer.Exit(1)
    if prefix is not None and not validate_project_prefix(prefix):
        raise typer.Exit(1)


def load_settings(**overrides) -> BatchSettings:
    """Snapshot the configured batch settings with per-command overrides applied."""
    try:
        return config.get_batch_settings().with_overrides(**overrides)
    except ConfigurationError as e:
        console.print(f"[red]Error: Invalid configuration: {e}[/red]")
        raise typer.Exit(1)


def create_provider(settings: BatchSettings) -> ResourceProvider:
    return GcloudProvider(gcloud_path=settings.gcloud_path, service_name=settings.service_name)


def print_settings(settings: BatchSettings, provider: Optional[ResourceProvider] = None) -> None:
    if provider is not None:
        session = provider.describe_session()
        account = session.account or "unknown (gcloud auth list failed?)"
        console.print(f"[dim]Account: {account}[/dim]")
        console.print(f"[dim]Project: {session.project or 'not set'}[/dim]")
    console.print(f"[dim]Parallel jobs: {settings.max_parallel_jobs}[/dim]")
    console.print(f"[dim]Retry attempts: {settings.max_retry_attempts}[/dim]")


class TerminalQuotaPrompt(QuotaPrompt):
    """Asks the operator how to resolve quota problems."""

    def choose_resolution(self, requested: int, limit: int) -> QuotaPolicy:
        console.print(
            f"[yellow]Requested {requested} projects, "
            f"but the project quota is about {limit}.[/yellow]"
        )
        console.print(f"  1. Try to create all {requested} projects (some will likely fail)")
        console.print(f"  2. Create {limit} projects (fits the quota)")
        console.print("  3. Cancel")
        choice = typer.prompt("Choose [1/2/3]", default="3")
        return {"1": QuotaPolicy.PROCEED, "2": QuotaPolicy.CLAMP}.get(
            choice.strip(), QuotaPolicy.ABORT
        )

    def confirm_without_quota(self) -> bool:
        return typer.confirm("Could not check the project quota. Continue anyway?", default=False)


def plan_quota(
    provider: ResourceProvider, settings: BatchSettings, requested: int, interactive: bool
) -> int:
    """Run the quota check and return the number of projects to create.

    Exits the command when the plan is aborted or cannot be decided.
    """
    planner = QuotaPlanner(
        provider,
        policy=QuotaPolicy(settings.quota_policy),
        proceed_without_quota=settings.proceed_without_quota,
        prompt=TerminalQuotaPrompt() if interactive else None,
    )
    try:
        plan = planner.plan(requested)
    except QuotaPlanningAborted as e:
        console.print(f"[yellow]Operation {e}.[/yellow]")
        raise typer.Exit(0)
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if plan.clamped:
        console.print(f"[blue]Batch reduced to {plan.resolved} projects to fit the quota.[/blue]")
    return plan.resolved


def discover_or_exit(provider: ResourceProvider, settings: BatchSettings) -> List[WorkItem]:
    """List existing projects; a failure to list ends the command."""
    try:
        with console.status("[blue]Fetching project list...[/blue]"):
            return discover_work_items(provider, settings.resource_filter)
    except PreconditionFailure as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def show_preview(items: List[WorkItem]) -> None:
    console.print(f"Found [bold]{len(items)}[/bold] projects. First {PREVIEW_COUNT}:")
    for item in items[:PREVIEW_COUNT]:
        console.print(f"  - {item.key}")
    if len(items) > PREVIEW_COUNT:
        console.print(f"  - ... and {len(items) - PREVIEW_COUNT} more")


def confirm_or_exit(message: str, force: bool, required_text: Optional[str] = None) -> None:
    """Ask for confirmation unless ``force`` is set; a refusal cancels the command."""
    if force:
        return
    if required_text is not None:
        answer = typer.prompt(f"{message} (type '{required_text}' to confirm)", default="")
        confirmed = answer.strip() == required_text
    else:
        confirmed = typer.confirm(message, default=False)
    if not confirmed:
        console.print("[yellow]Operation cancelled.[/yellow]")
        raise typer.Exit(0)


def run_batch(
    items: List[WorkItem],
    processor: WorkItemProcessor,
    settings: BatchSettings,
    description: str,
) -> BatchResult:
    """Schedule ``processor`` over ``items`` with a live progress bar."""
    progress = ProgressReporter(console=console, description=description)
    scheduler = TaskScheduler(
        concurrency_limit=settings.max_parallel_jobs,
        progress=progress,
        launch_delay=settings.launch_delay,
    )
    return scheduler.run(items, processor)


def report_and_exit(
    results: BatchResult,
    operation: str,
    artifacts: Optional[Dict[str, Path]] = None,
    note: Optional[str] = None,
) -> None:
    """Print the summary and end the command with the batch's exit status."""
    ReportGenerator(console).generate_summary_report(results, operation, artifacts, note)

    if not results.degraded:
        console.print(f"\n[green]{operation} completed successfully.[/green]")
        return

    if results.success_count > 0:
        console.print(f"\n[yellow]{operation} completed with some failures.[/yellow]")
        console.print(
            f"[green]{results.success_count} succeeded[/green], "
            f"[red]{results.failure_count} failed[/red]"
        )
    else:
        console.print(f"\n[red]{operation} failed for every project.[/red]")
    raise typer.Exit(1)


def wait_with_status(seconds: float, message: str) -> None:
    if seconds <= 0:
        return
    with console.status(f"[blue]{message} ({seconds:.0f}s)...[/blue]"):
        time.sleep(seconds)
