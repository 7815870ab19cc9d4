"""Project commands for gkeyman.

Commands:
    delete: Delete every project visible to the active account
    rebuild: Delete every project, then create new projects and keys
"""

from typing import List, Optional

import typer

from ..bulk import BatchResult, OutcomeLog, ResultAggregator, TeardownProcessor, WorkItem
from ..gcp_clients import ResourceProvider
from ..utils.config import BatchSettings
from .helpers import (
    confirm_or_exit,
    console,
    create_provider,
    discover_or_exit,
    load_settings,
    print_settings,
    report_and_exit,
    run_batch,
    show_preview,
    timestamp_suffix,
    validate_create_options,
    wait_with_status,
)
from .keys import create_projects_and_keys

app = typer.Typer(help="Delete or rebuild Google Cloud projects in bulk.")

DELETE_CONFIRMATION = "DELETE-ALL"


def delete_projects(
    provider: ResourceProvider, settings: BatchSettings, items: List[WorkItem]
) -> BatchResult:
    """Run the teardown batch and write the deletion log."""
    log_file = settings.output_path(f"project_deletion_{timestamp_suffix()}.log")
    aggregator = ResultAggregator(
        outcome_log=OutcomeLog(log_file, "Project deletion log"),
        success_status="deleted",
        failure_status="delete failed",
    )
    aggregator.reset()
    console.print(f"[dim]Deletion log: {log_file}[/dim]")

    processor = TeardownProcessor(provider, aggregator)
    return run_batch(items, processor, settings, "Deleting projects")


def _confirm_deletion(items: List[WorkItem], force: bool) -> None:
    show_preview(items)
    console.print(
        f"\n[red]All {len(items)} projects will be deleted. "
        "Deleted projects can only be restored for a limited time.[/red]"
    )
    confirm_or_exit("Delete these projects?", force, required_text=DELETE_CONFIRMATION)


@app.command("delete")
def delete_all_projects(
    parallel: Optional[int] = typer.Option(
        None, "--parallel", "-p", help="Maximum number of projects processed at once"
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Directory receiving the deletion log"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmation prompts and proceed automatically"
    ),
):
    """Delete every project visible to the active account.

    Each project is deleted with a single attempt. System projects are excluded
    by the configured resource filter.
    """
    settings = load_settings(max_parallel_jobs=parallel, output_dir=output_dir)
    try:
        provider = create_provider(settings)
        console.print("[bold red]Delete all projects[/bold red]")
        print_settings(settings, provider)

        items = discover_or_exit(provider, settings)
        if not items:
            console.print("[yellow]No projects found, nothing to delete.[/yellow]")
            return
        _confirm_deletion(items, force)

        results = delete_projects(provider, settings, items)
        report_and_exit(results, "Delete projects")
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]Unexpected error deleting projects: {str(e)}[/red]")
        raise typer.Exit(1)


@app.command("rebuild")
def rebuild_projects(
    count: Optional[int] = typer.Option(
        None, "--count", "-n", help="Number of projects to create after deletion"
    ),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Project id prefix"),
    parallel: Optional[int] = typer.Option(
        None, "--parallel", "-p", help="Maximum number of projects processed at once"
    ),
    retries: Optional[int] = typer.Option(
        None, "--retries", "-r", help="Attempts per gcloud call before giving up"
    ),
    quota_policy: Optional[str] = typer.Option(
        None, "--quota-policy", help="When the quota is too small: ask, proceed, clamp or abort"
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Directory receiving the key files and logs"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmation prompts and proceed automatically"
    ),
):
    """Delete every project, wait for the deletions to settle, then create new keys.

    Creation runs even when some deletions failed; their failures are reported
    before the create batch starts.
    """
    validate_create_options(count, prefix)
    settings = load_settings(
        total_projects=count,
        project_prefix=prefix,
        max_parallel_jobs=parallel,
        max_retry_attempts=retries,
        quota_policy=quota_policy,
        output_dir=output_dir,
    )
    try:
        provider = create_provider(settings)
        console.print("[bold red]Rebuild: delete all projects, then create new keys[/bold red]")
        print_settings(settings, provider)

        console.print("\n[blue]Step 1: Deleting existing projects...[/blue]")
        items = discover_or_exit(provider, settings)
        if items:
            _confirm_deletion(items, force)
            results = delete_projects(provider, settings, items)
            console.print(
                f"Deleted [green]{results.success_count}[/green] of {results.total} projects"
            )
            if results.degraded:
                console.print(
                    f"[yellow]{results.failure_count} projects could not be deleted; "
                    "the quota check below accounts for them.[/yellow]"
                )
            wait_with_status(
                settings.rebuild_settle_delay, "Waiting for project deletions to settle"
            )
        else:
            console.print("[yellow]No projects found, nothing to delete.[/yellow]")

        console.print("\n[blue]Step 2: Creating new projects and keys...[/blue]")
        create_projects_and_keys(provider, settings, force)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]Unexpected error rebuilding projects: {str(e)}[/red]")
        raise typer.Exit(1)
