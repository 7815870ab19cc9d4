"""API key commands for gkeyman.

Commands:
    create: Create new projects and issue one API key per project
    extract: Collect one API key from every existing project
    cleanup: Delete every API key of every existing project
"""

from typing import Optional

import typer

from ..bulk import (
    CreateAndProvisionProcessor,
    OutcomeLog,
    ProvisionExistingProcessor,
    ResultAggregator,
    RevokeCredentialsProcessor,
    build_work_items,
    generate_project_ids,
    generate_username,
)
from ..gcp_clients import ResourceProvider
from ..utils.config import BatchSettings
from .helpers import (
    confirm_or_exit,
    console,
    create_provider,
    discover_or_exit,
    load_settings,
    plan_quota,
    print_settings,
    report_and_exit,
    run_batch,
    show_preview,
    timestamp_suffix,
    validate_create_options,
)

app = typer.Typer(help="Create, extract and clean up Gemini API keys across Google Cloud projects.")


def joined_key_filename(username: str) -> str:
    return f"comma_separated_keys_{username}.txt"


def results_filename(username: str) -> str:
    return f"gemini_api_keys_{username}_parallel.txt"


def build_key_aggregator(settings: BatchSettings, username: str) -> ResultAggregator:
    """Aggregator writing the pure, comma separated and per-project key files."""
    return ResultAggregator(
        pure_key_file=settings.output_path(settings.pure_key_file),
        joined_key_file=settings.output_path(joined_key_filename(username)),
        results_file=settings.output_path(results_filename(username)),
    )


def key_artifacts(aggregator: ResultAggregator) -> dict:
    return {
        "Keys (one per line)": aggregator.pure_key_file,
        "Keys (comma separated)": aggregator.joined_key_file,
        "Keys by project": aggregator.results_file,
    }


def create_projects_and_keys(
    provider: ResourceProvider, settings: BatchSettings, force: bool
) -> None:
    """Quota check, confirmation and the create batch shared by ``create`` and ``rebuild``."""
    console.print("\n[blue]Checking project quota...[/blue]")
    count = plan_quota(provider, settings, settings.total_projects, interactive=not force)
    if count == 0:
        console.print("[yellow]No projects to create.[/yellow]")
        return

    username = generate_username()
    project_ids = generate_project_ids(settings.project_prefix, username, count)
    try:
        items = build_work_items(project_ids)
    except ValueError as e:
        console.print(f"[red]Error: cannot name the new projects: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"\nRun id: [bold]{username}[/bold]")
    console.print(f"Projects will be named {project_ids[0]} ... {project_ids[-1]}")
    confirm_or_exit(f"Create {count} projects and an API key in each?", force)

    aggregator = build_key_aggregator(settings, username)
    aggregator.reset()

    processor = CreateAndProvisionProcessor(
        provider,
        aggregator,
        max_attempts=settings.max_retry_attempts,
        propagation_delay=settings.propagation_delay,
    )
    results = run_batch(items, processor, settings, "Creating projects")
    report_and_exit(results, "Create keys", artifacts=key_artifacts(aggregator))


@app.command("create")
def create_keys(
    count: Optional[int] = typer.Option(
        None, "--count", "-n", help="Number of projects to create (defaults to total_projects)"
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
        None, "--output-dir", "-o", help="Directory receiving the key files"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmation prompts and proceed automatically"
    ),
):
    """Create new projects and issue one Gemini API key in each.

    Keys are written one per line to the key file, comma separated to
    comma_separated_keys_<run id>.txt and as "project: key" lines to
    gemini_api_keys_<run id>_parallel.txt.
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
        console.print("[bold blue]Create projects and API keys[/bold blue]")
        print_settings(settings, provider)
        create_projects_and_keys(provider, settings, force)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]Unexpected error creating keys: {str(e)}[/red]")
        raise typer.Exit(1)


@app.command("extract")
def extract_keys(
    parallel: Optional[int] = typer.Option(
        None, "--parallel", "-p", help="Maximum number of projects processed at once"
    ),
    retries: Optional[int] = typer.Option(
        None, "--retries", "-r", help="Attempts per gcloud call before giving up"
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Directory receiving the key files"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmation prompts and proceed automatically"
    ),
):
    """Collect one API key from every existing project.

    An existing key is reused when it can be read; otherwise a new key is created.
    """
    settings = load_settings(
        max_parallel_jobs=parallel,
        max_retry_attempts=retries,
        output_dir=output_dir,
    )
    try:
        provider = create_provider(settings)
        console.print("[bold blue]Extract API keys from existing projects[/bold blue]")
        print_settings(settings, provider)

        items = discover_or_exit(provider, settings)
        if not items:
            console.print("[yellow]No projects found.[/yellow]")
            return
        show_preview(items)
        confirm_or_exit(f"Get an API key from each of these {len(items)} projects?", force)

        username = generate_username()
        aggregator = build_key_aggregator(settings, username)
        aggregator.reset()

        processor = ProvisionExistingProcessor(
            provider, aggregator, max_attempts=settings.max_retry_attempts
        )
        results = run_batch(items, processor, settings, "Extracting keys")
        report_and_exit(results, "Extract keys", artifacts=key_artifacts(aggregator))
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]Unexpected error extracting keys: {str(e)}[/red]")
        raise typer.Exit(1)


@app.command("cleanup")
def cleanup_keys(
    parallel: Optional[int] = typer.Option(
        None, "--parallel", "-p", help="Maximum number of projects processed at once"
    ),
    retries: Optional[int] = typer.Option(
        None, "--retries", "-r", help="Attempts per gcloud call before giving up"
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Directory receiving the cleanup log"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmation prompts and proceed automatically"
    ),
):
    """Delete every API key of every existing project. Projects are kept."""
    settings = load_settings(
        max_parallel_jobs=parallel,
        max_retry_attempts=retries,
        output_dir=output_dir,
    )
    try:
        provider = create_provider(settings)
        console.print("[bold blue]Delete API keys from existing projects[/bold blue]")
        print_settings(settings, provider)

        items = discover_or_exit(provider, settings)
        if not items:
            console.print("[yellow]No projects found.[/yellow]")
            return
        show_preview(items)
        console.print("[red]Every API key in these projects will be deleted.[/red]")
        confirm_or_exit(f"Delete all API keys in {len(items)} projects?", force)

        log_file = settings.output_path(f"api_keys_cleanup_{timestamp_suffix()}.log")
        aggregator = ResultAggregator(
            outcome_log=OutcomeLog(log_file, "API key cleanup log"),
            success_status="keys deleted",
            failure_status="cleanup failed",
        )
        aggregator.reset()

        processor = RevokeCredentialsProcessor(
            provider, aggregator, max_attempts=settings.max_retry_attempts
        )
        results = run_batch(items, processor, settings, "Deleting keys")
        deleted = sum(
            outcome.count if outcome.is_success else outcome.succeeded or 0
            for outcome in results.outcomes.values()
        )
        report_and_exit(
            results,
            "Clean up keys",
            artifacts={"Cleanup log": log_file},
            note=f"{deleted} API keys deleted",
        )
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]Unexpected error cleaning up keys: {str(e)}[/red]")
        raise typer.Exit(1)
