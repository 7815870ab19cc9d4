#!/usr/bin/env python3
"""
gkeyman - Gemini API Key Manager

A CLI tool for creating, collecting and cleaning up Gemini API keys across
many Google Cloud projects at once.
"""
from pathlib import Path
from typing import Optional

import typer

from . import __version__
from .commands import config, keys, projects
from .commands.helpers import config as batch_config
from .commands.helpers import console, create_provider, load_settings
from .utils.logging_config import LoggingConfig, LogLevel, setup_logging

app = typer.Typer(
    help=(
        "Gemini API Key Manager - Create, extract and clean up API keys "
        "across many Google Cloud projects."
    ),
    add_completion=True,
    no_args_is_help=True,
)

# Add subcommands
app.add_typer(keys.app, name="keys")
app.add_typer(projects.app, name="projects")
app.add_typer(config.app, name="config")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Also write logs to this file"
    ),
):
    """Set up logging before any command runs."""
    try:
        logging_config = LoggingConfig.from_dict(batch_config.get_logging_config())
    except ValueError as e:
        console.print(f"[red]Error: Invalid logging configuration: {e}[/red]")
        raise typer.Exit(1)

    if verbose:
        logging_config.level = LogLevel.DEBUG
    if log_file:
        logging_config.enable_file_logging = True
        logging_config.log_directory = str(log_file.expanduser().parent)
        logging_config.log_filename = log_file.name

    setup_logging(logging_config, console)


# Add version command
@app.command()
def version():
    """Show the application version and exit."""
    console.print(f"gkeyman version: {__version__}")
    raise typer.Exit()


@app.command()
def status():
    """Show the active gcloud account, current project and effective batch settings."""
    settings = load_settings()
    provider = create_provider(settings)

    console.print("[bold blue]gkeyman Status[/bold blue]\n")
    session = provider.describe_session()
    if session.account:
        console.print(f"[green]✓[/green] Active account: [bold]{session.account}[/bold]")
    else:
        console.print("[red]✗[/red] Active account: none (run 'gcloud auth login')")
    if session.project:
        console.print(f"[green]✓[/green] Current project: {session.project}")
    else:
        console.print("[yellow]⚠[/yellow] Current project: not set (the quota check needs one)")

    console.print("\n[bold blue]Batch Settings[/bold blue]")
    console.print(f"• Project prefix: {settings.project_prefix}")
    console.print(f"• Projects per batch: {settings.total_projects}")
    console.print(f"• Parallel jobs: {settings.max_parallel_jobs}")
    console.print(f"• Retry attempts: {settings.max_retry_attempts}")
    console.print(f"• Quota policy: {settings.quota_policy}")
    console.print(f"• Output directory: {Path(settings.output_dir).expanduser()}")

    console.print("\n[bold blue]Helpful Commands[/bold blue]")
    console.print("• Create keys: [cyan]gkeyman keys create[/cyan]")
    console.print("• Collect keys from existing projects: [cyan]gkeyman keys extract[/cyan]")
    console.print("• Change settings: [cyan]gkeyman config set max_parallel_jobs=10[/cyan]")

    if not session.account:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
