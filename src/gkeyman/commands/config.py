"""Configuration management commands for gkeyman."""

from typing import Any, Dict

import typer
import yaml
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from ..errors import ConfigurationError
from ..utils.config import DEFAULT_BATCH_CONFIG, Config

app = typer.Typer(help="Manage gkeyman batch settings stored in ~/.gkeyman/config.yaml.")
console = Console()


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", help="Output format: table or yaml"),
) -> None:
    """Show the effective batch settings.

    Values set in the configuration file are marked; everything else is a default.
    """
    config = Config()
    batch_config = config.get_batch_config()
    user_config = config.get("batch", {}) or {}

    if format == "yaml":
        yaml_output = yaml.safe_dump(
            {"batch": batch_config, "logging": config.get_logging_config()},
            default_flow_style=False,
            sort_keys=False,
        )
        console.print(Syntax(yaml_output, "yaml", theme="monokai", line_numbers=True))
        return
    if format != "table":
        console.print(f"[red]Error: Unknown format '{format}'. Use table or yaml.[/red]")
        raise typer.Exit(1)

    _display_batch_table(batch_config, user_config)
    console.print(f"\n[dim]Configuration file: {config.get_config_file_path()}[/dim]")


@app.command("set")
def set_config(
    key_value: str = typer.Argument(
        ..., help="Batch setting as key=value (e.g., max_parallel_jobs=10)"
    ),
) -> None:
    """Set a batch setting using key=value format.

    Examples:
    - gkeyman config set max_parallel_jobs=10
    - gkeyman config set quota_policy=clamp
    - gkeyman config set proceed_without_quota=false
    """
    if "=" not in key_value:
        console.print(
            "[red]Error: Invalid format. Use 'key=value' (e.g., max_parallel_jobs=10)[/red]"
        )
        raise typer.Exit(1)

    key, value = key_value.split("=", 1)
    key = key.strip()
    value = value.strip()
    if key.startswith("batch."):
        key = key[len("batch."):]

    if not key:
        console.print("[red]Error: A setting name is required[/red]")
        raise typer.Exit(1)

    config = Config()
    try:
        stored = config.set_batch_value(key, value)
    except ConfigurationError as e:
        console.print(f"[red]Error setting configuration: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ Configuration '{key}' set to '{stored}'[/green]")


@app.command("reset")
def reset_config(
    force: bool = typer.Option(
        False, "--force", "-f", help="Skip confirmation prompts and proceed automatically"
    ),
) -> None:
    """Remove all batch settings from the configuration file so the defaults apply."""
    if not force and not typer.confirm("Reset all batch settings to their defaults?"):
        console.print("[yellow]Reset cancelled.[/yellow]")
        raise typer.Exit(0)

    config = Config()
    config.reset_batch_config()
    console.print("[green]✓ Batch settings reset to defaults[/green]")


@app.command("path")
def show_config_path():
    """Show the path to the configuration file."""
    config_path = Config().get_config_file_path()
    console.print(f"[green]Configuration file:[/green] {config_path}")
    if config_path.exists():
        console.print("[green]File exists:[/green] Yes")
    else:
        console.print("[yellow]File exists:[/yellow] No")


def _display_batch_table(batch_config: Dict[str, Any], user_config: Dict[str, Any]) -> None:
    console.print("\n[bold blue]Batch Configuration[/bold blue]")
    table = Table()
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Source", style="dim")

    for key in DEFAULT_BATCH_CONFIG:
        value = batch_config.get(key)
        display = "ask" if key == "proceed_without_quota" and value is None else str(value)
        source = "config file" if key in user_config else "default"
        table.add_row(key, display, source)

    console.print(table)
