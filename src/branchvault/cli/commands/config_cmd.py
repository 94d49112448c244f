"""``branchvault config`` commands."""

from __future__ import annotations

import typer
from rich.table import Table

from branchvault.backup.errors import BranchVaultError
from branchvault.cli.helpers import console, engine_session, exit_with_error
from branchvault.config import ConfigStore

app = typer.Typer(help="Show and change backup settings")


def _update(**changes) -> None:
    try:
        ConfigStore().update(**changes)
    except BranchVaultError as exc:
        exit_with_error(exc)


@app.command()
def show() -> None:
    """Display the current settings."""
    store = ConfigStore()
    try:
        settings = store.load()
    except BranchVaultError as exc:
        exit_with_error(exc)

    table = Table(title=f"Settings ({store.config_file})")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_row("destination_url", settings.destination_url or "[dim]not set[/dim]")
    table.add_row(
        "interval_minutes",
        str(settings.interval_minutes) if settings.interval_minutes > 0 else "0 [dim](disabled)[/dim]",
    )
    table.add_row("notifications", str(settings.notifications).lower())
    table.add_row("auto_start", str(settings.auto_start).lower())
    table.add_row("batch_size", str(settings.batch_size))
    table.add_row("exclude_paths", ", ".join(settings.exclude_paths) or "[dim]none[/dim]")
    table.add_row("api_url", settings.api_url)
    console.print(table)


@app.command("set-destination")
def set_destination(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Destination repository URL or owner/repo"),
) -> None:
    """Set the repository snapshots are pushed to."""
    with engine_session(ctx) as engine:
        try:
            normalized = engine.set_destination(url)
        except BranchVaultError as exc:
            exit_with_error(exc)
    console.print(f"[green]✓[/green] Destination set to {normalized}")


@app.command("set-interval")
def set_interval(
    ctx: typer.Context,
    minutes: int = typer.Argument(..., help="Minutes between scheduled snapshots; 0 disables"),
) -> None:
    """Set the scheduled snapshot interval."""
    with engine_session(ctx) as engine:
        try:
            engine.set_interval(minutes)
        except BranchVaultError as exc:
            exit_with_error(exc)
    if minutes > 0:
        console.print(f"[green]✓[/green] Snapshots every {minutes} minute(s)")
    else:
        console.print("[yellow]Scheduled snapshots disabled[/yellow]")


@app.command("set-notifications")
def set_notifications(enabled: bool = typer.Argument(..., help="true or false")) -> None:
    """Turn per-snapshot messages in 'watch' on or off."""
    _update(notifications=enabled)
    console.print(f"[green]✓[/green] notifications = {str(enabled).lower()}")


@app.command("set-auto-start")
def set_auto_start(enabled: bool = typer.Argument(..., help="true or false")) -> None:
    """Take a snapshot as soon as 'watch' starts."""
    _update(auto_start=enabled)
    console.print(f"[green]✓[/green] auto_start = {str(enabled).lower()}")


@app.command("add-exclude")
def add_exclude(pattern: str = typer.Argument(..., help="Glob pattern, e.g. 'vendor/*' or '*.log'")) -> None:
    """Never stage paths matching PATTERN in snapshots."""
    store = ConfigStore()
    try:
        settings = store.load()
        if pattern in settings.exclude_paths:
            console.print(f"[dim]{pattern} is already excluded[/dim]")
            return
        store.update(exclude_paths=[*settings.exclude_paths, pattern])
    except BranchVaultError as exc:
        exit_with_error(exc)
    console.print(f"[green]✓[/green] Excluding {pattern}")
