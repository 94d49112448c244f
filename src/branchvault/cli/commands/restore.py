"""``branchvault restore`` and ``branchvault list`` commands."""

from __future__ import annotations

from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from branchvault.backup.errors import BranchVaultError
from branchvault.backup.naming import format_timestamp
from branchvault.cli.helpers import console, engine_session, exit_with_error
from branchvault.cli.ui import run_tracked, select_with_arrows
from branchvault.github.client import GitHubAPIError


def list_snapshots(ctx: typer.Context) -> None:
    """List snapshots at the destination, newest first."""
    with engine_session(ctx) as engine:
        try:
            snapshots = engine.list_snapshots()
        except (BranchVaultError, GitHubAPIError) as exc:
            exit_with_error(exc)

    if not snapshots:
        console.print("[yellow]No snapshots found.[/yellow]")
        return

    table = Table(title=f"Snapshots in {engine.destination_url}")
    table.add_column("Version", style="cyan")
    table.add_column("Taken", style="magenta")
    table.add_column("Branch", style="bold")
    for item in snapshots:
        table.add_row(f"v{item.version}", format_timestamp(item.timestamp), item.name)
    console.print(table)


def restore(
    ctx: typer.Context,
    branch: Optional[str] = typer.Argument(None, help="Snapshot branch to restore"),
    latest: bool = typer.Option(False, "--latest", help="Restore the most recent snapshot"),
) -> None:
    """Restore the working tree to a snapshot, shelving local changes first."""
    if branch and latest:
        console.print("[red]Error:[/red] Pass either a branch or --latest, not both.")
        raise typer.Exit(1)

    with engine_session(ctx) as engine:
        try:
            if latest:
                result = run_tracked("Restore", lambda progress: engine.restore_latest(progress=progress), console)
            else:
                if not branch:
                    branch = _pick_snapshot(engine)
                target = branch
                result = run_tracked("Restore", lambda progress: engine.restore(target, progress=progress), console)
        except (BranchVaultError, GitHubAPIError) as exc:
            exit_with_error(exc)

    console.print(f"[green]✓[/green] Restored [bold]{result.branch_name}[/bold].")
    if result.shelved and result.reconciled:
        console.print("[dim]Local changes were shelved and reapplied on top.[/dim]")
    elif not result.reconciled:
        console.print(
            f"[yellow]Warning:[/yellow] shelved changes '{result.conflict_label}' could not be "
            "reapplied cleanly and remain in the stash."
        )
        if result.conflict_message:
            console.print(f"[dim]{escape(result.conflict_message)}[/dim]")
        console.print("[dim]Resolve the conflicts, then run 'git stash list' to find the entry.[/dim]")


def _pick_snapshot(engine) -> str:
    snapshots = engine.list_snapshots()
    if not snapshots:
        console.print("[yellow]No snapshots found.[/yellow]")
        raise typer.Exit(1)
    options = {item.name: f"v{item.version}, {format_timestamp(item.timestamp)}" for item in snapshots}
    return select_with_arrows(options, "Select a snapshot to restore", console=console)
