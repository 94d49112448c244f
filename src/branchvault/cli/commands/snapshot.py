"""``branchvault snapshot`` and ``branchvault push`` commands."""

from __future__ import annotations

from typing import Optional

import typer

from branchvault.backup.errors import BranchVaultError
from branchvault.backup.remote import BindOutcome
from branchvault.cli.helpers import console, engine_session, exit_with_error
from branchvault.cli.ui import run_tracked


def snapshot(
    ctx: typer.Context,
    note: Optional[str] = typer.Option(None, "--note", "-n", help="Note appended to the commit message"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Initialize a git repository without asking"),
) -> None:
    """Capture the working tree as a new versioned snapshot branch."""
    with engine_session(ctx, yes=yes) as engine:
        try:
            result = run_tracked(
                "Snapshot",
                lambda progress: engine.trigger_snapshot(note, progress=progress),
                console,
            )
        except BranchVaultError as exc:
            exit_with_error(exc)

    if result.initialized_repository:
        console.print(f"[cyan]Initialized a git repository in {engine.workspace}[/cyan]")
    if result.bind_outcome is BindOutcome.REBOUND:
        console.print("[yellow]Backup remote was pointing elsewhere and has been rebound.[/yellow]")
    for path in result.excised_paths:
        console.print(f"[yellow]Removed from index:[/yellow] {path}")
    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")
    console.print(
        f"[green]✓[/green] Snapshot [bold]{result.branch_name}[/bold] "
        f"(v{result.version}, {result.staged_count} path(s)) pushed."
    )


def push(ctx: typer.Context) -> None:
    """Push the current branch to the destination repository as-is."""
    with engine_session(ctx) as engine:
        try:
            result = engine.push_current_branch()
        except BranchVaultError as exc:
            exit_with_error(exc)

    console.print(f"[green]✓[/green] Pushed [bold]{result.branch_name}[/bold].")
    if result.pull_request_url:
        console.print(f"Open a pull request: {result.pull_request_url}")
