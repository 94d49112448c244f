"""``branchvault repo``: provision and check the destination repository."""

from __future__ import annotations

import typer

from branchvault.backup.errors import BranchVaultError
from branchvault.cli.helpers import console, engine_session, exit_with_error
from branchvault.github.client import GitHubAPIError

app = typer.Typer(help="Destination repository commands")


@app.command()
def create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the private repository to create"),
) -> None:
    """Create a private repository and make it the destination."""
    with engine_session(ctx) as engine:
        try:
            url = engine.create_destination(name)
        except (BranchVaultError, GitHubAPIError) as exc:
            exit_with_error(exc)
    console.print(f"[green]✓[/green] Created {url} and set it as the destination")


@app.command()
def check(ctx: typer.Context) -> None:
    """Check that the configured destination is reachable with the current token."""
    with engine_session(ctx) as engine:
        try:
            access = engine.check_destination()
        except BranchVaultError as exc:
            exit_with_error(exc)
    if access.ok:
        console.print(f"[green]✓[/green] {engine.destination_url}: {access.message}")
    else:
        console.print(f"[red]✗[/red] {access.message}")
        raise typer.Exit(1)
