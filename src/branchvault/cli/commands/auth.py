"""Authentication commands for the hosting service."""

from __future__ import annotations

import os
from typing import Optional

import typer

from branchvault.backup.errors import AuthenticationError, BranchVaultError
from branchvault.cli.helpers import console, exit_with_error
from branchvault.config import ConfigStore
from branchvault.github.client import GitHubClient
from branchvault.github.credentials import TOKEN_ENV_VARS

app = typer.Typer(help="Authentication commands")


def _client() -> GitHubClient:
    try:
        settings = ConfigStore().load()
    except BranchVaultError as exc:
        exit_with_error(exc)
    return GitHubClient(api_url=settings.api_url)


@app.command()
def login(
    token: Optional[str] = typer.Option(
        None,
        "--token",
        "-t",
        help="Personal access token (prompted for when omitted)",
    ),
) -> None:
    """Store a GitHub token after checking it against the API."""
    if not token:
        token = typer.prompt("GitHub token", hide_input=True)

    with _client() as client:
        try:
            username = client.set_token(token)
        except AuthenticationError as exc:
            console.print(f"❌ Authentication failed: {exc.message}")
            raise typer.Exit(1)
        except RuntimeError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise typer.Exit(1)

    console.print(f"✅ Logged in as {username}")


@app.command()
def logout() -> None:
    """Remove the stored token."""
    with _client() as client:
        had_token = client.token_store.stored_token() is not None
        try:
            client.clear_token()
        except RuntimeError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise typer.Exit(1)

    if had_token:
        console.print("✅ Logged out.")
    else:
        console.print("ℹ️  No stored token.")
    active = [name for name in TOKEN_ENV_VARS if (os.getenv(name) or "").strip()]
    if active:
        console.print(f"[yellow]{active[0]} is still set in the environment and will be used.[/yellow]")


@app.command()
def status() -> None:
    """Show which GitHub account the active token belongs to."""
    with _client() as client:
        if not client.has_token:
            console.print("❌ Not authenticated")
            console.print("   Run 'branchvault auth login' or set GH_TOKEN.")
            raise typer.Exit(1)
        try:
            username = client.get_authenticated_user()
        except AuthenticationError as exc:
            console.print(f"❌ {exc.message}")
            raise typer.Exit(1)

    source = next((name for name in TOKEN_ENV_VARS if (os.getenv(name) or "").strip()), None)
    console.print(f"✅ Authenticated as {username}")
    console.print(f"   Token source: {source or 'stored credentials'}")
