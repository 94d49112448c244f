"""Shared console, workspace resolution and error reporting for CLI commands."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from branchvault.backup.engine import SnapshotEngine
from branchvault.backup.errors import BranchVaultError, ErrorKind
from branchvault.backup.git import GitRunner
from branchvault.config import ConfigStore
from branchvault.github.client import GitHubAPIError, GitHubClient

console = Console()


@dataclass
class CliState:
    workspace: Optional[Path] = None
    verbose: bool = False


def get_state(ctx: typer.Context) -> CliState:
    state = ctx.find_object(CliState)
    if state is None:
        state = CliState()
        ctx.obj = state
    return state


def resolve_workspace(path: Optional[Path]) -> Path:
    """Top-level of the repository containing ``path`` (default: cwd), else ``path`` itself."""
    candidate = (path or Path.cwd()).expanduser().resolve()
    if candidate.is_dir():
        result = GitRunner(candidate).execute(["rev-parse", "--show-toplevel"])
        if result.ok and result.stdout.strip():
            return Path(result.stdout.strip()).resolve()
    return candidate


def confirm_init(workspace: Path) -> bool:
    return typer.confirm(
        f"{workspace} is not a git repository. Initialize one here?",
        default=False,
    )


def assume_yes(workspace: Path) -> bool:
    return True


def decline(workspace: Path) -> bool:
    return False


@contextmanager
def engine_session(
    ctx: typer.Context,
    *,
    yes: bool = False,
    interactive: bool = True,
    on_scheduled_result=None,
) -> Iterator[SnapshotEngine]:
    """Engine bound to the resolved workspace; closes the API client on exit.

    Non-interactive sessions never prompt: an uninitialized workspace is
    left alone unless ``yes`` is set.
    """
    if yes:
        confirm = assume_yes
    else:
        confirm = confirm_init if interactive else decline
    state = get_state(ctx)
    store = ConfigStore()
    try:
        settings = store.load()
    except BranchVaultError as exc:
        exit_with_error(exc)
    client = GitHubClient(api_url=settings.api_url)
    try:
        yield SnapshotEngine(
            resolve_workspace(state.workspace),
            client,
            settings=settings,
            config_store=store,
            confirm_init=confirm,
            on_scheduled_result=on_scheduled_result,
        )
    finally:
        client.close()


_HINTS: dict[ErrorKind, str] = {
    ErrorKind.AUTHENTICATION: "Run 'branchvault auth login' or set GH_TOKEN.",
    ErrorKind.NOT_FOUND: "Run 'branchvault list' to see available snapshots.",
}


def exit_with_error(exc: BaseException) -> NoReturn:
    """Render ``exc`` and exit; cancellation is not an error."""
    if isinstance(exc, BranchVaultError):
        if exc.kind is ErrorKind.CANCELLED:
            console.print(f"[yellow]{escape(exc.message)}[/yellow]")
            raise typer.Exit(0)
        console.print(f"[red]Error:[/red] {escape(exc.describe())}")
        stderr = getattr(exc, "stderr", "")
        if stderr:
            console.print(f"[dim]{escape(stderr.strip())}[/dim]")
        if exc.checkout_completed:
            console.print("[yellow]The snapshot is checked out; your local changes were not reapplied.[/yellow]")
        if exc.kind is ErrorKind.CONFIGURATION and "destination" in exc.message.lower():
            console.print("[dim]Run 'branchvault config set-destination <url>' first.[/dim]")
        hint = _HINTS.get(exc.kind)
        if hint:
            console.print(f"[dim]{hint}[/dim]")
    elif isinstance(exc, GitHubAPIError):
        console.print(f"[red]GitHub API error:[/red] {escape(str(exc))}")
    else:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
    raise typer.Exit(1)


__all__ = [
    "CliState",
    "assume_yes",
    "confirm_init",
    "console",
    "decline",
    "engine_session",
    "exit_with_error",
    "get_state",
    "resolve_workspace",
]
