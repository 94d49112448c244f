"""CLI command modules for branchvault."""

from __future__ import annotations

import typer

from . import auth, config_cmd, repo, restore, snapshot, watch


def register_commands(app: typer.Typer) -> None:
    """Attach every command and sub-app to the root ``app``."""
    app.command()(snapshot.snapshot)
    app.command()(restore.restore)
    app.command("list")(restore.list_snapshots)
    app.command()(snapshot.push)
    app.command()(watch.watch)
    app.add_typer(config_cmd.app, name="config")
    app.add_typer(auth.app, name="auth")
    app.add_typer(repo.app, name="repo")


__all__ = ["register_commands"]
