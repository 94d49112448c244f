"""branchvault: versioned snapshots of a git working tree on a backup remote."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from branchvault.cli.commands import register_commands
from branchvault.cli.helpers import CliState, console

__version__ = "0.1.0"

app = typer.Typer(
    name="branchvault",
    help="Versioned snapshots of a git working tree, pushed to a backup repository",
    add_completion=False,
    invoke_without_command=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"branchvault {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    workspace: Optional[Path] = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Working tree to operate on (default: current directory)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
) -> None:
    """Show usage when no subcommand is provided."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliState(workspace=workspace, verbose=verbose)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


register_commands(app)


def main():
    app()


if __name__ == "__main__":
    main()
