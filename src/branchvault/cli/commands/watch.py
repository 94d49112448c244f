"""``branchvault watch``: scheduled snapshots in the foreground."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Optional

import typer
from rich.markup import escape

from branchvault.backup.committer import SnapshotResult
from branchvault.backup.errors import BranchVaultError, ConfigurationError
from branchvault.cli.helpers import console, engine_session, exit_with_error


def _idle() -> None:
    time.sleep(1)


def _reporter(notifications: bool):
    def report(result: Optional[SnapshotResult], error: Optional[BaseException]) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        if error is not None:
            detail = error.describe() if isinstance(error, BranchVaultError) else str(error)
            console.print(f"[red]{stamp} Scheduled snapshot failed:[/red] {escape(detail)}")
            return
        if not notifications:
            return
        if result is None:
            console.print(f"[dim]{stamp} Skipped: another operation on the destination is in progress[/dim]")
        else:
            console.print(f"[green]{stamp}[/green] Snapshot [bold]{result.branch_name}[/bold] pushed")

    return report


def watch(
    ctx: typer.Context,
    interval: Optional[int] = typer.Option(
        None, "--interval", "-i", help="Minutes between snapshots (overrides the configured interval)"
    ),
    now: Optional[bool] = typer.Option(
        None, "--now/--no-now", help="Take a snapshot immediately (default: the auto_start setting)"
    ),
) -> None:
    """Take snapshots on a timer until interrupted with Ctrl+C."""
    with engine_session(ctx, interactive=False) as engine:
        engine.scheduler.on_result = _reporter(engine.settings.notifications)
        if interval is not None:
            engine.scheduler.set_interval(interval)
        if not engine.destination_url:
            exit_with_error(ConfigurationError("No destination repository URL is configured."))
        if not engine.scheduler.enabled:
            console.print("[red]Error:[/red] Scheduled snapshots are disabled (interval is 0).")
            console.print("[dim]Run 'branchvault config set-interval N' with N > 0.[/dim]")
            raise typer.Exit(1)

        if engine.settings.auto_start if now is None else now:
            engine.scheduler.run_now()

        engine.start()
        console.print(
            f"Watching [bold]{engine.workspace}[/bold]: snapshot every "
            f"{engine.scheduler.interval_minutes} minute(s). Press Ctrl+C to stop."
        )
        try:
            while engine.scheduler.is_running:
                _idle()
        except KeyboardInterrupt:
            console.print("\n[yellow]Stopping scheduled snapshots[/yellow]")
        finally:
            engine.stop()
