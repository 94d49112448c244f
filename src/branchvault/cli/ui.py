"""Reusable UI helpers for branchvault CLI interactions."""

from __future__ import annotations

from typing import Callable, Dict, Optional, TypeVar

import readchar
import typer
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from branchvault.backup.errors import BranchVaultError, Phase

T = TypeVar("T")

PHASE_LABELS: dict[Phase, str] = {
    Phase.BINDING: "Bind backup remote",
    Phase.ALLOCATING: "Allocate version",
    Phase.BRANCHING: "Create snapshot branch",
    Phase.CLEANING: "Clean index",
    Phase.STAGING: "Stage changes",
    Phase.COMMITTING: "Commit",
    Phase.PUSHING: "Push",
    Phase.FETCHING: "Fetch",
    Phase.SHELVING: "Shelve local changes",
    Phase.CHECKING_OUT: "Check out snapshot",
    Phase.RECONCILING: "Reapply local changes",
}


class StepTracker:
    """Track and render engine phases with Rich trees."""

    def __init__(self, title: str):
        self.title = title
        self.steps = []  # list of dicts: {key, label, status, detail}
        self._refresh_cb = None  # callable to trigger UI refresh

    def attach_refresh(self, cb):
        self._refresh_cb = cb

    def add(self, key: str, label: str):
        if key not in [s["key"] for s in self.steps]:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})
            self._maybe_refresh()

    def start(self, key: str, detail: str = ""):
        self._update(key, status="running", detail=detail)

    def complete(self, key: str, detail: str = ""):
        self._update(key, status="done", detail=detail)

    def error(self, key: str, detail: str = ""):
        self._update(key, status="error", detail=detail)

    def track(self, phase: Phase, detail: str = ""):
        """Progress callback: finish whatever is running, then start ``phase``."""
        for step in self.steps:
            if step["status"] == "running":
                step["status"] = "done"
        self.add(phase.value, PHASE_LABELS.get(phase, phase.value))
        self.start(phase.value, detail)

    def finish(self, failed_phase: Optional[Phase] = None, detail: str = ""):
        for step in self.steps:
            if step["status"] == "running":
                if failed_phase is not None and step["key"] == failed_phase.value:
                    step["status"] = "error"
                    step["detail"] = detail or step["detail"]
                else:
                    step["status"] = "error" if failed_phase is not None else "done"
        self._maybe_refresh()

    def _update(self, key: str, status: str, detail: str):
        for s in self.steps:
            if s["key"] == key:
                s["status"] = status
                if detail:
                    s["detail"] = detail
                self._maybe_refresh()
                return
        self.steps.append({"key": key, "label": key, "status": status, "detail": detail})
        self._maybe_refresh()

    def _maybe_refresh(self):
        if self._refresh_cb:
            self._refresh_cb()

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            label = step["label"]
            detail_text = escape(step["detail"].strip()) if step["detail"] else ""

            status = step["status"]
            if status == "done":
                symbol = "[green]●[/green]"
            elif status == "pending":
                symbol = "[green dim]○[/green dim]"
            elif status == "running":
                symbol = "[cyan]○[/cyan]"
            elif status == "error":
                symbol = "[red]●[/red]"
            else:
                symbol = " "

            if detail_text:
                line = f"{symbol} [white]{label}[/white] [bright_black]({detail_text})[/bright_black]"
            else:
                line = f"{symbol} [white]{label}[/white]"
            tree.add(line)
        return tree


def live_tracker(tracker: StepTracker, console: Console) -> Live:
    """Live display bound to ``tracker``; use as a context manager."""
    live = Live(tracker.render(), console=console, refresh_per_second=8, transient=False)
    tracker.attach_refresh(lambda: live.update(tracker.render()))
    return live


def run_tracked(
    title: str,
    operation: Callable[[Callable[[Phase, str], None]], T],
    console: Console,
) -> T:
    """Run ``operation`` with a live phase tree.

    The display starts on the first progress event so any prompt issued
    before the operation reports progress is not drawn over.
    """
    tracker = StepTracker(title)
    live = live_tracker(tracker, console)

    def progress(phase: Phase, detail: str = "") -> None:
        if not live.is_started:
            live.start()
        tracker.track(phase, detail)

    try:
        result = operation(progress)
    except BranchVaultError as exc:
        tracker.finish(exc.phase, exc.message)
        raise
    else:
        tracker.finish()
        return result
    finally:
        if live.is_started:
            live.stop()


def get_key() -> str:
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()

    if key == readchar.key.UP or key == readchar.key.CTRL_P:
        return "up"
    if key == readchar.key.DOWN or key == readchar.key.CTRL_N:
        return "down"

    if key == readchar.key.ENTER:
        return "enter"

    if key == readchar.key.ESC or key == "\x1b":
        return "escape"

    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt

    return key


def select_with_arrows(
    options: Dict[str, str],
    prompt_text: str = "Select an option",
    console: Console | None = None,
) -> str:
    """Interactive selection using arrow keys with Rich Live display."""
    console = console or Console()
    option_keys = list(options.keys())
    selected_index = 0

    def create_selection_panel():
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")

        for i, key in enumerate(option_keys):
            pointer = "▶" if i == selected_index else " "
            table.add_row(pointer, f"[cyan]{key}[/cyan] [dim]({options[key]})[/dim]")

        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")

        return Panel(
            table,
            title=f"[bold]{prompt_text}[/bold]",
            border_style="cyan",
            padding=(1, 2),
        )

    console.print()
    with Live(create_selection_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            try:
                key = get_key()
            except KeyboardInterrupt:
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)
            if key == "up":
                selected_index = (selected_index - 1) % len(option_keys)
            elif key == "down":
                selected_index = (selected_index + 1) % len(option_keys)
            elif key == "enter":
                return option_keys[selected_index]
            elif key == "escape":
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)
            live.update(create_selection_panel(), refresh=True)


__all__ = ["PHASE_LABELS", "StepTracker", "get_key", "live_tracker", "run_tracked", "select_with_arrows"]
