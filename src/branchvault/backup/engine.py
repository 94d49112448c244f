"""Caller-facing snapshot engine.

Wires the committer, restore coordinator and scheduler to one working tree
and one destination, and serialises operations on the same destination
with a process-wide single-flight lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

from branchvault.config import BackupSettings, ConfigStore
from branchvault.github.repo_url import RepoUrlError, normalize_destination, parse_repo_url

from .committer import ConfirmInit, SnapshotCommitter, SnapshotResult
from .errors import ConfigurationError, GitError, Phase
from .git import GitRunner
from .hosting import HostingService, ProgressCallback, RepositoryHost
from .index_guard import pattern_predicate
from .naming import SnapshotBranch, parse_snapshot_branch
from .remote import RESERVED_REMOTE, RemoteBinder, UrlCheck
from .restore import RestoreCoordinator, RestoreResult
from .scheduler import BackupScheduler

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    branch_name: str
    pull_request_url: Optional[str] = None


_flight_locks: dict[str, threading.Lock] = {}
_flight_locks_guard = threading.Lock()


def _flight_lock(destination_url: str | None) -> threading.Lock:
    key = destination_url or ""
    with _flight_locks_guard:
        lock = _flight_locks.get(key)
        if lock is None:
            lock = _flight_locks[key] = threading.Lock()
        return lock


class SnapshotEngine:
    def __init__(
        self,
        workspace: Path | None,
        hosting: HostingService,
        *,
        settings: BackupSettings | None = None,
        config_store: ConfigStore | None = None,
        confirm_init: ConfirmInit | None = None,
        clock: Callable[[], datetime] = datetime.now,
        git_factory: Callable[[Path], GitRunner] = GitRunner,
        on_scheduled_result: Optional[Callable[[Any, Optional[BaseException]], None]] = None,
    ) -> None:
        self.workspace = Path(workspace) if workspace is not None else None
        self.hosting = hosting
        self.config_store = config_store
        if settings is None:
            settings = config_store.load() if config_store is not None else BackupSettings()
        self.settings = settings
        self.confirm_init = confirm_init
        self.clock = clock
        self.git_factory = git_factory
        self.scheduler = BackupScheduler(
            task=self.run_scheduled,
            interval_minutes=settings.interval_minutes,
            on_result=on_scheduled_result,
        )

    @property
    def destination_url(self) -> str | None:
        return self.settings.destination_url

    def _committer(self) -> SnapshotCommitter:
        return SnapshotCommitter(
            self.hosting,
            exclude=pattern_predicate(self.settings.exclude_paths),
            batch_size=self.settings.batch_size,
            confirm_init=self.confirm_init,
            clock=self.clock,
            git_factory=self.git_factory,
        )

    def _restorer(self) -> RestoreCoordinator:
        return RestoreCoordinator(self.hosting, clock=self.clock, git_factory=self.git_factory)

    # ── Snapshots ─────────────────────────────────────────────────

    def trigger_snapshot(
        self,
        note: str | None = None,
        *,
        progress: ProgressCallback | None = None,
    ) -> SnapshotResult:
        """Manual snapshot; waits for any operation in flight on the same destination."""
        destination = self.destination_url
        with _flight_lock(destination):
            return self._committer().snapshot(self.workspace, destination, note, progress=progress)

    def run_scheduled(self) -> SnapshotResult | None:
        """Scheduled tick; skipped when another operation holds the destination."""
        destination = self.destination_url
        lock = _flight_lock(destination)
        if not lock.acquire(blocking=False):
            logger.warning("Skipping scheduled snapshot: another operation on %s is in progress", destination)
            return None
        try:
            return self._committer().snapshot(self.workspace, destination)
        finally:
            lock.release()

    def list_snapshots(self) -> list[SnapshotBranch]:
        """Snapshots at the destination, newest first."""
        if not self.destination_url:
            raise ConfigurationError("No destination repository URL is configured.")
        names = self.hosting.list_branches(self.destination_url, prefix="v")
        branches = [branch for branch in map(parse_snapshot_branch, names) if branch is not None]
        return sorted(branches, key=lambda branch: (branch.timestamp, branch.version), reverse=True)

    # ── Restore ───────────────────────────────────────────────────

    def restore(self, branch_name: str, *, progress: ProgressCallback | None = None) -> RestoreResult:
        destination = self.destination_url
        with _flight_lock(destination):
            return self._restorer().restore(self.workspace, destination, branch_name, progress=progress)

    def restore_latest(self, *, progress: ProgressCallback | None = None) -> RestoreResult:
        destination = self.destination_url
        with _flight_lock(destination):
            return self._restorer().restore_latest(self.workspace, destination, progress=progress)

    # ── Current branch ────────────────────────────────────────────

    def push_current_branch(self) -> PushResult:
        """Push the checked-out branch as-is to the destination."""
        destination = self.destination_url
        if self.workspace is None or not self.workspace.is_dir():
            raise ConfigurationError("No workspace: the working tree does not exist.", phase=Phase.PRECONDITIONS)
        if not destination:
            raise ConfigurationError("No destination repository URL is configured.", phase=Phase.PRECONDITIONS)
        with _flight_lock(destination):
            git = self.git_factory(self.workspace)
            if not git.is_repository():
                raise ConfigurationError(f"{self.workspace} is not a git repository.", phase=Phase.PRECONDITIONS)
            self._committer().ensure_authenticated()
            RemoteBinder(git).bind(destination, check=UrlCheck.PUSH)
            branch = git.current_branch()
            if not branch or not git.has_commits():
                raise GitError(
                    "Could not determine the current branch. Check out a branch with at least one commit.",
                    phase=Phase.PUSHING,
                )
            git.push(RESERVED_REMOTE, branch, set_upstream=True)

        try:
            pull_request_url = parse_repo_url(destination).pull_request_url(branch)
        except RepoUrlError:
            pull_request_url = None
        return PushResult(branch_name=branch, pull_request_url=pull_request_url)

    # ── Configuration ─────────────────────────────────────────────

    def set_destination(self, url: str) -> str:
        normalized = normalize_destination(url)
        self.settings.destination_url = normalized
        if self.config_store is not None:
            self.config_store.update(destination_url=normalized)
        logger.info("Destination set to %s", normalized)
        return normalized

    def create_destination(self, name: str) -> str:
        """Create a private repository through the hosting service and adopt it."""
        host = self._repository_host()
        url = host.create_private_repository(name)
        logger.info("Created destination repository %s", url)
        return self.set_destination(url)

    def check_destination(self) -> Any:
        if not self.destination_url:
            raise ConfigurationError("No destination repository URL is configured.")
        return self._repository_host().check_repository_access(self.destination_url)

    def _repository_host(self) -> RepositoryHost:
        if not isinstance(self.hosting, RepositoryHost):
            raise ConfigurationError("The hosting client cannot manage repositories.")
        return self.hosting

    def set_interval(self, minutes: int) -> None:
        self.settings.interval_minutes = int(minutes)
        if self.config_store is not None:
            self.config_store.update(interval_minutes=int(minutes))
        self.scheduler.set_interval(int(minutes))

    def start(self) -> None:
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()


__all__ = ["PushResult", "SnapshotEngine"]
