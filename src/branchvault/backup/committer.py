"""Capture the working tree as a new snapshot branch and push it.

Preconditions are checked in a fixed order, each with its own failure kind.
From branch creation onward every git failure surfaces as a single
``GitError`` carrying the phase and git's own message; the local snapshot
branch is left in place for inspection rather than rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable

from .errors import (
    AuthenticationError,
    ConfigurationError,
    GitError,
    OperationCancelledError,
    Phase,
)
from .git import GitRunner
from .hosting import HostingService, ProgressCallback, _no_progress
from .index_guard import ExclusionPredicate, IndexRecoveryGuard
from .naming import SnapshotNamer
from .remote import RESERVED_REMOTE, BindOutcome, RemoteBinder, UrlCheck
from .versioning import SnapshotVersion, VersionAllocator

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_BRANCH = "main"

ConfirmInit = Callable[[Path], bool]


@dataclass
class SnapshotResult:
    branch_name: str
    version: SnapshotVersion
    commit_message: str
    staged_count: int = 0
    bind_outcome: BindOutcome = BindOutcome.UNCHANGED
    excised_paths: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    initialized_repository: bool = False


def _batches(items: list[str], size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _under(path: str, roots: list[str]) -> bool:
    return any(path == root or path.startswith(root.rstrip("/") + "/") for root in roots)


class SnapshotCommitter:
    def __init__(
        self,
        hosting: HostingService,
        *,
        namer: SnapshotNamer | None = None,
        allocator: VersionAllocator | None = None,
        exclude: ExclusionPredicate | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        confirm_init: ConfirmInit | None = None,
        clock: Callable[[], datetime] = datetime.now,
        git_factory: Callable[[Path], GitRunner] = GitRunner,
        alias: str = RESERVED_REMOTE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.hosting = hosting
        self.namer = namer or SnapshotNamer()
        self.allocator = allocator or VersionAllocator()
        self.exclude = exclude
        self.batch_size = batch_size
        self.confirm_init = confirm_init
        self.clock = clock
        self.git_factory = git_factory
        self.alias = alias

    def snapshot(
        self,
        workspace: Path | None,
        destination_url: str | None,
        note: str | None = None,
        *,
        progress: ProgressCallback | None = None,
    ) -> SnapshotResult:
        report = progress or _no_progress

        git, initialized = self._open_repository(workspace)
        if not destination_url:
            raise ConfigurationError(
                "No destination repository URL is configured. Set one before taking a snapshot.",
                phase=Phase.PRECONDITIONS,
            )
        self.ensure_authenticated()

        report(Phase.BINDING, destination_url)
        bind_outcome = RemoteBinder(git, self.alias).bind(destination_url, check=UrlCheck.PUSH)

        report(Phase.ALLOCATING, "")
        allocation = self.allocator.allocate_from(
            lambda: self.hosting.list_branches(destination_url, prefix="v")
        )
        version = allocation.version
        timestamp = self.clock()

        report(Phase.BRANCHING, f"v{version}")
        self._ensure_branch(git)
        branch_name = self._create_branch(git, self.namer.branch_name(version, timestamp))

        report(Phase.CLEANING, "")
        guard = IndexRecoveryGuard(git, self.exclude)
        excised = guard.repair()

        report(Phase.STAGING, "")
        state = git.status()
        paths = [
            path
            for path in state.changed_paths
            if not guard.is_excluded(path) and not _under(path, excised)
        ]
        for batch in _batches(paths, self.batch_size):
            git.add(batch)
        if not paths:
            logger.info("No changed paths; recording an empty snapshot commit")

        message = self.namer.commit_message(version, timestamp, note)
        report(Phase.COMMITTING, f"{len(paths)} path(s)")
        git.commit(message, allow_empty=True)

        report(Phase.PUSHING, branch_name)
        git.push(self.alias, branch_name, set_upstream=True)

        report(Phase.FETCHING, self.alias)
        git.fetch(self.alias)

        logger.info("Snapshot %s pushed to %s", branch_name, destination_url)
        return SnapshotResult(
            branch_name=branch_name,
            version=version,
            commit_message=message,
            staged_count=len(paths),
            bind_outcome=bind_outcome,
            excised_paths=excised,
            warnings=[allocation.warning] if allocation.warning else [],
            initialized_repository=initialized,
        )

    # ── Preconditions ─────────────────────────────────────────────

    def _open_repository(self, workspace: Path | None) -> tuple[GitRunner, bool]:
        if workspace is None or not Path(workspace).is_dir():
            raise ConfigurationError(
                "No workspace: the working tree does not exist.",
                phase=Phase.PRECONDITIONS,
            )
        git = self.git_factory(Path(workspace))
        if git.is_repository():
            return git, False

        if self.confirm_init is None or not self.confirm_init(Path(workspace)):
            raise OperationCancelledError(
                f"Snapshot cancelled: {workspace} is not a git repository.",
                phase=Phase.PRECONDITIONS,
            )
        git.init()
        if not git.is_repository():
            raise GitError(
                f"git init reported success but {workspace} is still not a repository.",
                phase=Phase.PRECONDITIONS,
            )
        logger.info("Initialized git repository in %s", workspace)
        return git, True

    def ensure_authenticated(self) -> None:
        if self.hosting.is_authenticated():
            return
        logger.info("Not authenticated with the destination host; retrying once")
        if not self.hosting.reauthenticate():
            raise AuthenticationError(
                "Authentication with the destination host failed. Store a valid token and try again.",
                phase=Phase.PRECONDITIONS,
            )

    # ── Branching ─────────────────────────────────────────────────

    def _ensure_branch(self, git: GitRunner) -> None:
        """Give a brand-new repository a conventional default branch to fork from."""
        if git.has_commits():
            return
        default = git.current_branch() or DEFAULT_BRANCH
        git.point_head_at(default)
        git.commit_empty_root(default, "Initialize repository")
        logger.info("Created default branch '%s' for a repository with no commits", default)

    def _create_branch(self, git: GitRunner, name: str) -> str:
        try:
            git.checkout(name, create=True)
            return name
        except GitError as exc:
            if "already exists" not in exc.stderr:
                raise
        retry = self.namer.disambiguate(name)
        logger.warning("Branch %s already exists; using %s", name, retry)
        git.checkout(retry, create=True)
        return retry


__all__ = ["ConfirmInit", "DEFAULT_BATCH_SIZE", "SnapshotCommitter", "SnapshotResult"]
