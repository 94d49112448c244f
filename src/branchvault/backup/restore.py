"""Restore the working tree to a snapshot branch.

State machine per call::

    Idle -> RemoteBound -> Fetched -> Shelved? -> CheckedOut -> Reconciled? -> Done

Uncommitted work is shelved under a timestamped label before the forced
checkout and reapplied afterwards. A reapply conflict does not fail the
restore; the label is returned so the operator can resolve it by hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Callable

from .errors import (
    BranchVaultError,
    ConfigurationError,
    GitError,
    Phase,
    SnapshotNotFoundError,
)
from .git import GitRunner
from .hosting import HostingService, ProgressCallback, _no_progress
from .naming import latest_snapshot
from .remote import RESERVED_REMOTE, RemoteBinder, UrlCheck

logger = logging.getLogger(__name__)

STASH_PREFIX = "branchvault-before-restore"

_MISSING_REF_MARKERS = (
    "couldn't find remote ref",
    "could not find remote ref",
    "no such ref",
)


class RestoreState(StrEnum):
    IDLE = "idle"
    REMOTE_BOUND = "remote_bound"
    FETCHED = "fetched"
    SHELVED = "shelved"
    CHECKED_OUT = "checked_out"
    RECONCILED = "reconciled"
    DONE = "done"


@dataclass
class RestoreResult:
    branch_name: str
    reconciled: bool = True
    stash_label: str | None = None
    conflict_label: str | None = None
    conflict_message: str | None = None

    @property
    def shelved(self) -> bool:
        return self.stash_label is not None


class RestoreCoordinator:
    def __init__(
        self,
        hosting: HostingService | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
        git_factory: Callable[[Path], GitRunner] = GitRunner,
        alias: str = RESERVED_REMOTE,
    ) -> None:
        self.hosting = hosting
        self.clock = clock
        self.git_factory = git_factory
        self.alias = alias
        self.state = RestoreState.IDLE

    def restore(
        self,
        workspace: Path | None,
        destination_url: str | None,
        branch_name: str,
        *,
        progress: ProgressCallback | None = None,
    ) -> RestoreResult:
        report = progress or _no_progress
        self.state = RestoreState.IDLE
        git = self._open_repository(workspace)
        if not destination_url:
            raise ConfigurationError(
                "No destination repository URL is configured.",
                phase=Phase.PRECONDITIONS,
            )

        report(Phase.BINDING, destination_url)
        RemoteBinder(git, self.alias).bind(destination_url, check=UrlCheck.FETCH)
        self.state = RestoreState.REMOTE_BOUND

        report(Phase.FETCHING, branch_name)
        self._fetch(git, branch_name)
        self.state = RestoreState.FETCHED

        stash_label = None
        if git.status(phase=Phase.SHELVING).dirty:
            label = f"{STASH_PREFIX}-{self.clock().strftime('%Y%m%d%H%M%S')}"
            report(Phase.SHELVING, label)
            if git.stash_push(label):
                stash_label = label
                self.state = RestoreState.SHELVED
                logger.info("Shelved local changes as %s", label)

        report(Phase.CHECKING_OUT, branch_name)
        try:
            git.checkout(
                branch_name,
                reset=True,
                force=True,
                start_point=f"refs/remotes/{self.alias}/{branch_name}",
                phase=Phase.CHECKING_OUT,
            )
        except BranchVaultError as exc:
            exc.stash_label = stash_label
            raise
        self.state = RestoreState.CHECKED_OUT

        result = RestoreResult(branch_name=branch_name, stash_label=stash_label)
        if stash_label:
            report(Phase.RECONCILING, stash_label)
            try:
                self._reconcile(git, result)
            except BranchVaultError as exc:
                exc.stash_label = stash_label
                exc.checkout_completed = True
                raise

        self.state = RestoreState.DONE
        logger.info("Restored %s to %s", workspace, branch_name)
        return result

    def restore_latest(
        self,
        workspace: Path | None,
        destination_url: str | None,
        *,
        progress: ProgressCallback | None = None,
    ) -> RestoreResult:
        if not destination_url:
            raise ConfigurationError(
                "No destination repository URL is configured.",
                phase=Phase.PRECONDITIONS,
            )
        if self.hosting is None:
            raise ConfigurationError("No hosting client available to list snapshots.")
        latest = latest_snapshot(self.hosting.list_branches(destination_url, prefix="v"))
        if latest is None:
            raise SnapshotNotFoundError("No snapshot branches found to restore.", phase=Phase.FETCHING)
        return self.restore(workspace, destination_url, latest.name, progress=progress)

    # ── Steps ─────────────────────────────────────────────────────

    def _open_repository(self, workspace: Path | None) -> GitRunner:
        if workspace is None or not Path(workspace).is_dir():
            raise ConfigurationError("No workspace: the working tree does not exist.", phase=Phase.PRECONDITIONS)
        git = self.git_factory(Path(workspace))
        if not git.is_repository():
            raise ConfigurationError(
                f"{workspace} is not a git repository; nothing to restore into.",
                phase=Phase.PRECONDITIONS,
            )
        return git

    def _fetch(self, git: GitRunner, branch_name: str) -> None:
        try:
            git.fetch(self.alias, branch_name)
        except GitError as exc:
            lowered = exc.stderr.lower()
            if any(marker in lowered for marker in _MISSING_REF_MARKERS):
                raise SnapshotNotFoundError(
                    f"Snapshot branch '{branch_name}' does not exist at the destination.",
                    phase=Phase.FETCHING,
                ) from exc
            raise

    def _reconcile(self, git: GitRunner, result: RestoreResult) -> None:
        ref = git.find_stash(result.stash_label or "")
        try:
            git.stash_pop(ref)
        except GitError as exc:
            result.reconciled = False
            result.conflict_label = result.stash_label
            result.conflict_message = exc.stderr.strip() or exc.message
            logger.warning(
                "Restore succeeded but shelved changes '%s' could not be reapplied: %s",
                result.stash_label,
                result.conflict_message,
            )
            return
        self.state = RestoreState.RECONCILED


__all__ = ["RestoreCoordinator", "RestoreResult", "RestoreState", "STASH_PREFIX"]
