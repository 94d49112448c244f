"""Binding of the engine's reserved remote alias to the destination URL."""

from __future__ import annotations

import logging
from enum import StrEnum

from .git import GitRunner

logger = logging.getLogger(__name__)

RESERVED_REMOTE = "branchvault_backup"


class BindOutcome(StrEnum):
    UNCHANGED = "unchanged"
    ADDED = "added"
    REBOUND = "rebound"


class UrlCheck(StrEnum):
    """Which configured URL of the remote must equal the destination."""

    PUSH = "push"
    FETCH = "fetch"


class RemoteBinder:
    """Keeps exactly one remote under the reserved alias, pointing at the destination.

    A remote that points elsewhere is removed and re-added rather than
    edited in place. User remotes are never read or modified.
    """

    def __init__(self, git: GitRunner, alias: str = RESERVED_REMOTE) -> None:
        self.git = git
        self.alias = alias

    def bind(self, url: str, *, check: UrlCheck = UrlCheck.PUSH) -> BindOutcome:
        existing = self.alias in self.git.list_remotes()
        if existing:
            current = self.git.remote_url(self.alias, push=check is UrlCheck.PUSH)
            if current == url:
                return BindOutcome.UNCHANGED
            logger.info("Remote '%s' points at %s; rebinding to %s", self.alias, current, url)
            self.git.remove_remote(self.alias)

        self.git.add_remote(self.alias, url)
        if existing:
            return BindOutcome.REBOUND
        logger.info("Added remote '%s' -> %s", self.alias, url)
        return BindOutcome.ADDED


__all__ = ["BindOutcome", "RESERVED_REMOTE", "RemoteBinder", "UrlCheck"]
