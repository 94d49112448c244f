"""Typed failures raised by the snapshot and restore engine.

Every failure carries the kind of error (what went wrong) and the phase it
happened in (where it went wrong) so callers can report both without
parsing messages.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    GIT = "git"
    NOT_FOUND = "not_found"
    CANCELLED = "cancelled"


class Phase(StrEnum):
    """Named steps of a snapshot or restore, in execution order."""

    PRECONDITIONS = "preconditions"
    BINDING = "binding"
    ALLOCATING = "allocating"
    BRANCHING = "branching"
    CLEANING = "cleaning"
    STAGING = "staging"
    COMMITTING = "committing"
    PUSHING = "pushing"
    FETCHING = "fetching"
    SHELVING = "shelving"
    CHECKING_OUT = "checking_out"
    RECONCILING = "reconciling"


class BranchVaultError(Exception):
    """Base class for all engine failures."""

    kind: ErrorKind = ErrorKind.GIT

    def __init__(
        self,
        message: str,
        *,
        phase: Phase | None = None,
        stash_label: str | None = None,
        checkout_completed: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.phase = phase
        self.stash_label = stash_label
        self.checkout_completed = checkout_completed

    def describe(self) -> str:
        """One-line description naming the phase and any shelved changes."""
        text = self.message
        if self.phase is not None:
            text = f"[{self.phase.value}] {text}"
        if self.stash_label:
            text += f" (local changes shelved as '{self.stash_label}')"
        return text


class ConfigurationError(BranchVaultError):
    kind = ErrorKind.CONFIGURATION


class AuthenticationError(BranchVaultError):
    kind = ErrorKind.AUTHENTICATION


class GitError(BranchVaultError):
    """A git command failed; keeps the command and its stderr."""

    kind = ErrorKind.GIT

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.command = list(command or [])
        self.returncode = returncode
        self.stderr = stderr


class SnapshotNotFoundError(BranchVaultError):
    kind = ErrorKind.NOT_FOUND


class OperationCancelledError(BranchVaultError):
    kind = ErrorKind.CANCELLED


__all__ = [
    "AuthenticationError",
    "BranchVaultError",
    "ConfigurationError",
    "ErrorKind",
    "GitError",
    "OperationCancelledError",
    "Phase",
    "SnapshotNotFoundError",
]
