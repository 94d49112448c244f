"""Canonical snapshot branch names and commit messages."""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from .versioning import SnapshotVersion, parse_version

TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

_BRANCH_RE = re.compile(
    r"^v(?P<major>\d+)\.(?P<minor>\d+)/"
    r"(?P<timestamp>\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2})"
    r"(?:-(?P<suffix>[0-9A-Za-z]+))?$"
)


@dataclass(frozen=True)
class SnapshotBranch:
    """One backup point at the destination."""

    version: SnapshotVersion
    timestamp: datetime
    name: str


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def _random_suffix() -> str:
    return secrets.token_hex(2)


class SnapshotNamer:
    """Builds branch names and commit messages from (version, timestamp[, note])."""

    def __init__(self, suffix_factory: Callable[[], str] = _random_suffix) -> None:
        self._suffix_factory = suffix_factory

    def branch_name(self, version: SnapshotVersion, timestamp: datetime) -> str:
        return f"v{version}/{format_timestamp(timestamp)}"

    def commit_message(
        self,
        version: SnapshotVersion,
        timestamp: datetime,
        note: str | None = None,
    ) -> str:
        message = f"Snapshot {version} - {format_timestamp(timestamp)}"
        if note and note.strip():
            message += f" - {note.strip()}"
        return message

    def disambiguate(self, name: str) -> str:
        """Collision fallback: suffix the branch, never the version."""
        return f"{name}-{self._suffix_factory()}"


def parse_snapshot_branch(name: str) -> SnapshotBranch | None:
    """Parse a destination branch name; None for anything not a snapshot."""
    match = _BRANCH_RE.match(name)
    if not match:
        return None
    version = parse_version(name)
    if version is None:
        return None
    try:
        timestamp = datetime.strptime(match.group("timestamp"), TIMESTAMP_FORMAT)
    except ValueError:
        return None
    return SnapshotBranch(version=version, timestamp=timestamp, name=name)


def latest_snapshot(names: list[str]) -> SnapshotBranch | None:
    """Newest snapshot by timestamp component; version breaks ties."""
    parsed = [branch for branch in map(parse_snapshot_branch, names) if branch is not None]
    if not parsed:
        return None
    return max(parsed, key=lambda branch: (branch.timestamp, branch.version))


__all__ = [
    "SnapshotBranch",
    "SnapshotNamer",
    "TIMESTAMP_FORMAT",
    "format_timestamp",
    "latest_snapshot",
    "parse_snapshot_branch",
]
