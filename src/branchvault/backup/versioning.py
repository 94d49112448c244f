"""Monotonic snapshot version allocation.

The next version is derived purely from the branch names already present
at the destination: the highest major wins, the highest minor under that
major is incremented. Majors are never bumped automatically.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"^v(\d+)\.(\d+)")


@dataclass(frozen=True, order=True)
class SnapshotVersion:
    major: int
    minor: int

    def __post_init__(self) -> None:
        if self.major < 1:
            raise ValueError(f"major version must be >= 1, got {self.major}")
        if self.minor < 0:
            raise ValueError(f"minor version must be >= 0, got {self.minor}")

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    def next_minor(self) -> "SnapshotVersion":
        return SnapshotVersion(self.major, self.minor + 1)


FIRST_VERSION = SnapshotVersion(1, 0)


def parse_version(name: str) -> SnapshotVersion | None:
    """Version prefix of a branch name, or None when it carries none."""
    match = VERSION_PATTERN.match(name)
    if not match:
        return None
    major, minor = int(match.group(1)), int(match.group(2))
    if major < 1:
        return None
    return SnapshotVersion(major, minor)


@dataclass(frozen=True)
class Allocation:
    """Allocated version plus the warning raised if enumeration degraded."""

    version: SnapshotVersion
    warning: str | None = None


class VersionAllocator:
    """Computes the next snapshot version for a destination."""

    def allocate(self, branch_names: Iterable[str]) -> SnapshotVersion:
        highest: SnapshotVersion | None = None
        for name in branch_names:
            version = parse_version(name)
            if version is None:
                continue
            if highest is None or version > highest:
                highest = version
        if highest is None:
            return FIRST_VERSION
        return highest.next_minor()

    def allocate_from(self, list_branches: Callable[[], Iterable[str]]) -> Allocation:
        """Allocate using a branch enumerator, degrading to 1.0 if it fails."""
        try:
            names = list(list_branches())
        except Exception as exc:
            warning = f"Could not enumerate existing snapshot branches ({exc}); starting at v{FIRST_VERSION}."
            logger.warning(warning)
            return Allocation(FIRST_VERSION, warning)
        return Allocation(self.allocate(names))


__all__ = [
    "Allocation",
    "FIRST_VERSION",
    "SnapshotVersion",
    "VERSION_PATTERN",
    "VersionAllocator",
    "parse_version",
]
