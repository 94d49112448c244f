"""Best-effort removal of known-invalid tracked paths before staging.

Paths are selected by an exclusion predicate: configured glob patterns plus
stale gitlinks (sub-project entries with no ``.gitmodules`` declaration),
which are the usual leftovers from an earlier workspace layout.
"""

from __future__ import annotations

import fnmatch
import logging
from typing import Callable, Iterable

from .errors import GitError
from .git import GITLINK_MODE, GitRunner

logger = logging.getLogger(__name__)

ExclusionPredicate = Callable[[str], bool]


def pattern_predicate(patterns: Iterable[str]) -> ExclusionPredicate:
    """Predicate matching a path, or any of its parent directories, against globs."""
    compiled = [pattern.strip().strip("/") for pattern in patterns if pattern.strip().strip("/")]

    def matches(path: str) -> bool:
        if not compiled:
            return False
        parts = path.strip("/").split("/")
        candidates = ["/".join(parts[: index + 1]) for index in range(len(parts))]
        return any(
            fnmatch.fnmatchcase(candidate, pattern)
            for pattern in compiled
            for candidate in candidates
        )

    return matches


class IndexRecoveryGuard:
    def __init__(self, git: GitRunner, exclude: ExclusionPredicate | None = None) -> None:
        self.git = git
        self.exclude = exclude or (lambda path: False)

    def find_invalid_paths(self) -> list[str]:
        entries = self.git.index_entries()
        declared = self.git.declared_submodule_paths()
        invalid = []
        for mode, path in entries:
            if mode == GITLINK_MODE and path not in declared:
                invalid.append(path)
            elif self.exclude(path):
                invalid.append(path)
        return list(dict.fromkeys(invalid))

    def is_excluded(self, path: str) -> bool:
        return self.exclude(path)

    def repair(self) -> list[str]:
        """Un-track invalid paths one at a time; returns the ones removed.

        Never raises: a failure to inspect or clean the index only means the
        snapshot proceeds with the index as it is.
        """
        try:
            candidates = self.find_invalid_paths()
        except GitError as exc:
            logger.warning("Skipping index cleanup, cannot list tracked files: %s", exc)
            return []

        removed = []
        for path in candidates:
            try:
                self.git.remove_cached(path)
            except GitError as exc:
                logger.warning("Could not un-track %s: %s", path, exc)
                continue
            logger.info("Removed invalid path from index: %s", path)
            removed.append(path)
        return removed


__all__ = ["ExclusionPredicate", "IndexRecoveryGuard", "pattern_predicate"]
