"""Thin adapter over the git command line for one working tree.

Every call goes through ``GitRunner.execute`` which never raises for a
non-zero exit; ``GitRunner.run`` turns failures into ``GitError`` tagged
with the phase the caller is in.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from .errors import GitError, Phase

logger = logging.getLogger(__name__)

GITLINK_MODE = "160000"
_NOTHING_TO_STASH = "no local changes to save"


@dataclass
class GitCommandResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True)
class WorkingTreeState:
    """Fresh view of the tree, read before every snapshot and restore."""

    branch: str | None
    changed_paths: tuple[str, ...] = field(default_factory=tuple)

    @property
    def dirty(self) -> bool:
        return bool(self.changed_paths)


def parse_porcelain_z(output: str) -> list[str]:
    """Extract changed paths from ``git status --porcelain -z`` output.

    Renames and copies contribute both the new and the original path so a
    later ``git add`` records the removal side as well.
    """
    paths: list[str] = []
    entries = output.split("\0")
    index = 0
    while index < len(entries):
        entry = entries[index]
        index += 1
        if len(entry) < 4:
            continue
        status, path = entry[:2], entry[3:]
        paths.append(path)
        if "R" in status or "C" in status:
            if index < len(entries) and entries[index]:
                paths.append(entries[index])
            index += 1
    return list(dict.fromkeys(paths))


class GitRunner:
    """Runs git commands rooted at a single working tree."""

    def __init__(self, repo_root: Path, *, timeout: int = 300) -> None:
        self.repo_root = Path(repo_root)
        self.timeout = timeout

    def execute(self, args: list[str]) -> GitCommandResult:
        logger.debug("git %s (cwd=%s)", " ".join(args), self.repo_root)
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        try:
            completed = subprocess.run(
                ["git", *args],
                cwd=str(self.repo_root),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
                timeout=self.timeout,
                env=env,
            )
        except FileNotFoundError:
            return GitCommandResult(127, "", "git executable not found on PATH")
        except subprocess.TimeoutExpired:
            return GitCommandResult(124, "", f"git command timed out: git {' '.join(args)}")
        return GitCommandResult(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    def run(self, args: list[str], *, phase: Phase) -> str:
        result = self.execute(args)
        if not result.ok:
            detail = result.stderr.strip() or result.stdout.strip() or f"exit status {result.returncode}"
            raise GitError(
                f"git {args[0]} failed: {detail}",
                phase=phase,
                command=["git", *args],
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result.stdout

    # ── Repository ────────────────────────────────────────────────

    def is_repository(self) -> bool:
        """True when the working tree root is itself the top of a git repository."""
        result = self.execute(["rev-parse", "--show-toplevel"])
        if not result.ok:
            return False
        top_level = Path(result.stdout.strip())
        try:
            return top_level.resolve() == self.repo_root.resolve()
        except OSError:
            return False

    def init(self) -> None:
        self.run(["init"], phase=Phase.PRECONDITIONS)

    def has_commits(self) -> bool:
        return self.execute(["rev-parse", "--verify", "-q", "HEAD"]).ok

    def point_head_at(self, branch: str) -> None:
        """Make HEAD a symbolic ref to ``branch`` without touching the tree."""
        self.run(["symbolic-ref", "HEAD", f"refs/heads/{branch}"], phase=Phase.BRANCHING)

    def commit_empty_root(self, branch: str, message: str) -> str:
        """Point ``branch`` at a new root commit with an empty tree.

        Neither the index nor the working tree is read, so anything the
        user has staged stays staged and out of the commit.
        """
        tree = self.run(["hash-object", "-t", "tree", os.devnull], phase=Phase.BRANCHING).strip()
        commit = self.run(["commit-tree", tree, "-m", message], phase=Phase.BRANCHING).strip()
        self.run(["update-ref", f"refs/heads/{branch}", commit], phase=Phase.BRANCHING)
        return commit

    def current_branch(self) -> str | None:
        result = self.execute(["symbolic-ref", "--short", "-q", "HEAD"])
        branch = result.stdout.strip()
        return branch if result.ok and branch else None

    def status(self, *, phase: Phase = Phase.STAGING) -> WorkingTreeState:
        output = self.run(
            ["status", "--porcelain=v1", "-z", "--untracked-files=all"],
            phase=phase,
        )
        return WorkingTreeState(
            branch=self.current_branch(),
            changed_paths=tuple(parse_porcelain_z(output)),
        )

    # ── Branches and commits ──────────────────────────────────────

    def checkout(
        self,
        ref: str,
        *,
        create: bool = False,
        reset: bool = False,
        force: bool = False,
        start_point: str | None = None,
        phase: Phase = Phase.BRANCHING,
    ) -> None:
        args = ["checkout"]
        if force:
            args.append("-f")
        if reset:
            args.extend(["-B", ref])
        elif create:
            args.extend(["-b", ref])
        else:
            args.append(ref)
        if start_point:
            args.append(start_point)
        self.run(args, phase=phase)

    def add(self, paths: list[str]) -> None:
        if paths:
            self.run(["add", "--all", "--", *paths], phase=Phase.STAGING)

    def commit(self, message: str, *, allow_empty: bool = True) -> None:
        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        self.run(args, phase=Phase.COMMITTING)

    # ── Remotes ───────────────────────────────────────────────────

    def list_remotes(self) -> list[str]:
        output = self.run(["remote"], phase=Phase.BINDING)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def remote_url(self, name: str, *, push: bool = False) -> str | None:
        args = ["remote", "get-url"]
        if push:
            args.append("--push")
        result = self.execute([*args, name])
        return result.stdout.strip() if result.ok else None

    def add_remote(self, name: str, url: str) -> None:
        self.run(["remote", "add", name, url], phase=Phase.BINDING)

    def remove_remote(self, name: str) -> None:
        self.run(["remote", "remove", name], phase=Phase.BINDING)

    def push(self, remote: str, branch: str, *, set_upstream: bool = True) -> None:
        args = ["push"]
        if set_upstream:
            args.append("--set-upstream")
        self.run([*args, remote, branch], phase=Phase.PUSHING)

    def fetch(self, remote: str, branch: str | None = None) -> None:
        args = ["fetch", remote]
        if branch:
            args.append(f"+refs/heads/{branch}:refs/remotes/{remote}/{branch}")
        self.run(args, phase=Phase.FETCHING)

    def ls_remote_heads(self, remote: str, prefix: str = "") -> list[str]:
        """Branch names at ``remote`` (a remote name or URL) starting with ``prefix``."""
        output = self.run(["ls-remote", "--heads", remote], phase=Phase.ALLOCATING)
        names = []
        for line in output.splitlines():
            parts = line.split("\t", 1)
            if len(parts) != 2 or not parts[1].startswith("refs/heads/"):
                continue
            name = parts[1][len("refs/heads/"):]
            if name.startswith(prefix):
                names.append(name)
        return names

    # ── Stash ─────────────────────────────────────────────────────

    def stash_push(self, label: str) -> bool:
        """Shelve tracked and untracked changes; False when nothing was shelved."""
        output = self.run(["stash", "push", "--include-untracked", "-m", label], phase=Phase.SHELVING)
        return _NOTHING_TO_STASH not in output.lower()

    def find_stash(self, label: str) -> str | None:
        result = self.execute(["stash", "list", "--format=%gd%x00%gs"])
        if not result.ok:
            return None
        for line in result.stdout.splitlines():
            ref, _, subject = line.partition("\0")
            if subject == label or subject.endswith(f": {label}"):
                return ref
        return None

    def stash_pop(self, ref: str | None = None) -> None:
        args = ["stash", "pop"]
        if ref:
            args.append(ref)
        self.run(args, phase=Phase.RECONCILING)

    # ── Index maintenance ─────────────────────────────────────────

    def index_entries(self) -> list[tuple[str, str]]:
        """(mode, path) for every tracked index entry."""
        output = self.run(["ls-files", "--stage", "-z"], phase=Phase.CLEANING)
        entries = []
        for record in output.split("\0"):
            if not record:
                continue
            meta, _, path = record.partition("\t")
            mode = meta.split(" ", 1)[0]
            entries.append((mode, path))
        return entries

    def declared_submodule_paths(self) -> set[str]:
        if not (self.repo_root / ".gitmodules").exists():
            return set()
        result = self.execute(["config", "-f", ".gitmodules", "--get-regexp", r"^submodule\..*\.path$"])
        if not result.ok:
            return set()
        paths = set()
        for line in result.stdout.splitlines():
            _, _, value = line.partition(" ")
            if value.strip():
                paths.add(value.strip())
        return paths

    def remove_cached(self, path: str) -> None:
        self.run(["rm", "--cached", "-r", "-f", "-q", "--", path], phase=Phase.CLEANING)


__all__ = [
    "GITLINK_MODE",
    "GitCommandResult",
    "GitRunner",
    "WorkingTreeState",
    "parse_porcelain_z",
]
