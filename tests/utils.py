"""Shared helpers for tests: git invocations and a hosting double."""

from __future__ import annotations

import subprocess
from pathlib import Path


def run(cmd: list[str], cwd: Path) -> str:
    completed = subprocess.run(cmd, cwd=str(cwd), check=True, capture_output=True, text=True)
    return completed.stdout


def git(cwd: Path, *args: str) -> str:
    return run(["git", *args], cwd=cwd)


def remote_branches(destination: str) -> list[str]:
    output = git(Path(destination), "for-each-ref", "--format=%(refname:short)", "refs/heads")
    return sorted(line for line in output.splitlines() if line)


def seed_branch(workspace: Path, destination: str, name: str) -> None:
    """Push HEAD of ``workspace`` to ``destination`` under ``name``."""
    git(workspace, "push", destination, f"HEAD:refs/heads/{name}")


class FakeHosting:
    """Hosting double that lists branches straight from the destination with git."""

    def __init__(self, authenticated: bool = True) -> None:
        self.authenticated = authenticated
        self.reauthenticate_result = authenticated
        self.reauthenticate_calls = 0
        self.list_calls = 0
        self.fail_listing = False

    def is_authenticated(self) -> bool:
        return self.authenticated

    def reauthenticate(self) -> bool:
        self.reauthenticate_calls += 1
        self.authenticated = self.reauthenticate_result
        return self.authenticated

    def list_branches(self, url: str, prefix: str = "v") -> list[str]:
        self.list_calls += 1
        if self.fail_listing:
            raise RuntimeError("listing unavailable")
        output = run(["git", "ls-remote", "--heads", url], cwd=Path(url))
        names = []
        for line in output.splitlines():
            ref = line.split("\t", 1)[1]
            name = ref.removeprefix("refs/heads/")
            if name.startswith(prefix):
                names.append(name)
        return names
