from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from tests.utils import FakeHosting, git


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME at a scratch directory and give git a fixed identity."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Branch Vault")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "vault@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Branch Vault")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "vault@example.com")
    monkeypatch.delenv("GH_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return home


@pytest.fixture()
def workspace(tmp_path: Path) -> Iterator[Path]:
    repo_dir = tmp_path / "work"
    repo_dir.mkdir()
    git(repo_dir, "init", "-b", "main")
    git(repo_dir, "config", "user.name", "Branch Vault")
    git(repo_dir, "config", "user.email", "vault@example.com")
    (repo_dir / "README.md").write_text("hello\n", encoding="utf-8")
    git(repo_dir, "add", "README.md")
    git(repo_dir, "commit", "-m", "Initial commit")
    yield repo_dir


@pytest.fixture()
def destination(tmp_path: Path) -> str:
    """Local bare repository standing in for the hosted destination."""
    bare = tmp_path / "destination.git"
    bare.mkdir()
    git(bare, "init", "--bare", "-b", "main")
    return str(bare)


@pytest.fixture()
def hosting() -> FakeHosting:
    return FakeHosting()

