"""Tests for binding the reserved backup remote."""

from __future__ import annotations

from branchvault.backup.git import GitRunner
from branchvault.backup.remote import RESERVED_REMOTE, BindOutcome, RemoteBinder, UrlCheck
from tests.utils import git


class TestRemoteBinder:
    def test_adds_missing_remote(self, workspace, destination):
        runner = GitRunner(workspace)

        outcome = RemoteBinder(runner).bind(destination)

        assert outcome is BindOutcome.ADDED
        assert runner.remote_url(RESERVED_REMOTE) == destination

    def test_binding_is_idempotent(self, workspace, destination):
        runner = GitRunner(workspace)
        binder = RemoteBinder(runner)
        binder.bind(destination)

        assert binder.bind(destination) is BindOutcome.UNCHANGED
        assert binder.bind(destination, check=UrlCheck.FETCH) is BindOutcome.UNCHANGED
        assert runner.list_remotes().count(RESERVED_REMOTE) == 1

    def test_changed_url_rebinds(self, workspace, destination, tmp_path):
        other = tmp_path / "other.git"
        other.mkdir()
        git(other, "init", "--bare")
        runner = GitRunner(workspace)
        binder = RemoteBinder(runner)
        binder.bind(destination)

        outcome = binder.bind(str(other))

        assert outcome is BindOutcome.REBOUND
        assert runner.list_remotes() == [RESERVED_REMOTE]
        assert runner.remote_url(RESERVED_REMOTE) == str(other)

    def test_rebind_when_only_push_url_differs(self, workspace, destination, tmp_path):
        runner = GitRunner(workspace)
        RemoteBinder(runner).bind(destination)
        git(workspace, "remote", "set-url", "--push", RESERVED_REMOTE, str(tmp_path / "elsewhere.git"))

        outcome = RemoteBinder(runner).bind(destination, check=UrlCheck.PUSH)

        assert outcome is BindOutcome.REBOUND
        assert runner.remote_url(RESERVED_REMOTE, push=True) == destination

    def test_user_remotes_untouched(self, workspace, destination, tmp_path):
        git(workspace, "remote", "add", "origin", str(tmp_path / "origin.git"))
        runner = GitRunner(workspace)

        RemoteBinder(runner).bind(destination)

        assert sorted(runner.list_remotes()) == sorted(["origin", RESERVED_REMOTE])
        assert runner.remote_url("origin") == str(tmp_path / "origin.git")
