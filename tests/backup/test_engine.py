"""Tests for the SnapshotEngine facade."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from branchvault.backup.engine import SnapshotEngine, _flight_lock
from branchvault.backup.errors import AuthenticationError, ConfigurationError, GitError, Phase
from branchvault.backup.versioning import SnapshotVersion
from branchvault.config import BackupSettings, ConfigStore
from tests.utils import git, remote_branches, seed_branch

MOMENT = datetime(2024, 3, 5, 14, 7, 9)


@pytest.fixture
def store(tmp_path) -> ConfigStore:
    return ConfigStore(tmp_path / "config.toml")


@pytest.fixture
def engine(workspace, destination, hosting, store) -> SnapshotEngine:
    settings = BackupSettings(destination_url=destination)
    service = SnapshotEngine(workspace, hosting, settings=settings, config_store=store, clock=lambda: MOMENT)
    yield service
    service.stop()


class TestSnapshots:
    def test_trigger_snapshot(self, engine, destination):
        result = engine.trigger_snapshot("manual")

        assert result.branch_name in remote_branches(destination)
        assert result.commit_message.endswith(" - manual")

    def test_list_snapshots_newest_first(self, engine, workspace, destination):
        seed_branch(workspace, destination, "v1.0/2024-01-01_00-00-00")
        seed_branch(workspace, destination, "v1.2/2024-03-05_00-00-00")
        seed_branch(workspace, destination, "v1.1/2024-02-10_00-00-00")
        seed_branch(workspace, destination, "feature")

        snapshots = engine.list_snapshots()

        assert [item.version for item in snapshots] == [
            SnapshotVersion(1, 2),
            SnapshotVersion(1, 1),
            SnapshotVersion(1, 0),
        ]

    def test_list_snapshots_requires_destination(self, workspace, hosting):
        engine = SnapshotEngine(workspace, hosting, settings=BackupSettings())
        with pytest.raises(ConfigurationError):
            engine.list_snapshots()

    def test_scheduled_tick_skips_when_destination_busy(self, engine, hosting, destination):
        lock = _flight_lock(destination)
        with lock:
            assert engine.run_scheduled() is None
        assert hosting.list_calls == 0

    def test_scheduled_tick_runs_when_idle(self, engine, destination):
        result = engine.run_scheduled()
        assert result is not None
        assert result.branch_name in remote_branches(destination)

    def test_flight_lock_is_per_destination(self, tmp_path):
        assert _flight_lock("a") is _flight_lock("a")
        assert _flight_lock("a") is not _flight_lock("b")

    def test_restore_latest(self, engine, workspace, destination):
        seed_branch(workspace, destination, "v1.0/2024-01-01_00-00-00")
        seed_branch(workspace, destination, "v1.1/2024-03-05_00-00-00")

        result = engine.restore_latest()

        assert result.branch_name == "v1.1/2024-03-05_00-00-00"


class TestPushCurrentBranch:
    def test_pushes_current_branch(self, engine, destination):
        result = engine.push_current_branch()

        assert result.branch_name == "main"
        assert "main" in remote_branches(destination)
        # A local path has no web page to open a pull request on.
        assert result.pull_request_url is None

    def test_detached_head_is_a_git_error(self, engine, workspace):
        git(workspace, "checkout", "--detach")

        with pytest.raises(GitError) as exc_info:
            engine.push_current_branch()

        assert exc_info.value.phase is Phase.PUSHING

    def test_requires_destination(self, workspace, hosting):
        engine = SnapshotEngine(workspace, hosting, settings=BackupSettings())
        with pytest.raises(ConfigurationError):
            engine.push_current_branch()

    def test_reauthenticates_once_before_pushing(self, engine, hosting, destination):
        hosting.authenticated = False
        hosting.reauthenticate_result = True

        engine.push_current_branch()

        assert hosting.reauthenticate_calls == 1
        assert "main" in remote_branches(destination)

    def test_authentication_failure_pushes_nothing(self, engine, hosting, workspace, destination):
        hosting.authenticated = False
        hosting.reauthenticate_result = False

        with pytest.raises(AuthenticationError) as exc_info:
            engine.push_current_branch()

        assert exc_info.value.phase is Phase.PRECONDITIONS
        assert hosting.reauthenticate_calls == 1
        assert remote_branches(destination) == []
        assert "branchvault_backup" not in git(workspace, "remote").split()


class TestConfiguration:
    def test_set_destination_normalizes_and_persists(self, engine, store):
        normalized = engine.set_destination("  https://github.com/acme/vault/ ")

        assert normalized == "https://github.com/acme/vault"
        assert engine.destination_url == normalized
        assert store.load().destination_url == normalized

    def test_set_destination_rejects_invalid_url(self, engine, store):
        with pytest.raises(ConfigurationError):
            engine.set_destination("not a url")
        assert store.load().destination_url is None

    def test_set_interval_persists_and_reschedules(self, engine, store):
        engine.start()
        old_timer = engine.scheduler._timer

        engine.set_interval(3)

        assert store.load().interval_minutes == 3
        assert engine.scheduler.interval_minutes == 3
        assert engine.scheduler._timer is not old_timer

    def test_create_destination(self, workspace, store):
        hosting = MagicMock()
        hosting.create_private_repository.return_value = "https://github.com/me/backups.git"
        engine = SnapshotEngine(workspace, hosting, settings=BackupSettings(), config_store=store)

        url = engine.create_destination("backups")

        hosting.create_private_repository.assert_called_once_with("backups")
        assert url == "https://github.com/me/backups.git"
        assert store.load().destination_url == url

    def test_check_destination(self, workspace):
        hosting = MagicMock()
        hosting.check_repository_access.return_value = "ok"
        settings = BackupSettings(destination_url="https://github.com/me/backups")
        engine = SnapshotEngine(workspace, hosting, settings=settings)

        assert engine.check_destination() == "ok"
        hosting.check_repository_access.assert_called_once_with("https://github.com/me/backups")

    def test_check_destination_requires_url(self, workspace):
        engine = SnapshotEngine(workspace, MagicMock(), settings=BackupSettings())
        with pytest.raises(ConfigurationError):
            engine.check_destination()
