"""
Snapshot and restore engine.

Captures a working tree as immutable ``v<major>.<minor>/<timestamp>``
branches on a dedicated backup remote and restores it later:
- VersionAllocator / SnapshotNamer for branch identity
- RemoteBinder for the reserved remote alias
- SnapshotCommitter / RestoreCoordinator for the two operations
- BackupScheduler for periodic snapshots
- SnapshotEngine as the caller-facing facade

The facade pulls in configuration and the hosting client, so it is
resolved lazily via __getattr__; importing the leaf modules stays cheap.
"""

from .errors import (
    AuthenticationError,
    BranchVaultError,
    ConfigurationError,
    ErrorKind,
    GitError,
    OperationCancelledError,
    Phase,
    SnapshotNotFoundError,
)
from .naming import SnapshotBranch, SnapshotNamer, latest_snapshot, parse_snapshot_branch
from .versioning import SnapshotVersion, VersionAllocator

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "SnapshotCommitter": (".committer", "SnapshotCommitter"),
    "SnapshotResult": (".committer", "SnapshotResult"),
    "RestoreCoordinator": (".restore", "RestoreCoordinator"),
    "RestoreResult": (".restore", "RestoreResult"),
    "RemoteBinder": (".remote", "RemoteBinder"),
    "IndexRecoveryGuard": (".index_guard", "IndexRecoveryGuard"),
    "BackupScheduler": (".scheduler", "BackupScheduler"),
    "SnapshotEngine": (".engine", "SnapshotEngine"),
    "PushResult": (".engine", "PushResult"),
}


def __getattr__(name: str):
    if name in _LAZY_IMPORTS:
        module_path, attr = _LAZY_IMPORTS[name]
        import importlib

        mod = importlib.import_module(module_path, __name__)
        return getattr(mod, attr)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AuthenticationError",
    "BackupScheduler",
    "BranchVaultError",
    "ConfigurationError",
    "ErrorKind",
    "GitError",
    "IndexRecoveryGuard",
    "OperationCancelledError",
    "Phase",
    "PushResult",
    "RemoteBinder",
    "RestoreCoordinator",
    "RestoreResult",
    "SnapshotBranch",
    "SnapshotCommitter",
    "SnapshotEngine",
    "SnapshotNamer",
    "SnapshotNotFoundError",
    "SnapshotResult",
    "SnapshotVersion",
    "VersionAllocator",
    "latest_snapshot",
    "parse_snapshot_branch",
]
