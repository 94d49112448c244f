"""Interface the engine needs from the hosting service.

The engine never talks HTTP itself; it is handed an authenticated client
implementing this protocol (see ``branchvault.github.client``).
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from .errors import Phase


@runtime_checkable
class HostingService(Protocol):
    def is_authenticated(self) -> bool:
        """Whether the held credential is currently accepted."""
        ...

    def reauthenticate(self) -> bool:
        """Reload the credential and probe again; True when it now works."""
        ...

    def list_branches(self, url: str, prefix: str = "v") -> list[str]:
        """Branch names at the destination starting with ``prefix``."""
        ...


@runtime_checkable
class RepositoryHost(HostingService, Protocol):
    """Hosting service that can also provision and inspect repositories."""

    def create_private_repository(self, name: str) -> str:
        ...

    def check_repository_access(self, url: str) -> Any:
        ...


ProgressCallback = Callable[[Phase, str], None]


def _no_progress(phase: Phase, detail: str) -> None:
    return None


__all__ = ["HostingService", "ProgressCallback", "RepositoryHost"]
