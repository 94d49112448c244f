"""Storage of the hosting-service token in ~/.branchvault/credentials."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import toml
from filelock import FileLock, Timeout

from branchvault.config import branchvault_dir

TOKEN_ENV_VARS = ("GH_TOKEN", "GITHUB_TOKEN")


class TokenStore:
    """Manages the stored API token in TOML format with 600 permissions."""

    def __init__(self, credentials_path: Path | None = None):
        self.credentials_path = credentials_path or branchvault_dir() / "credentials"
        self.lock_path = self.credentials_path.with_suffix(".lock")

    def _acquire_lock(self) -> FileLock:
        return FileLock(self.lock_path, timeout=10)

    def load(self) -> Optional[dict]:
        """Load credentials from TOML file. Returns None if not exists or invalid."""
        if not self.credentials_path.exists():
            return None
        try:
            with self._acquire_lock():
                with open(self.credentials_path, "r") as handle:
                    return toml.load(handle)
        except (toml.TomlDecodeError, OSError, Timeout):
            return None

    def save(self, token: str, username: str | None = None) -> None:
        self.credentials_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        data = {"github": {"token": token}}
        if username:
            data["github"]["username"] = username
        try:
            with self._acquire_lock():
                with open(self.credentials_path, "w") as handle:
                    toml.dump(data, handle)
                if os.name != "nt":
                    os.chmod(self.credentials_path, 0o600)
        except Timeout as exc:
            raise RuntimeError(
                "Cannot acquire lock on credentials file. Another process may be using it."
            ) from exc

    def clear(self) -> None:
        try:
            with self._acquire_lock():
                if self.credentials_path.exists():
                    self.credentials_path.unlink()
        except Timeout as exc:
            raise RuntimeError(
                "Cannot acquire lock on credentials file. Another process may be using it."
            ) from exc

    def stored_token(self) -> Optional[str]:
        data = self.load()
        if not data or not isinstance(data.get("github"), dict):
            return None
        token = data["github"].get("token")
        return token.strip() if isinstance(token, str) and token.strip() else None

    def get_username(self) -> Optional[str]:
        data = self.load()
        if not data or not isinstance(data.get("github"), dict):
            return None
        return data["github"].get("username")

    def get_token(self) -> Optional[str]:
        """Token from the environment first, then the credentials file."""
        for name in TOKEN_ENV_VARS:
            value = (os.getenv(name) or "").strip()
            if value:
                return value
        return self.stored_token()


__all__ = ["TOKEN_ENV_VARS", "TokenStore"]
