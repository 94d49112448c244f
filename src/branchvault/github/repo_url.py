"""Structured parsing of hosted repository URLs.

Supports:
- HTTPS: https://github.com/owner/repo.git
- SCP-like SSH: git@github.com:owner/repo.git
- SSH URL: ssh://git@github.com/owner/repo.git
- Shorthand: owner/repo (assumed to live on github.com)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from branchvault.backup.errors import ConfigurationError

DEFAULT_HOST = "github.com"

_SCP_LIKE_RE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>.+)$")
_SHORTHAND_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")
_SUPPORTED_SCHEMES = {"http", "https", "ssh", "git"}


class RepoUrlError(ConfigurationError):
    """Raised when a destination URL does not name an owner/repo."""


@dataclass(frozen=True)
class RepoRef:
    host: str
    owner: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def web_url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.repo}"

    def pull_request_url(self, branch: str) -> str:
        return f"{self.web_url}/pull/new/{branch}"


def _split_path(path: str) -> tuple[str, str] | None:
    normalized = path.strip().strip("/")
    if normalized.endswith(".git"):
        normalized = normalized[:-4]
    segments = [segment for segment in normalized.split("/") if segment]
    if len(segments) != 2:
        return None
    return segments[0], segments[1]


def parse_repo_url(url: str) -> RepoRef:
    """Parse ``url`` into a RepoRef or raise RepoUrlError."""
    cleaned = (url or "").strip()
    if not cleaned:
        raise RepoUrlError("Repository URL is empty.")

    parsed = urlparse(cleaned)
    if parsed.scheme and parsed.netloc:
        if parsed.scheme not in _SUPPORTED_SCHEMES:
            raise RepoUrlError(f"Unsupported repository URL scheme '{parsed.scheme}': {url}")
        host = parsed.hostname or ""
        parts = _split_path(parsed.path)
    elif _SHORTHAND_RE.match(cleaned) and not cleaned.startswith((".", "/")):
        host = DEFAULT_HOST
        parts = _split_path(cleaned)
    else:
        match = _SCP_LIKE_RE.match(cleaned)
        if not match:
            raise RepoUrlError(f"Invalid repository URL format: {url}")
        host = match.group("host")
        parts = _split_path(match.group("path"))

    if not host or parts is None:
        raise RepoUrlError(f"Invalid repository URL format (expected owner/repo): {url}")
    owner, repo = parts
    return RepoRef(host=host.lower(), owner=owner, repo=repo)


def normalize_destination(url: str) -> str:
    """Validated, whitespace- and trailing-slash-free destination URL."""
    parse_repo_url(url)
    return url.strip().rstrip("/")


__all__ = ["RepoRef", "RepoUrlError", "normalize_destination", "parse_repo_url"]
