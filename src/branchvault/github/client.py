"""Authenticated GitHub REST client handle.

The client is an explicit object handed to the engine; there is no
process-wide instance. ``reauthenticate()`` is the one place the token is
reloaded from its source.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from typing import Optional

import httpx
import truststore

from branchvault.backup.errors import AuthenticationError
from branchvault.config import DEFAULT_API_URL
from branchvault.github.credentials import TokenStore
from branchvault.github.repo_url import RepoUrlError, parse_repo_url

logger = logging.getLogger(__name__)


class GitHubAPIError(Exception):
    """Non-success response from the GitHub API."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class RepositoryAccess:
    ok: bool
    message: str


class GitHubClient:
    """Thin GitHub API wrapper used for branch listing and repository provisioning."""

    def __init__(
        self,
        token_store: TokenStore | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 15.0,
    ):
        self.token_store = token_store or TokenStore()
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._token: Optional[str] = self.token_store.get_token()
        self._http_client: Optional[httpx.Client] = None

    def _get_http_client(self) -> httpx.Client:
        if self._http_client is None:
            ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            self._http_client = httpx.Client(verify=ssl_context, timeout=self.timeout)
        return self._http_client

    def close(self):
        if self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _request(self, method: str, path_or_url: str, **kwargs) -> httpx.Response:
        url = path_or_url if path_or_url.startswith("http") else f"{self.api_url}{path_or_url}"
        try:
            return self._get_http_client().request(method, url, headers=self._headers(), **kwargs)
        except httpx.RequestError as exc:
            raise GitHubAPIError(f"Cannot reach GitHub API: {exc}") from exc

    # ── Authentication ────────────────────────────────────────────

    def get_authenticated_user(self) -> str:
        if not self._token:
            raise AuthenticationError("No GitHub token configured.")
        try:
            response = self._request("GET", "/user")
        except GitHubAPIError as exc:
            raise AuthenticationError(str(exc)) from exc
        if response.status_code in (401, 403):
            raise AuthenticationError("GitHub rejected the token: invalid or expired.")
        if response.status_code != 200:
            raise AuthenticationError(f"GitHub API error: {response.status_code}")
        try:
            return response.json()["login"]
        except (ValueError, KeyError) as exc:
            raise AuthenticationError("Invalid GitHub API response") from exc

    def is_authenticated(self) -> bool:
        try:
            self.get_authenticated_user()
        except AuthenticationError:
            return False
        return True

    def reauthenticate(self) -> bool:
        """Reload the token from its source and probe it once."""
        self._token = self.token_store.get_token()
        self.close()
        return self.is_authenticated()

    def set_token(self, token: str) -> str:
        """Validate and persist ``token``; returns the login it belongs to."""
        self._token = token.strip()
        username = self.get_authenticated_user()
        self.token_store.save(self._token, username=username)
        return username

    def clear_token(self) -> None:
        self.token_store.clear()
        self._token = None

    # ── Repositories ──────────────────────────────────────────────

    def list_branches(self, url: str, prefix: str = "v") -> list[str]:
        """Branch names in the repository at ``url`` starting with ``prefix``."""
        ref = parse_repo_url(url)
        path = f"/repos/{ref.owner}/{ref.repo}/git/matching-refs/heads/{prefix}"
        response = self._request("GET", path, params={"per_page": 100})
        names: list[str] = []
        while True:
            if response.status_code == 409:
                # Empty repository: no refs at all yet.
                return []
            if response.status_code != 200:
                raise GitHubAPIError(
                    f"Failed to list branches for {ref.slug}: {response.status_code}",
                    status_code=response.status_code,
                )
            for item in response.json():
                name = str(item.get("ref", "")).removeprefix("refs/heads/")
                if name:
                    names.append(name)
            next_url = response.links.get("next", {}).get("url")
            if not next_url:
                break
            response = self._request("GET", next_url)
        logger.debug("Found %d branch(es) with prefix %r in %s", len(names), prefix, ref.slug)
        return names

    def create_private_repository(self, name: str) -> str:
        response = self._request(
            "POST",
            "/user/repos",
            json={"name": name, "private": True, "auto_init": True},
        )
        if response.status_code in (401, 403):
            raise AuthenticationError("GitHub authentication required to create a repository.")
        if response.status_code != 201:
            detail = ""
            try:
                detail = response.json().get("message", "")
            except ValueError:
                pass
            raise GitHubAPIError(
                f"Failed to create repository {name}: {detail or response.status_code}",
                status_code=response.status_code,
            )
        data = response.json()
        return data.get("clone_url") or data["html_url"]

    def check_repository_access(self, url: str) -> RepositoryAccess:
        try:
            ref = parse_repo_url(url)
        except RepoUrlError:
            return RepositoryAccess(False, f"Invalid repository URL format: {url}")
        try:
            response = self._request("GET", f"/repos/{ref.owner}/{ref.repo}")
        except GitHubAPIError as exc:
            return RepositoryAccess(False, str(exc))
        if response.status_code == 200:
            return RepositoryAccess(True, "Repository accessible.")
        if response.status_code == 404:
            return RepositoryAccess(False, f"Repository not found: {ref.slug}")
        if response.status_code in (401, 403):
            return RepositoryAccess(False, f"Access denied to repository {ref.slug}. Check token permissions.")
        return RepositoryAccess(False, f"Failed to access repository {ref.slug}: {response.status_code}")


__all__ = ["GitHubAPIError", "GitHubClient", "RepositoryAccess"]
