"""Unit tests for GitHubClient."""

from __future__ import annotations

from unittest.mock import Mock, patch

import httpx
import pytest

from branchvault.backup.errors import AuthenticationError
from branchvault.github.client import GitHubAPIError, GitHubClient
from branchvault.github.credentials import TokenStore


def _response(status_code: int, payload=None, links=None) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    response.links = links or {}
    return response


@pytest.fixture
def token_store(tmp_path) -> TokenStore:
    store = TokenStore(tmp_path / ".branchvault" / "credentials")
    store.save("ghp_stored")
    return store


@pytest.fixture
def client(token_store) -> GitHubClient:
    return GitHubClient(token_store, api_url="https://api.example.com/")


class TestAuthentication:
    def test_authenticated_user(self, client):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(200, {"login": "octocat"})

            assert client.get_authenticated_user() == "octocat"

            method, url = mock_client.return_value.request.call_args.args
            headers = mock_client.return_value.request.call_args.kwargs["headers"]
            assert (method, url) == ("GET", "https://api.example.com/user")
            assert headers["Authorization"] == "Bearer ghp_stored"

    def test_rejected_token(self, client):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(401)

            with pytest.raises(AuthenticationError):
                client.get_authenticated_user()
            assert client.is_authenticated() is False

    def test_network_error_is_not_authenticated(self, client):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.side_effect = httpx.RequestError("Connection failed")

            assert client.is_authenticated() is False

    def test_no_token(self, tmp_path):
        client = GitHubClient(TokenStore(tmp_path / "none"))
        assert client.has_token is False
        with pytest.raises(AuthenticationError):
            client.get_authenticated_user()

    def test_reauthenticate_reloads_token(self, client, token_store):
        token_store.save("ghp_rotated")
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(200, {"login": "octocat"})

            assert client.reauthenticate() is True

            headers = mock_client.return_value.request.call_args.kwargs["headers"]
            assert headers["Authorization"] == "Bearer ghp_rotated"

    def test_set_token_validates_before_saving(self, client, token_store):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(200, {"login": "octocat"})

            assert client.set_token(" ghp_new ") == "octocat"

        assert token_store.stored_token() == "ghp_new"
        assert token_store.get_username() == "octocat"

    def test_set_token_rejected_is_not_saved(self, client, token_store):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(403)

            with pytest.raises(AuthenticationError):
                client.set_token("ghp_bad")

        assert token_store.stored_token() == "ghp_stored"

    def test_clear_token(self, client, token_store):
        client.clear_token()
        assert client.has_token is False
        assert token_store.stored_token() is None


class TestListBranches:
    def test_follows_pagination(self, client):
        first = _response(
            200,
            [{"ref": "refs/heads/v1.0/2024-01-01_00-00-00"}],
            links={"next": {"url": "https://api.example.com/page2"}},
        )
        second = _response(200, [{"ref": "refs/heads/v1.1/2024-01-02_00-00-00"}])
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.side_effect = [first, second]

            names = client.list_branches("git@github.com:acme/vault.git")

            assert names == ["v1.0/2024-01-01_00-00-00", "v1.1/2024-01-02_00-00-00"]
            calls = mock_client.return_value.request.call_args_list
            assert calls[0].args[1] == "https://api.example.com/repos/acme/vault/git/matching-refs/heads/v"
            assert calls[1].args[1] == "https://api.example.com/page2"

    def test_empty_repository(self, client):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(409)

            assert client.list_branches("acme/vault") == []

    def test_error_keeps_status_code(self, client):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(404)

            with pytest.raises(GitHubAPIError) as exc_info:
                client.list_branches("acme/vault")

            assert exc_info.value.status_code == 404


class TestRepositories:
    def test_create_private_repository(self, client):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(
                201, {"clone_url": "https://github.com/octocat/backups.git", "html_url": "https://github.com/octocat/backups"}
            )

            url = client.create_private_repository("backups")

            assert url == "https://github.com/octocat/backups.git"
            body = mock_client.return_value.request.call_args.kwargs["json"]
            assert body == {"name": "backups", "private": True, "auto_init": True}

    def test_create_conflict(self, client):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(422, {"message": "name already exists"})

            with pytest.raises(GitHubAPIError) as exc_info:
                client.create_private_repository("backups")

            assert "name already exists" in str(exc_info.value)

    @pytest.mark.parametrize(
        "status_code,ok,fragment",
        [
            (200, True, "accessible"),
            (404, False, "not found"),
            (403, False, "Access denied"),
            (500, False, "500"),
        ],
    )
    def test_check_repository_access(self, client, status_code, ok, fragment):
        with patch.object(client, "_get_http_client") as mock_client:
            mock_client.return_value.request.return_value = _response(status_code)

            access = client.check_repository_access("https://github.com/acme/vault")

            assert access.ok is ok
            assert fragment in access.message

    def test_check_invalid_url(self, client):
        access = client.check_repository_access("nope")
        assert access.ok is False
        assert "Invalid repository URL format" in access.message


class TestLifecycle:
    def test_context_manager_closes_http_client(self, client):
        with client:
            http_client = client._get_http_client()
        assert client._http_client is None
        assert http_client.is_closed
