"""GitHub collaborator: repository URL parsing, token storage and the API client."""

from .repo_url import RepoRef, RepoUrlError, normalize_destination, parse_repo_url

__all__ = ["RepoRef", "RepoUrlError", "normalize_destination", "parse_repo_url"]
