"""GitHub API adapters: URL helpers, HTTP client, change oracle, manifest fetcher."""

from .url import DEFAULT_PREFIX, is_hosted, parse_repo_url, repo_url

__all__ = ["DEFAULT_PREFIX", "is_hosted", "parse_repo_url", "repo_url"]
