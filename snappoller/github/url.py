"""Helpers for GitHub repository URLs."""

from __future__ import annotations

from typing import Tuple

from ..errors import InvalidRepositoryUrl

DEFAULT_PREFIX = "https://github.com/"


def _normalize_prefix(prefix: str) -> str:
    return prefix if prefix.endswith("/") else f"{prefix}/"


def is_hosted(url: str | None, prefix: str = DEFAULT_PREFIX) -> bool:
    """Return True when ``url`` lives under the configured hosting root."""
    if not url:
        return False
    return url.startswith(_normalize_prefix(prefix))


def parse_repo_url(url: str, prefix: str = DEFAULT_PREFIX) -> Tuple[str, str]:
    """Split ``https://github.com/<owner>/<name>[.git]`` into ``(owner, name)``."""
    root = _normalize_prefix(prefix)
    if not url or not url.startswith(root):
        raise InvalidRepositoryUrl(f"{url!r} is not a repository under {root}")

    path = url[len(root):].strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    segments = path.split("/")
    if len(segments) != 2 or not all(segments):
        raise InvalidRepositoryUrl(f"{url!r} does not name an owner/name repository")
    owner, name = segments
    return owner, name


def repo_url(owner: str, name: str, prefix: str = DEFAULT_PREFIX) -> str:
    """Build the canonical repository URL for ``owner/name``."""
    return f"{_normalize_prefix(prefix)}{owner}/{name}"


__all__ = ["DEFAULT_PREFIX", "is_hosted", "parse_repo_url", "repo_url"]
