"""Fetch and parse snapcraft.yaml from a GitHub repository."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence

import yaml

from ..errors import ManifestNotFound, ManifestParseError
from ..logging import get_logger
from ..models import SnapcraftYaml
from .client import GitHubClient, error_from_response
from .url import DEFAULT_PREFIX, repo_url

SNAPCRAFT_PATHS: Sequence[str] = ("snap/snapcraft.yaml", "snapcraft.yaml", ".snapcraft.yaml")
DEFAULT_CACHE_TTL = 3600.0


class Cache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None: ...

    def delete(self, key: str) -> None: ...


def snapcraft_yaml_cache_id(repository_url: str) -> str:
    return f"snapcraft_data:{repository_url}"


class ManifestFetcher:
    """Locates snapcraft.yaml in the known places and parses it with PyYAML."""

    def __init__(
        self,
        client: GitHubClient,
        *,
        prefix: str = DEFAULT_PREFIX,
        cache: Cache | None = None,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        paths: Sequence[str] = SNAPCRAFT_PATHS,
    ) -> None:
        self.client = client
        self.prefix = prefix
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.paths = tuple(paths)
        self.logger = get_logger("manifest")

    def fetch(self, owner: str, name: str) -> SnapcraftYaml:
        """Return the parsed manifest for ``owner/name``.

        Raises :class:`ManifestNotFound` when none of the candidate paths
        exist and :class:`ManifestParseError` when the file is not a mapping.
        """
        cache_id = snapcraft_yaml_cache_id(repo_url(owner, name, self.prefix))
        cached = self._cache_get(cache_id)
        if isinstance(cached, dict) and "contents" in cached:
            return SnapcraftYaml(contents=cached["contents"], path=cached.get("path"))

        for path in self.paths:
            response = self.client.get(
                f"{GitHubClient.repo_path(owner, name, 'contents')}/{path}",
                raw=True,
            )
            if response.status == 404:
                continue
            if response.status != 200:
                raise error_from_response(response, url=f"{owner}/{name}")
            contents = _parse_manifest(path, response.body)
            self._cache_set(cache_id, {"contents": contents, "path": path})
            return SnapcraftYaml(contents=contents, path=path)

        raise ManifestNotFound(f"{owner}/{name}: snapcraft.yaml not found")

    def invalidate(self, owner: str, name: str) -> None:
        if self.cache is not None:
            self.cache.delete(snapcraft_yaml_cache_id(repo_url(owner, name, self.prefix)))

    # ------------------------------------------------------------------
    # Cache access; cache outages must not break polling.

    def _cache_get(self, key: str) -> Optional[Any]:
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except Exception as exc:  # noqa: BLE001 - cache backends vary
            self.logger.error("Error getting %s from cache: %s", key, exc)
            return None

    def _cache_set(self, key: str, value: Any) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(key, value, self.cache_ttl)
        except Exception as exc:  # noqa: BLE001 - cache backends vary
            self.logger.error("Error storing %s in cache: %s", key, exc)


def _parse_manifest(path: str, body: Any) -> Dict[str, Any]:
    if body is None:
        raise ManifestParseError(path, "file is empty")
    if not isinstance(body, str):
        raise ManifestParseError(path, "unexpected response payload")
    try:
        loaded = yaml.safe_load(body)
    except yaml.YAMLError as exc:
        raise ManifestParseError(path, str(exc)) from exc
    if not isinstance(loaded, dict):
        raise ManifestParseError(path, "root must be a mapping")
    return loaded


__all__ = [
    "Cache",
    "ManifestFetcher",
    "SNAPCRAFT_PATHS",
    "snapcraft_yaml_cache_id",
]
