"""Extract pollable part repositories from a parsed snapcraft.yaml."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Set

from .errors import InvalidRepositoryUrl
from .github.url import DEFAULT_PREFIX, is_hosted
from .logging import get_logger
from .models import RepoRef


class ManifestResolver:
    """Turns ``parts`` entries into de-duplicated :class:`RepoRef` values.

    Only parts sourced from the configured hosting prefix are kept. Parts
    pinned with ``source-tag`` are dropped even when ``source-branch`` is
    also set; tag-pinned sources cannot be polled.
    """

    def __init__(self, prefix: str = DEFAULT_PREFIX) -> None:
        self.prefix = prefix
        self.logger = get_logger("resolver")

    def resolve(self, manifest: Optional[Mapping[str, Any]]) -> List[RepoRef]:
        if not isinstance(manifest, Mapping):
            return []
        parts = manifest.get("parts")
        if not isinstance(parts, Mapping):
            return []

        refs: List[RepoRef] = []
        seen: Set[RepoRef] = set()
        for part_name, part in parts.items():
            ref = self._resolve_part(str(part_name), part)
            if ref is None or ref in seen:
                continue
            seen.add(ref)
            refs.append(ref)
        return refs

    def _resolve_part(self, part_name: str, part: Any) -> Optional[RepoRef]:
        if not isinstance(part, Mapping):
            self.logger.debug("part %s: not a mapping, skipping", part_name)
            return None
        source = part.get("source")
        if not isinstance(source, str) or not source:
            self.logger.debug("part %s: no source, skipping", part_name)
            return None
        if not is_hosted(source, self.prefix):
            self.logger.debug("part %s: %s is not hosted under %s", part_name, source, self.prefix)
            return None
        if part.get("source-tag"):
            self.logger.debug("part %s: tag-pinned sources are not polled", part_name)
            return None

        branch = part.get("source-branch")
        try:
            return RepoRef.from_part(
                source,
                str(branch) if branch else None,
                prefix=self.prefix,
            )
        except InvalidRepositoryUrl as exc:
            self.logger.debug("part %s: %s", part_name, exc)
            return None


def extract_parts_to_poll(
    manifest: Optional[Mapping[str, Any]], prefix: str = DEFAULT_PREFIX
) -> List[RepoRef]:
    """Convenience wrapper around :meth:`ManifestResolver.resolve`."""
    return ManifestResolver(prefix).resolve(manifest)


__all__ = ["ManifestResolver", "extract_parts_to_poll"]
