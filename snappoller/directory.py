"""Tracked-repository directories consumed by the poll cycle."""

from __future__ import annotations

import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence

import yaml

from .errors import PollerError
from .logging import get_logger
from .models import TrackedProject


class DirectoryError(PollerError):
    """Raised when the directory cannot be read; aborts the whole cycle."""


class RepositoryDirectory(Protocol):
    def fetch_all(self) -> Sequence[TrackedProject]: ...


class FileDirectory:
    """Directory backed by a YAML file listing tracked repositories.

    Expected layout::

        repositories:
          - owner: anowner
            name: aname
            last_polled_at: 2017-08-03T12:13:20Z
            snapcraft_name: asnap
            store_name: asnap
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()
        self.logger = get_logger("directory")

    def fetch_all(self) -> List[TrackedProject]:
        with self._lock:
            entries = self._read_entries()
        projects: List[TrackedProject] = []
        for index, entry in enumerate(entries):
            owner = entry.get("owner")
            name = entry.get("name")
            if not isinstance(owner, str) or not isinstance(name, str) or not owner or not name:
                self.logger.warning("%s: entry %d has no owner/name, ignoring", self.path, index)
                continue
            projects.append(
                TrackedProject(
                    owner=owner,
                    name=name,
                    last_polled_at=entry.get("last_polled_at"),
                    snapcraft_name=_as_optional_str(entry.get("snapcraft_name")),
                    store_name=_as_optional_str(entry.get("store_name")),
                )
            )
        return projects

    def mark_polled(self, owner: str, name: str, when: datetime) -> bool:
        """Advance the watermark of ``owner/name``; return False if not tracked."""
        with self._lock:
            data = self._read_document()
            for entry in _entries_of(data):
                if entry.get("owner") == owner and entry.get("name") == name:
                    entry["last_polled_at"] = when
                    self.path.write_text(
                        yaml.safe_dump(data, sort_keys=False), encoding="utf-8"
                    )
                    return True
        return False

    # ------------------------------------------------------------------
    # Helpers

    def _read_entries(self) -> List[Dict[str, Any]]:
        return _entries_of(self._read_document())

    def _read_document(self) -> Dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DirectoryError(f"Cannot read repository directory {self.path}: {exc}") from exc
        try:
            data = yaml.safe_load(text) if text.strip() else {}
        except yaml.YAMLError as exc:
            raise DirectoryError(f"Failed to parse {self.path.name}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise DirectoryError(f"{self.path.name} must contain a mapping at the root")
        return data


def _entries_of(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    entries = data.get("repositories")
    if not isinstance(entries, list):
        return []
    return [entry for entry in entries if isinstance(entry, dict)]


def _as_optional_str(value: Any) -> str | None:
    return str(value) if isinstance(value, (str, int)) and not isinstance(value, bool) else None


__all__ = ["DirectoryError", "FileDirectory", "RepositoryDirectory"]
