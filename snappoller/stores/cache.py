"""Key-value response cache with per-entry TTL."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..logging import get_logger

_CACHE_VERSION = 1

logger = get_logger("cache")


class ResponseCache:
    """Stores JSON-serialisable values keyed by string with an expiry.

    Entries survive process restarts when a ``path`` is given and
    :meth:`persist` is called. Expired entries are dropped lazily on read.
    """

    def __init__(
        self,
        path: Path | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._path = path
        self._clock = clock
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._dirty = False
        if self._path is not None:
            self._load(self._path)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at = entry.get("expires_at")
            if isinstance(expires_at, (int, float)) and expires_at <= self._clock():
                del self._entries[key]
                self._dirty = True
                return None
            return entry.get("value")

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._entries[key] = {"value": value, "expires_at": expires_at}
            self._dirty = True

    def delete(self, key: str) -> None:
        with self._lock:
            if self._entries.pop(key, None) is not None:
                self._dirty = True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._dirty = True

    def persist(self) -> None:
        with self._lock:
            if not self._dirty or self._path is None:
                return
            now = self._clock()
            live = {
                key: entry
                for key, entry in self._entries.items()
                if entry.get("expires_at") is None or entry["expires_at"] > now
            }
            payload = {"version": _CACHE_VERSION, "entries": live}
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
            self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable cache file %s: %s", path, exc)
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            return
        entries = data.get("entries")
        if not isinstance(entries, dict):
            return
        for key, raw in entries.items():
            if not isinstance(key, str) or not isinstance(raw, dict) or "value" not in raw:
                continue
            expires_at = raw.get("expires_at")
            if expires_at is not None and not isinstance(expires_at, (int, float)):
                continue
            self._entries[key] = {"value": raw["value"], "expires_at": expires_at}


__all__ = ["ResponseCache"]
