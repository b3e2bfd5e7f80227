"""Exception hierarchy for the change-detection engine."""

from __future__ import annotations

from typing import Optional


class PollerError(RuntimeError):
    """Base class for errors raised while checking repositories."""


class InvalidWatermark(PollerError):
    """Raised when the last-polled timestamp is missing or unparseable."""


class InvalidRepositoryUrl(PollerError):
    """Raised when a URL does not point at a repository on the configured host."""


class UnsupportedRefKind(PollerError):
    """Raised for references that cannot be checked (tag-pinned sources)."""


class UpstreamError(PollerError):
    """Unexpected response from the hosting API.

    ``status`` is ``None`` when no response was received at all (timeouts,
    connection failures).
    """

    def __init__(self, status: Optional[int], message: str, *, url: str | None = None) -> None:
        self.status = status
        self.message = message
        self.url = url
        prefix = url or "GitHub API"
        if status is None:
            super().__init__(f"{prefix}: {message}")
        else:
            super().__init__(f"{prefix} ({status}): {message}")


class AuthError(UpstreamError):
    """The hosting API rejected the configured credentials."""


class ManifestError(PollerError):
    """Base class for snapcraft.yaml fetch failures."""


class ManifestNotFound(ManifestError):
    """No snapcraft.yaml exists in any of the known locations."""


class ManifestParseError(ManifestError):
    """snapcraft.yaml exists but is not a YAML mapping."""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Failed to parse {path}: {detail}")


__all__ = [
    "AuthError",
    "InvalidRepositoryUrl",
    "InvalidWatermark",
    "ManifestError",
    "ManifestNotFound",
    "ManifestParseError",
    "PollerError",
    "UnsupportedRefKind",
    "UpstreamError",
]
