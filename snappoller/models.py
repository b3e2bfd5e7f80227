"""Core data models shared across snappoller components."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from .github.url import DEFAULT_PREFIX, parse_repo_url

Watermark = Union[datetime, int, float, str, None]


@dataclass(frozen=True)
class DefaultBranch:
    """Track whatever the repository's primary branch is."""


@dataclass(frozen=True)
class NamedBranch:
    """Track an explicit ``source-branch``."""

    name: str


@dataclass(frozen=True)
class Tag:
    """A ``source-tag`` pin. Never checkable."""

    name: str


RefKind = Union[DefaultBranch, NamedBranch, Tag]


@dataclass(frozen=True)
class RepoRef:
    """A hosted git repository plus the ref that should be watched.

    Identity is ``(url, kind)``; owner and name are derived from the URL and
    take no part in comparisons.
    """

    url: str
    kind: RefKind = field(default_factory=DefaultBranch)
    owner: str = field(default="", compare=False)
    name: str = field(default="", compare=False)

    @classmethod
    def from_url(
        cls,
        url: str,
        kind: RefKind | None = None,
        *,
        prefix: str = DEFAULT_PREFIX,
    ) -> "RepoRef":
        owner, name = parse_repo_url(url, prefix)
        return cls(url=url, kind=kind or DefaultBranch(), owner=owner, name=name)

    @classmethod
    def from_part(
        cls,
        source: str,
        branch: str | None = None,
        tag: str | None = None,
        *,
        prefix: str = DEFAULT_PREFIX,
    ) -> "RepoRef":
        kind: RefKind
        if tag:
            kind = Tag(tag)
        elif branch:
            kind = NamedBranch(branch)
        else:
            kind = DefaultBranch()
        return cls.from_url(source, kind, prefix=prefix)

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    def describe(self) -> str:
        if isinstance(self.kind, NamedBranch):
            return f"{self.url}@{self.kind.name}"
        if isinstance(self.kind, Tag):
            return f"{self.url}#{self.kind.name}"
        return self.url


@dataclass(frozen=True)
class TrackedProject:
    """Read-only view of an entry in the tracked-repository directory."""

    owner: str
    name: str
    last_polled_at: Watermark
    snapcraft_name: Optional[str] = None
    store_name: Optional[str] = None

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass
class SnapcraftYaml:
    """Parsed snapcraft.yaml together with where it was found."""

    contents: Optional[Dict[str, Any]]
    path: Optional[str]
    error: Optional[str] = None


NEEDSBUILD = "NEEDSBUILD"
UNCHANGED = "UNCHANGED"
FAILED = "FAILED"
SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class CheckOutcome:
    """Per-project result of a poll."""

    owner: str
    name: str
    status: str
    message: Optional[str] = None

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    def describe(self) -> str:
        if self.status == FAILED:
            return f"{self.slug}: {FAILED} ({self.message})"
        if self.message:
            return f"{self.slug}: {self.status} ({self.message})"
        return f"{self.slug}: {self.status}"


@dataclass
class PollReport:
    """Summary of one poll cycle."""

    outcomes: List[CheckOutcome]
    started_at: datetime
    finished_at: datetime
    cancelled: bool = False

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    def needs_watermark_advance(self) -> List[Tuple[str, str]]:
        """Projects that were rebuilt and whose watermark should move forward."""
        return [
            (outcome.owner, outcome.name)
            for outcome in self.outcomes
            if outcome.status == NEEDSBUILD
        ]


__all__ = [
    "CheckOutcome",
    "DefaultBranch",
    "FAILED",
    "NEEDSBUILD",
    "NamedBranch",
    "PollReport",
    "RefKind",
    "RepoRef",
    "SKIPPED",
    "SnapcraftYaml",
    "Tag",
    "TrackedProject",
    "UNCHANGED",
    "Watermark",
]
