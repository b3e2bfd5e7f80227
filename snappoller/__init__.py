"""snappoller: rebuild snaps whose repository or git parts changed."""

from .checker import RepositoryChecker
from .errors import (
    AuthError,
    InvalidRepositoryUrl,
    InvalidWatermark,
    ManifestError,
    ManifestNotFound,
    ManifestParseError,
    PollerError,
    UnsupportedRefKind,
    UpstreamError,
)
from .github.oracle import ChangeOracle
from .models import DefaultBranch, NamedBranch, RepoRef, Tag, TrackedProject
from .poller import PollCycle, is_pollable
from .resolver import ManifestResolver

__version__ = "0.1.0"

__all__ = [
    "AuthError",
    "ChangeOracle",
    "DefaultBranch",
    "InvalidRepositoryUrl",
    "InvalidWatermark",
    "ManifestError",
    "ManifestNotFound",
    "ManifestParseError",
    "ManifestResolver",
    "NamedBranch",
    "PollCycle",
    "PollerError",
    "RepoRef",
    "RepositoryChecker",
    "Tag",
    "TrackedProject",
    "UnsupportedRefKind",
    "UpstreamError",
    "is_pollable",
]
