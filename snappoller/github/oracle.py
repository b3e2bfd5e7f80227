"""Conditional-request change detection against the GitHub API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ..errors import InvalidWatermark, UnsupportedRefKind, UpstreamError
from ..logging import get_logger
from ..models import DefaultBranch, NamedBranch, RepoRef, Tag, Watermark
from ..watermark import http_date, iso_instant, parse_timestamp, to_datetime
from .client import GitHubClient, error_from_response


class ChangeOracle:
    """Answers whether a repository ref moved past a watermark.

    The default branch is checked through the commits listing with ``since``
    and ``If-Modified-Since``. Named branches are checked by comparing the
    branch tip's committer date, since the commits listing only follows the
    default branch. Tags are rejected.
    """

    def __init__(
        self,
        client: GitHubClient,
        *,
        trust_branch_not_modified: bool = True,
    ) -> None:
        self.client = client
        self.trust_branch_not_modified = trust_branch_not_modified
        self.logger = get_logger("oracle")

    def changed_since(self, ref: RepoRef, watermark: Watermark) -> bool:
        moment = to_datetime(watermark)
        kind = ref.kind
        if isinstance(kind, DefaultBranch):
            return self._default_branch_changed(ref, moment)
        if isinstance(kind, NamedBranch):
            return self._named_branch_changed(ref, kind.name, moment)
        if isinstance(kind, Tag):
            raise UnsupportedRefKind(f"{ref.describe()}: tag-pinned sources cannot be polled")
        raise UnsupportedRefKind(f"{ref.describe()}: unknown ref kind {kind!r}")

    # ------------------------------------------------------------------
    # Ref kinds

    def _default_branch_changed(self, ref: RepoRef, moment: datetime) -> bool:
        response = self.client.get(
            GitHubClient.repo_path(ref.owner, ref.name, "commits"),
            params={"since": iso_instant(moment)},
            headers={"If-Modified-Since": http_date(moment)},
        )
        if response.status == 200:
            if not isinstance(response.body, list):
                raise UpstreamError(200, "commits listing is not a list", url=ref.url)
            return len(response.body) > 0
        if response.status == 304:
            return False
        raise error_from_response(response, url=ref.url)

    def _named_branch_changed(self, ref: RepoRef, branch: str, moment: datetime) -> bool:
        response = self.client.get(
            GitHubClient.repo_path(ref.owner, ref.name, "branches", branch),
            headers={"If-Modified-Since": http_date(moment)},
        )
        if response.status == 200:
            committed_at = _committer_date(response.body)
            if committed_at is None:
                raise UpstreamError(200, "branch payload has no committer date", url=ref.url)
            try:
                tip = parse_timestamp(committed_at)
            except InvalidWatermark as exc:
                raise UpstreamError(200, f"invalid committer date {committed_at!r}", url=ref.url) from exc
            return tip > moment
        if response.status == 304:
            if not self.trust_branch_not_modified:
                self.logger.debug(
                    "%s: 304 on branch endpoint treated as changed", ref.describe()
                )
            return not self.trust_branch_not_modified
        raise error_from_response(response, url=ref.url)


def _committer_date(body: Any) -> str | None:
    try:
        value = body["commit"]["commit"]["committer"]["date"]
    except (KeyError, TypeError):
        return None
    return value if isinstance(value, str) and value else None


__all__ = ["ChangeOracle"]
