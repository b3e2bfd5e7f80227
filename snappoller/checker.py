"""Decide whether a snap project needs a rebuild."""

from __future__ import annotations

from typing import Protocol

from .errors import AuthError, PollerError, UpstreamError
from .github.url import DEFAULT_PREFIX, repo_url
from .logging import get_logger
from .models import FAILED, NEEDSBUILD, UNCHANGED, CheckOutcome, RepoRef, SnapcraftYaml, Watermark
from .resolver import ManifestResolver


class Oracle(Protocol):
    def changed_since(self, ref: RepoRef, watermark: Watermark) -> bool: ...


class Fetcher(Protocol):
    def fetch(self, owner: str, name: str) -> SnapcraftYaml: ...


class RepositoryChecker:
    """Checks a project's own repository, then each git part it builds from.

    Checks stop at the first change so a rebuild costs as few API calls as
    possible. A project whose snapcraft.yaml cannot be fetched has no
    dependencies to check and is reported unchanged.
    """

    def __init__(
        self,
        oracle: Oracle,
        fetcher: Fetcher,
        *,
        resolver: ManifestResolver | None = None,
        prefix: str = DEFAULT_PREFIX,
    ) -> None:
        self.oracle = oracle
        self.fetcher = fetcher
        self.prefix = prefix
        self.resolver = resolver or ManifestResolver(prefix)
        self.logger = get_logger("checker")

    def __call__(self, owner: str, name: str, watermark: Watermark) -> bool:
        return self.needs_build(owner, name, watermark)

    def needs_build(self, owner: str, name: str, watermark: Watermark) -> bool:
        primary = RepoRef.from_url(repo_url(owner, name, self.prefix), prefix=self.prefix)
        if self.oracle.changed_since(primary, watermark):
            self.logger.debug("%s/%s: repository changed", owner, name)
            return True
        self.logger.info("%s/%s: unchanged, checking parts ...", owner, name)

        try:
            snapcraft_yaml = self.fetcher.fetch(owner, name)
        except Exception as exc:  # noqa: BLE001 - an unreadable manifest means no parts to check
            self.logger.info("%s/%s: no parts to check (%s)", owner, name, exc)
            return False

        for ref in self.resolver.resolve(snapcraft_yaml.contents):
            if self._dependency_changed(owner, name, ref, watermark):
                self.logger.info("%s/%s: %s changed.", owner, name, ref.describe())
                return True
        return False

    def _dependency_changed(
        self, owner: str, name: str, ref: RepoRef, watermark: Watermark
    ) -> bool:
        try:
            return self.oracle.changed_since(ref, watermark)
        except AuthError:
            raise
        except UpstreamError as exc:
            if exc.status != 404:
                raise
            # A deleted or private part repository cannot trigger a rebuild.
            self.logger.warning(
                "%s/%s: part %s unavailable (%s)", owner, name, ref.describe(), exc.message
            )
            return False

    def check(self, owner: str, name: str, watermark: Watermark) -> CheckOutcome:
        """Run :meth:`needs_build` and fold errors into a ``FAILED`` outcome."""
        try:
            changed = self.needs_build(owner, name, watermark)
        except PollerError as exc:
            return CheckOutcome(owner, name, FAILED, str(exc))
        return CheckOutcome(owner, name, NEEDSBUILD if changed else UNCHANGED)


__all__ = ["Fetcher", "Oracle", "RepositoryChecker"]
