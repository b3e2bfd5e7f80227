"""Assemble poller components from configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .checker import RepositoryChecker
from .config import ConfigError, SnapPollerConfig
from .directory import FileDirectory, RepositoryDirectory
from .github.client import GitHubClient, Transport
from .github.manifest import ManifestFetcher
from .github.oracle import ChangeOracle
from .poller import PollCycle
from .stores import ResponseCache
from .triggers import BuildTrigger, CommandBuildTrigger, LoggingBuildTrigger


@dataclass
class Runtime:
    """The wired-up components for one configuration."""

    config: SnapPollerConfig
    client: GitHubClient
    cache: ResponseCache
    checker: RepositoryChecker

    def build_cycle(
        self,
        *,
        directory: RepositoryDirectory | None = None,
        build_trigger: BuildTrigger | None = None,
    ) -> PollCycle:
        poll = self.config.poll
        if directory is None:
            if poll.directory is None:
                raise ConfigError("poll.directory must point at a repositories file")
            directory = FileDirectory(poll.directory)
        if build_trigger is None:
            if poll.trigger_command:
                build_trigger = CommandBuildTrigger(poll.trigger_command)
            else:
                build_trigger = LoggingBuildTrigger()
        sink = directory.mark_polled if isinstance(directory, FileDirectory) else None
        return PollCycle(
            directory,
            self.checker,
            build_trigger,
            max_workers=poll.max_workers,
            watermark_sink=sink,
        )

    def close(self) -> None:
        self.cache.persist()


def build_runtime(
    config: SnapPollerConfig,
    *,
    transport: Optional[Transport] = None,
    cache_path: Optional[Path] = None,
) -> Runtime:
    github = config.github
    client = GitHubClient(
        github.api_url,
        token=github.token,
        request_timeout=github.request_timeout,
        transport=transport,
    )
    cache = ResponseCache(cache_path or config.poll.cache_path)
    oracle = ChangeOracle(client, trust_branch_not_modified=github.trust_branch_not_modified)
    fetcher = ManifestFetcher(
        client,
        prefix=github.repository_prefix,
        cache=cache,
        cache_ttl=config.poll.cache_ttl,
    )
    checker = RepositoryChecker(oracle, fetcher, prefix=github.repository_prefix)
    return Runtime(config=config, client=client, cache=cache, checker=checker)


__all__ = ["Runtime", "build_runtime"]
