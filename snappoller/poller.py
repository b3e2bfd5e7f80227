"""Serialized poll cycle over the tracked-repository directory."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Callable, List, Optional, Sequence

from .directory import RepositoryDirectory
from .errors import AuthError
from .logging import get_logger, log_outcome
from .models import (
    FAILED,
    NEEDSBUILD,
    SKIPPED,
    UNCHANGED,
    CheckOutcome,
    PollReport,
    TrackedProject,
    Watermark,
)
from .triggers import BuildTrigger

Checker = Callable[[str, str, Watermark], bool]
Eligibility = Callable[[TrackedProject], bool]
WatermarkSink = Callable[[str, str, datetime], object]


def is_pollable(project: TrackedProject) -> bool:
    """Projects without a snap name yet, or registered under another store name, are skipped."""
    if not project.snapcraft_name:
        return False
    if project.store_name and project.store_name != project.snapcraft_name:
        return False
    return True


class PollCycle:
    """Checks every tracked project once and requests builds for changed ones.

    Cycles never overlap: the guard is shared by every instance in the
    process, so a second trigger arriving while a slow cycle is running either
    waits for it (``blocking=True``) or is dropped.
    """

    _guard = threading.Lock()

    def __init__(
        self,
        directory: RepositoryDirectory,
        checker: Checker,
        build_trigger: BuildTrigger,
        *,
        eligibility: Eligibility = is_pollable,
        max_workers: int = 1,
        watermark_sink: WatermarkSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.directory = directory
        self.checker = checker
        self.build_trigger = build_trigger
        self.eligibility = eligibility
        self.max_workers = max(1, int(max_workers))
        self.watermark_sink = watermark_sink
        self._clock = clock or (lambda: datetime.now(UTC))
        self._cancel = threading.Event()
        self.logger = get_logger("poller")

    @property
    def in_progress(self) -> bool:
        return self._guard.locked()

    def cancel(self) -> None:
        """Ask the running cycle to stop before starting its next project."""
        self._cancel.set()

    def run(self, *, blocking: bool = False) -> Optional[PollReport]:
        if not self._guard.acquire(blocking=blocking):
            self.logger.warning("Poll cycle already in progress; skipping this trigger")
            return None
        try:
            self._cancel.clear()
            return self._run_cycle()
        finally:
            self._guard.release()

    # ------------------------------------------------------------------
    # Internals

    def _run_cycle(self) -> PollReport:
        started_at = self._clock()
        projects: Sequence[TrackedProject] = list(self.directory.fetch_all())
        self.logger.info("Iterating over %d repositories.", len(projects))

        outcomes: List[CheckOutcome]
        if self.max_workers == 1 or len(projects) <= 1:
            outcomes = [self._process(project, started_at) for project in projects]
        else:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="snappoller"
            ) as pool:
                outcomes = list(pool.map(lambda p: self._process(p, started_at), projects))

        report = PollReport(
            outcomes=outcomes,
            started_at=started_at,
            finished_at=self._clock(),
            cancelled=self._cancel.is_set(),
        )
        self.logger.info(
            "Poll finished: %d needs build, %d unchanged, %d failed, %d skipped%s",
            report.count(NEEDSBUILD),
            report.count(UNCHANGED),
            report.count(FAILED),
            report.count(SKIPPED),
            " (cancelled)" if report.cancelled else "",
        )
        return report

    def _process(self, project: TrackedProject, started_at: datetime) -> CheckOutcome:
        owner, name = project.owner, project.name
        if self._cancel.is_set():
            return CheckOutcome(owner, name, SKIPPED, "cancelled")
        if not self.eligibility(project):
            log_outcome(self.logger, project.slug, SKIPPED, "not eligible")
            return CheckOutcome(owner, name, SKIPPED, "not eligible")

        self.logger.info("%s: Polling ...", project.slug)
        try:
            changed = self.checker(owner, name, project.last_polled_at)
        except AuthError as exc:
            log_outcome(self.logger, project.slug, FAILED, f"authentication rejected: {exc.message}")
            return CheckOutcome(owner, name, FAILED, str(exc))
        except Exception as exc:  # noqa: BLE001 - one project must not abort the cycle
            log_outcome(self.logger, project.slug, FAILED, str(exc))
            return CheckOutcome(owner, name, FAILED, str(exc))

        if not changed:
            log_outcome(self.logger, project.slug, UNCHANGED)
            return CheckOutcome(owner, name, UNCHANGED)

        try:
            self.build_trigger(owner, name)
        except Exception as exc:  # noqa: BLE001 - one project must not abort the cycle
            log_outcome(self.logger, project.slug, FAILED, f"build request: {exc}")
            return CheckOutcome(owner, name, FAILED, f"build request: {exc}")

        log_outcome(self.logger, project.slug, NEEDSBUILD)
        if self.watermark_sink is not None:
            try:
                self.watermark_sink(owner, name, started_at)
            except Exception as exc:  # noqa: BLE001 - build already requested
                self.logger.error("%s: could not advance watermark (%s)", project.slug, exc)
        return CheckOutcome(owner, name, NEEDSBUILD)


__all__ = ["Checker", "Eligibility", "PollCycle", "WatermarkSink", "is_pollable"]
