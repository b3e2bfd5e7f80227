"""Tests for the serialized poll cycle."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import List

import pytest

from snappoller.errors import AuthError, UpstreamError
from snappoller.models import FAILED, NEEDSBUILD, SKIPPED, UNCHANGED, TrackedProject
from snappoller.poller import PollCycle, is_pollable

WATERMARK = 1501762400000
NOW = datetime(2024, 1, 1, tzinfo=UTC)


class StubDirectory:
    def __init__(self, projects: List[TrackedProject]) -> None:
        self.projects = projects
        self.fetches = 0

    def fetch_all(self) -> List[TrackedProject]:
        self.fetches += 1
        return list(self.projects)


class RecordingChecker:
    def __init__(self, results=None) -> None:
        self.results = results or {}
        self.calls: List[tuple] = []
        self._lock = threading.Lock()

    def __call__(self, owner, name, watermark) -> bool:
        with self._lock:
            self.calls.append((owner, name, watermark))
        result = self.results.get(f"{owner}/{name}", False)
        if isinstance(result, Exception):
            raise result
        return result


class RecordingTrigger:
    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.calls: List[tuple[str, str]] = []
        self.fail_for = fail_for or set()

    def __call__(self, owner: str, name: str) -> None:
        self.calls.append((owner, name))
        if f"{owner}/{name}" in self.fail_for:
            raise RuntimeError("launchpad unavailable")


def _project(owner: str = "anowner", name: str = "aname", **kwargs) -> TrackedProject:
    kwargs.setdefault("snapcraft_name", name)
    return TrackedProject(owner=owner, name=name, last_polled_at=WATERMARK, **kwargs)


def _cycle(projects, checker, trigger, **kwargs) -> PollCycle:
    return PollCycle(StubDirectory(projects), checker, trigger, clock=lambda: NOW, **kwargs)


def test_empty_directory_checks_nothing() -> None:
    checker, trigger = RecordingChecker(), RecordingTrigger()

    report = _cycle([], checker, trigger).run()

    assert report is not None
    assert report.outcomes == []
    assert checker.calls == []
    assert trigger.calls == []


def test_unchanged_project_is_checked_once_and_not_built() -> None:
    checker, trigger = RecordingChecker(), RecordingTrigger()

    report = _cycle([_project()], checker, trigger).run()

    assert checker.calls == [("anowner", "aname", WATERMARK)]
    assert trigger.calls == []
    assert [outcome.status for outcome in report.outcomes] == [UNCHANGED]


def test_changed_project_triggers_build_and_signals_watermark() -> None:
    checker = RecordingChecker({"anowner/aname": True})
    trigger = RecordingTrigger()
    advanced = []

    report = _cycle(
        [_project()],
        checker,
        trigger,
        watermark_sink=lambda owner, name, when: advanced.append((owner, name, when)),
    ).run()

    assert trigger.calls == [("anowner", "aname")]
    assert report.outcomes[0].status == NEEDSBUILD
    assert report.needs_watermark_advance() == [("anowner", "aname")]
    assert advanced == [("anowner", "aname", NOW)]


def test_failures_do_not_abort_the_cycle(caplog) -> None:
    projects = [_project(name="broken"), _project(name="denied"), _project(name="fine")]
    checker = RecordingChecker(
        {
            "anowner/broken": UpstreamError(404, "Not Found", url="https://github.com/anowner/broken"),
            "anowner/denied": AuthError(401, "Bad credentials"),
            "anowner/fine": True,
        }
    )
    trigger = RecordingTrigger()

    with caplog.at_level("INFO", logger="snappoller"):
        report = _cycle(projects, checker, trigger).run()

    assert [outcome.status for outcome in report.outcomes] == [FAILED, FAILED, NEEDSBUILD]
    assert trigger.calls == [("anowner", "fine")]
    messages = [record.getMessage() for record in caplog.records]
    assert "anowner/broken: FAILED (https://github.com/anowner/broken (404): Not Found)" in messages
    assert any("authentication" in message for message in messages if "anowner/denied" in message)
    assert "anowner/fine: NEEDSBUILD" in messages


def test_build_trigger_failure_is_reported_per_project() -> None:
    checker = RecordingChecker({"anowner/a": True, "anowner/b": True})
    trigger = RecordingTrigger(fail_for={"anowner/a"})

    report = _cycle([_project(name="a"), _project(name="b")], checker, trigger).run()

    assert [outcome.status for outcome in report.outcomes] == [FAILED, NEEDSBUILD]
    assert "launchpad unavailable" in report.outcomes[0].message
    assert report.needs_watermark_advance() == [("anowner", "b")]


def test_ineligible_projects_are_skipped() -> None:
    projects = [
        _project(name="unconfigured", snapcraft_name=None),
        _project(name="claimed", snapcraft_name="claimed", store_name="someone-else"),
        _project(name="registered", snapcraft_name="registered", store_name="registered"),
    ]
    checker = RecordingChecker()

    report = _cycle(projects, checker, RecordingTrigger()).run()

    assert [outcome.status for outcome in report.outcomes] == [SKIPPED, SKIPPED, UNCHANGED]
    assert checker.calls == [("anowner", "registered", WATERMARK)]


def test_is_pollable() -> None:
    assert is_pollable(_project())
    assert not is_pollable(_project(snapcraft_name=""))
    assert not is_pollable(_project(snapcraft_name="x", store_name="y"))


def test_directory_failure_aborts_the_cycle_and_releases_guard() -> None:
    class BrokenDirectory:
        def fetch_all(self):
            raise ConnectionError("database unreachable")

    cycle = PollCycle(BrokenDirectory(), RecordingChecker(), RecordingTrigger())

    with pytest.raises(ConnectionError):
        cycle.run()
    assert cycle.in_progress is False


def test_concurrent_checks_keep_directory_order() -> None:
    projects = [_project(name=f"p{index}") for index in range(8)]
    checker = RecordingChecker({"anowner/p3": True, "anowner/p6": True})
    trigger = RecordingTrigger()

    report = _cycle(projects, checker, trigger, max_workers=4).run()

    assert [outcome.name for outcome in report.outcomes] == [f"p{index}" for index in range(8)]
    assert sorted(trigger.calls) == [("anowner", "p3"), ("anowner", "p6")]
    assert len(checker.calls) == 8


def test_overlapping_cycle_is_skipped_while_one_is_running() -> None:
    entered = threading.Event()
    release = threading.Event()

    def slow_checker(owner, name, watermark):
        entered.set()
        release.wait(timeout=5)
        return False

    first = _cycle([_project()], slow_checker, RecordingTrigger())
    second_checker = RecordingChecker()
    second = _cycle([_project()], second_checker, RecordingTrigger())
    results = {}

    worker = threading.Thread(target=lambda: results.setdefault("first", first.run()))
    worker.start()
    try:
        assert entered.wait(timeout=5)
        assert second.in_progress is True
        assert second.run(blocking=False) is None
        assert second_checker.calls == []
    finally:
        release.set()
        worker.join(timeout=5)

    assert results["first"] is not None
    assert second.run() is not None
    assert second_checker.calls == [("anowner", "aname", WATERMARK)]


def test_blocking_run_waits_for_running_cycle() -> None:
    entered = threading.Event()
    release = threading.Event()
    order: List[str] = []

    def slow_checker(owner, name, watermark):
        entered.set()
        release.wait(timeout=5)
        order.append("first")
        return False

    def fast_checker(owner, name, watermark):
        order.append("second")
        return False

    first = _cycle([_project()], slow_checker, RecordingTrigger())
    second = _cycle([_project()], fast_checker, RecordingTrigger())

    worker = threading.Thread(target=first.run)
    worker.start()
    assert entered.wait(timeout=5)
    waiter = threading.Thread(target=lambda: second.run(blocking=True))
    waiter.start()
    release.set()
    worker.join(timeout=5)
    waiter.join(timeout=5)

    assert order == ["first", "second"]


def test_cancel_skips_remaining_projects() -> None:
    projects = [_project(name="a"), _project(name="b"), _project(name="c")]
    holder = {}

    def cancelling_checker(owner, name, watermark):
        if name == "a":
            holder["cycle"].cancel()
        return False

    cycle = _cycle(projects, cancelling_checker, RecordingTrigger())
    holder["cycle"] = cycle

    report = cycle.run()

    assert report.cancelled is True
    assert [outcome.status for outcome in report.outcomes] == [UNCHANGED, SKIPPED, SKIPPED]
