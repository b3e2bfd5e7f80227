"""Tests for the FastAPI service mode."""

from __future__ import annotations

import threading
from datetime import UTC, datetime

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient  # noqa: E402

from snappoller.directory import DirectoryError  # noqa: E402
from snappoller.errors import PollerError, UpstreamError  # noqa: E402
from snappoller.models import NEEDSBUILD, UNCHANGED, CheckOutcome, PollReport  # noqa: E402
from snappoller.service import create_app  # noqa: E402
from snappoller.watermark import to_datetime  # noqa: E402

STARTED = datetime(2024, 1, 1, tzinfo=UTC)


class _StubCycle:
    def __init__(self) -> None:
        self.busy = False
        self.calls: list[bool] = []

    def run(self, *, blocking: bool = False) -> PollReport | None:
        self.calls.append(blocking)
        if self.busy:
            return None
        return PollReport(
            outcomes=[
                CheckOutcome("anowner", "aname", NEEDSBUILD),
                CheckOutcome("anowner", "other", UNCHANGED),
            ],
            started_at=STARTED,
            finished_at=STARTED,
        )


class _StubChecker:
    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.lock = threading.Lock()

    def __call__(self, owner, name, watermark) -> bool:
        to_datetime(watermark)
        with self.lock:
            self.calls.append((owner, name, watermark))
        if name == "unreachable":
            raise UpstreamError(None, "request timed out")
        return name == "changed"


@pytest.fixture
def stubs() -> tuple[_StubCycle, _StubChecker]:
    return _StubCycle(), _StubChecker()


@pytest.fixture
def client(stubs) -> TestClient:
    return TestClient(create_app(lambda: stubs))


def test_health_endpoint(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_poll_endpoint_returns_outcomes(client: TestClient, stubs) -> None:
    response = client.post("/poll")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["cancelled"] is False
    assert [outcome["status"] for outcome in data["outcomes"]] == [NEEDSBUILD, UNCHANGED]
    assert stubs[0].calls == [False]


def test_poll_endpoint_reports_busy(client: TestClient, stubs) -> None:
    stubs[0].busy = True

    response = client.post("/poll")

    assert response.status_code == 409
    assert response.json()["status"] == "busy"


def test_check_endpoint(client: TestClient, stubs) -> None:
    response = client.post(
        "/check", json={"owner": "anowner", "name": "changed", "since": 1501762400000}
    )

    assert response.status_code == 200
    assert response.json() == {"owner": "anowner", "name": "changed", "needs_build": True}
    assert stubs[1].calls == [("anowner", "changed", 1501762400000)]


def test_check_endpoint_rejects_bad_watermark(client: TestClient) -> None:
    response = client.post("/check", json={"owner": "anowner", "name": "aname", "since": "soon"})

    assert response.status_code == 400
    assert "soon" in response.json()["detail"]


def test_check_endpoint_maps_upstream_failure(client: TestClient) -> None:
    response = client.post(
        "/check",
        json={"owner": "anowner", "name": "unreachable", "since": "2017-08-03T12:13:20Z"},
    )

    assert response.status_code == 502
    assert "timed out" in response.json()["detail"]


class _BrokenDirectoryCycle:
    def run(self, *, blocking: bool = False) -> PollReport | None:
        raise DirectoryError("Cannot read repository directory repositories.yml: missing")


def test_requests_persist_cached_responses(stubs) -> None:
    persisted: list[str] = []
    cycle, checker = stubs
    client = TestClient(create_app(lambda: (cycle, checker, lambda: persisted.append("saved"))))

    client.post("/poll")
    client.post("/check", json={"owner": "anowner", "name": "changed", "since": 1501762400000})
    client.post("/check", json={"owner": "anowner", "name": "unreachable", "since": 1501762400000})

    assert persisted == ["saved", "saved", "saved"]


def test_poll_endpoint_reports_unreadable_directory() -> None:
    client = TestClient(create_app(lambda: (_BrokenDirectoryCycle(), _StubChecker())))

    response = client.post("/poll")

    assert response.status_code == 503
    assert "repositories.yml" in response.json()["detail"]
    assert issubclass(DirectoryError, PollerError)
