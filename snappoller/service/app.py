"""FastAPI application exposing poll triggers for external schedulers."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, List, Optional, Protocol, Union

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import load_config
from ..directory import DirectoryError
from ..errors import InvalidWatermark, PollerError
from ..models import PollReport, Watermark
from ..runtime import build_runtime


class PollRunner(Protocol):
    def run(self, *, blocking: bool = False) -> Optional[PollReport]: ...


Checker = Callable[[str, str, Watermark], bool]
Persist = Callable[[], None]


class OutcomeModel(BaseModel):
    owner: str
    name: str
    status: str
    message: Optional[str] = None


class PollResponse(BaseModel):
    status: str
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    cancelled: bool = False
    outcomes: List[OutcomeModel] = []


class CheckRequest(BaseModel):
    owner: str
    name: str
    since: Union[int, str]


class CheckResponse(BaseModel):
    owner: str
    name: str
    needs_build: bool


class HealthResponse(BaseModel):
    status: str


def _default_components(
    config_path: Path | None = None,
) -> tuple[PollRunner, Checker, Persist]:
    runtime = build_runtime(load_config(config_path or Path.cwd()))
    return runtime.build_cycle(), runtime.checker, runtime.close


def create_app(
    components_factory: Callable[[], tuple[Any, ...]] = _default_components,
) -> FastAPI:
    """Create the FastAPI application exposing snappoller operations.

    The factory returns ``(cycle, checker)`` or ``(cycle, checker, persist)``;
    ``persist`` runs after every poll and check so cached responses survive
    restarts.
    """
    app = FastAPI(title="SnapPoller Service", version="1.0.0")
    cycle, checker, *extra = components_factory()
    persist: Optional[Persist] = extra[0] if extra else None

    async def _in_executor(func: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    def _persisting(func: Callable[[], Any]) -> Callable[[], Any]:
        def call() -> Any:
            try:
                return func()
            finally:
                if persist is not None:
                    persist()

        return call

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/poll", response_model=PollResponse)
    async def poll() -> Any:
        report = await _in_executor(_persisting(lambda: cycle.run(blocking=False)))
        if report is None:
            return JSONResponse(
                status_code=409,
                content={"status": "busy", "detail": "A poll cycle is already in progress"},
            )
        return PollResponse(
            status="ok",
            started_at=report.started_at,
            finished_at=report.finished_at,
            cancelled=report.cancelled,
            outcomes=[
                OutcomeModel(
                    owner=outcome.owner,
                    name=outcome.name,
                    status=outcome.status,
                    message=outcome.message,
                )
                for outcome in report.outcomes
            ],
        )

    @app.post("/check", response_model=CheckResponse)
    async def check(payload: CheckRequest) -> CheckResponse:
        needs_build = await _in_executor(
            _persisting(lambda: checker(payload.owner, payload.name, payload.since))
        )
        return CheckResponse(owner=payload.owner, name=payload.name, needs_build=needs_build)

    @app.exception_handler(InvalidWatermark)
    async def invalid_watermark_handler(_: Any, exc: InvalidWatermark) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(DirectoryError)
    async def directory_error_handler(_: Any, exc: DirectoryError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(PollerError)
    async def poller_error_handler(_: Any, exc: PollerError) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "0.0.0.0",
    port: int = 8000,
    *,
    config_path: Path | None = None,
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app(lambda: _default_components(config_path))
    uvicorn.run(app, host=host, port=port)
