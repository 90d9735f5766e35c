"""HTTP trigger endpoint.

``POST /sync`` runs a pass and returns its JSON report. ``GET /health``
reports the engine state and the outcome of the last pass.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from pin_mirror import __version__
from pin_mirror.core.async_utils import run_sync
from pin_mirror.sync.engine import ReconciliationEngine
from pin_mirror.sync.reporter import report_to_json

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sync"])


class HealthResponse(BaseModel):
    status: str
    version: str
    state: str
    watch_directory: str
    last_sync: dict[str, Any] | None = None


def get_engine(request: Request) -> ReconciliationEngine:
    return request.app.state.engine


@router.get("/health", response_model=HealthResponse)
async def health_check(
    engine: Annotated[ReconciliationEngine, Depends(get_engine)],
) -> HealthResponse:
    """Liveness plus the outcome of the last pass."""
    last = engine.last_report
    status = "ok"
    if last is not None and last.aborted:
        status = "degraded"
    return HealthResponse(
        status=status,
        version=__version__,
        state=engine.state.value,
        watch_directory=str(engine.root),
        last_sync=report_to_json(last) if last is not None else None,
    )


@router.post("/sync")
async def trigger_sync(
    engine: Annotated[ReconciliationEngine, Depends(get_engine)],
    dry_run: bool = False,
) -> JSONResponse:
    """Run one pass and return its report.

    Responds 409 when a pass is already running and 500 when the pass
    aborted.
    """
    report = await run_sync(engine.sync, dry_run)
    if report is None:
        return JSONResponse(
            status_code=409,
            content={"status": "busy", "detail": "Sync already in progress"},
        )

    body = report_to_json(report)
    if report.aborted:
        logger.warning("HTTP-triggered sync aborted: %s", report.error)
        return JSONResponse(status_code=500, content=body)
    return JSONResponse(status_code=200, content=body)


def create_app(engine: ReconciliationEngine) -> FastAPI:
    """Build the FastAPI application serving *engine*."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("HTTP trigger ready for %s", engine.root)
        yield
        logger.info("HTTP trigger shutting down")

    app = FastAPI(
        title="pin-mirror",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.include_router(router)
    return app
