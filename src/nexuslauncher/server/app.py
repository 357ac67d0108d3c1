"""FastAPI HTTP server for the setup launcher.

Routes::

    GET /            -> control page
    GET /health      -> {"status": "ok", "message": ...}
    GET /run         -> SSE stream of one setup run
    GET /keep-alive  -> SSE heartbeat republishing the last status
    GET /ping        -> {"status", "message", "timestamp", "uptime"}
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, StreamingResponse
from pydantic import BaseModel

from nexuslauncher import __version__
from nexuslauncher.config.settings import Settings
from nexuslauncher.orchestrator.plan import Orchestrator, node_launcher
from nexuslauncher.relay.heartbeat import Heartbeat
from nexuslauncher.relay.sse import event_stream, sse_response
from nexuslauncher.relay.state import ServerContext
from nexuslauncher.server.page import INDEX_HTML

logger = logging.getLogger(__name__)

HEALTH_MESSAGE = "Nexus node service is active."

OrchestratorFactory = Callable[[], Orchestrator]


class HealthResponse(BaseModel):
    status: str = "ok"
    message: str = HEALTH_MESSAGE


class PingResponse(BaseModel):
    status: str = "ok"
    message: str
    timestamp: str
    uptime: float


def default_orchestrator_factory(settings: Settings) -> OrchestratorFactory:
    """A fresh orchestrator per run, built from ``settings``."""

    def factory() -> Orchestrator:
        return Orchestrator(
            node=settings.node,
            launcher=node_launcher(settings.launch),
            buffer_capacity=settings.relay.buffer_capacity,
        )

    return factory


def create_app(
    settings: Settings | None = None,
    context: ServerContext | None = None,
    orchestrator_factory: OrchestratorFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Launcher ready (node id %s, keep-alive every %ss)",
            settings.node.node_id, settings.relay.keep_alive_interval,
        )
        yield
        logger.info("Launcher stopped")

    app = FastAPI(
        title="nexuslauncher",
        description="Installs and launches a Nexus network node, streaming progress over SSE",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.context = context or ServerContext(
        initial_status=settings.relay.initial_status,
        truncate_at=settings.relay.truncate_at,
    )
    app.state.orchestrator_factory = orchestrator_factory or default_orchestrator_factory(settings)

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        return HTMLResponse(INDEX_HTML)

    @app.get("/health")
    async def health_check() -> HealthResponse:
        return HealthResponse()

    @app.get("/ping")
    async def ping() -> PingResponse:
        return PingResponse(**app.state.context.snapshot())

    @app.get("/run")
    async def run_setup() -> StreamingResponse:
        orchestrator: Orchestrator = app.state.orchestrator_factory()
        logger.info("Setup run requested")
        return sse_response(event_stream(orchestrator.run(), app.state.context))

    @app.get("/keep-alive")
    async def keep_alive(request: Request) -> StreamingResponse:
        heartbeat = Heartbeat(
            app.state.context, interval=app.state.settings.relay.keep_alive_interval
        )
        return sse_response(event_stream(heartbeat.events(request.is_disconnected)))

    return app
