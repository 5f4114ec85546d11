"""FastAPI application setup"""
import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fetchforge.config import Settings, get_server_address
from fetchforge.exceptions import FetchForgeError
from fetchforge.routes import (
    events_router,
    profiles_router,
    tasks_router,
    transfer_router,
)
from fetchforge.services import TaskManager

from .middleware import RequestIdFilter, RequestLoggingMiddleware
from .websocket import ConnectionManager

_logger = logging.getLogger("fetchforge")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s request_id=%(request_id)s %(message)s"


def _setup_logger() -> None:
    """Configure application logging."""
    if not _logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(RequestIdFilter())
        _logger.addHandler(handler)
    _logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())
    _logger.propagate = False


async def _handle_fetchforge_error(request: Request, exc: FetchForgeError) -> JSONResponse:
    _logger.info("Request failed path=%s error=%s detail=%s", request.url.path, exc.kind, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"status": "error", "error": exc.kind, "detail": exc.message},
    )


def create_app(manager: Optional[TaskManager] = None, start_workers: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Without a ``manager``, one is built from environment settings. Workers
    start and stop with the application lifespan.
    """
    _setup_logger()
    if manager is None:
        manager = TaskManager(Settings.from_env())
        manager.load()
    connections = ConnectionManager()
    unsubscribe = manager.events.subscribe(connections.publish)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        connections.bind_loop(asyncio.get_running_loop())
        if start_workers:
            manager.pool.start()
        try:
            yield
        finally:
            unsubscribe()
            if start_workers:
                manager.shutdown(timeout=5)

    app = FastAPI(
        title="FetchForge",
        description="Queue downloads through yt-dlp and track their progress",
        lifespan=lifespan,
    )
    app.state.manager = manager
    app.state.connections = connections

    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(FetchForgeError, _handle_fetchforge_error)

    app.include_router(tasks_router)
    app.include_router(profiles_router)
    app.include_router(transfer_router)
    app.include_router(events_router)

    return app


def start_api(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Start the API server."""
    default_host, default_port = get_server_address()
    host = host or default_host
    port = port or default_port
    app = create_app()
    _logger.info("Starting uvicorn host=%s port=%s", host, port)
    uvicorn.run(app, host=host, port=port)
