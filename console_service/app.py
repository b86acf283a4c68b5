# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""FastAPI application factory with lifecycle management."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import ConsoleConfig
from .database import close_database, init_database
from .error_mapping import (
    AdapterError,
    ChainExhaustedError,
    ConsoleError,
    ProbeError,
    ValidationError,
    marshal_exception,
)
from .refresh import RefreshScheduler
from .service import ConsoleService

logger = logging.getLogger(__name__)


def status_for(exc: ConsoleError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, (AdapterError, ProbeError, ChainExhaustedError)):
        return 502
    return 500


async def console_error_handler(request: Request, exc: ConsoleError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status, content=marshal_exception(exc))


def create_app(
    service: ConsoleService | None = None,
    config: ConsoleConfig | None = None,
    enable_refresh: bool = True,
    title: str = "Fleet Console",
    version: str = "0.1.0",
) -> FastAPI:
    """
    Create and configure the console application.

    Args:
        service: Pre-built service; built from ``config`` when omitted
        config: Console configuration; read from the environment when omitted
        enable_refresh: Run the periodic snapshot refresh while serving

    Returns:
        Configured FastAPI application
    """
    config = config or (service.config if service else ConsoleConfig.from_environment())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Application starting...")
        uses_database = service is None and config.store_backend == "database"
        if uses_database:
            await init_database()

        app.state.service = service or ConsoleService.from_config(config)
        scheduler = RefreshScheduler(app.state.service)
        app.state.scheduler = scheduler
        if enable_refresh:
            await scheduler.start()

        try:
            logger.info("Application ready to serve traffic")
            yield
        finally:
            logger.info("Application shutting down...")
            await scheduler.stop()
            if uses_database:
                await close_database()
            logger.info("Application shutdown complete")

    app = FastAPI(title=title, version=version, lifespan=lifespan)
    app.add_exception_handler(ConsoleError, console_error_handler)

    from .api.admin import router as admin_router

    app.include_router(admin_router, prefix="/admin", tags=["admin"])

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app
