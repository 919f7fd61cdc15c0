"""FastAPI application factory.

Wires settings, logging, the pooled engine, the snapshot store and its
latest-snapshot cache, and the background refresh task into one app.
"""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from results_api.core.config import Settings, get_settings
from results_api.core.database import dispose_engine, get_session_factory, init_engine
from results_api.core.logging import setup_logging
from results_api.services.results_service import init_results_services, reset_results_services
from results_api.services.snapshot_store import SnapshotStore


def _start_refresh_task(settings: Settings, store: SnapshotStore) -> asyncio.Task[None] | None:
    """Start the results refresh loop if it is enabled and has a feed to read."""
    if not settings.results_refresh_enabled:
        return None
    if not settings.results_source_url:
        logger.warning("Results refresh enabled but RESULTS_SOURCE_URL is not set; serving stored data only")
        return None

    from results_api.services.refresh_service import build_source_fetcher, results_refresh_loop

    return asyncio.create_task(
        results_refresh_loop(store, build_source_fetcher(settings), settings.results_refresh_interval)
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Bring the store up before serving and tear it down after the refresh task stops."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir, json_format=settings.log_json)
    logger.info("Starting results API ({} environment)", settings.environment)
    init_engine(
        settings.database_url,
        echo=False,
        schema=settings.database_schema,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    store = init_results_services(get_session_factory(), cache_ttl=settings.results_cache_ttl)
    refresh_task = _start_refresh_task(settings, store)

    yield

    if refresh_task is not None:
        refresh_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await refresh_task

    reset_results_services()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Results API",
        description="Versioned election results snapshots ingested from a published CSV feed",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    from results_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
