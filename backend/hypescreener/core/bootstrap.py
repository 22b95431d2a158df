"""
Application bootstrap: builds the FastAPI app and wires the services.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import CacheError, HypeScreenerException, exception_handler
from .logging import cleanup_logging, setup_logging
from .middleware import RequestTracingMiddleware
from .scheduler import SchedulerManager
from .settings import Settings, get_settings
from ..api import health, tokens
from ..discovery.dexscreener import DexscreenerClient
from ..discovery.enricher import TokenEnricher
from ..discovery.helius import HeliusClient
from ..discovery.live_feed import HeliusMintListener
from ..discovery.pipeline import DiscoveryPipeline
from ..services.query import QueryService
from ..storage.cache import TokenCache
from ..ws.hub import NotificationHub

log = logging.getLogger("hypescreener.bootstrap")

DISCOVERY_JOB_ID = "discovery_refresh"


async def _initial_refresh(pipeline: DiscoveryPipeline) -> None:
    """Load the first batch of new tokens in the background."""
    log.info("Loading initial tokens")
    try:
        await pipeline.refresh()
    except Exception as e:
        log.error(f"Initial token load failed: {e!r}")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown tasks."""
    settings: Settings = app.state.settings

    setup_logging(
        log_level=settings.log_level,
        debug=settings.debug,
        log_to_file=settings.log_to_file,
        logs_dir=settings.logs_dir,
        retention_days=settings.log_retention_days,
    )
    log.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")

    http_client = httpx.AsyncClient(
        headers={
            "User-Agent": f"{settings.app_name}/{settings.version}",
            "Accept": "application/json",
        },
    )
    cache = TokenCache.from_url(settings.redis_url)
    hub = NotificationHub(cache, broker_enabled=settings.broker_publish_enabled)
    dexscreener = DexscreenerClient(settings, client=http_client)
    helius = HeliusClient(settings, client=http_client)
    enricher = TokenEnricher(dexscreener, cache)
    pipeline = DiscoveryPipeline(settings, helius, dexscreener, enricher, cache)
    scheduler = SchedulerManager()

    app.state.cache = cache
    app.state.hub = hub
    app.state.pipeline = pipeline
    app.state.scheduler = scheduler
    app.state.listener = None
    app.state.query_service = QueryService(settings, cache, pipeline, enricher, dexscreener, hub)

    try:
        await cache.ensure_featured_tokens()
    except CacheError as e:
        log.error(f"Could not initialize featured tokens: {e.message}")

    scheduler.add_job(
        pipeline.refresh,
        "interval",
        id=DISCOVERY_JOB_ID,
        name="New token discovery",
        hours=settings.refresh_interval_hours,
    )
    await scheduler.start()

    initial_load: Optional[asyncio.Task] = None
    if settings.refresh_on_startup:
        initial_load = asyncio.create_task(_initial_refresh(pipeline))

    if settings.live_feed_configured:
        listener = HeliusMintListener(settings, helius.stream_url, enricher, cache, hub)
        listener.start()
        app.state.listener = listener
    else:
        log.info("Live mint feed disabled (no Helius API key or live_feed_enabled=false)")

    try:
        yield
    finally:
        log.info(f"Shutting down {settings.app_name}")
        if app.state.listener is not None:
            await app.state.listener.stop()
        if initial_load is not None and not initial_load.done():
            initial_load.cancel()
        await scheduler.stop()
        await http_client.aclose()
        await cache.close()
        cleanup_logging()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use, the global settings when omitted

    Returns:
        Configured application; services are attached by the lifespan
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=f"{settings.app_name} API",
        description="Ranks freshly created Solana tokens by hype",
        version=settings.version,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # --- Middleware order (last added runs first) ---
    app.add_middleware(RequestTracingMiddleware, slow_request_ms=settings.slow_request_ms)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        max_age=600,
    )

    app.add_exception_handler(HypeScreenerException, exception_handler)
    app.add_exception_handler(StarletteHTTPException, exception_handler)
    app.add_exception_handler(RequestValidationError, exception_handler)
    app.add_exception_handler(Exception, exception_handler)

    app.include_router(health.router)
    app.include_router(tokens.router)
    app.include_router(tokens.ws_router)

    return app


app = create_app()
