"""
Health check endpoints for monitoring application status.
File: backend/hypescreener/api/health.py
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request
from pydantic import BaseModel

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

# Track application start time
start_time = time.time()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    timestamp: datetime
    version: str
    environment: str
    uptime_seconds: float
    subsystems: Dict[str, str]
    details: Dict[str, Any]


def _overall_status(subsystems: Dict[str, str]) -> str:
    """Compute an overall status from subsystem states."""
    values = set(subsystems.values())
    if "ERROR" in values:
        return "ERROR"
    if "DEGRADED" in values:
        return "DEGRADED"
    return "OK"


@router.get("/")
async def root(request: Request) -> Dict[str, str]:
    """Liveness check."""
    return {"status": f"{request.app.state.settings.app_name} API is running"}


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Health check with cache, scheduler and live feed status.

    A disabled live feed is reported as DISABLED, not as an error.
    """
    state = request.app.state
    settings = state.settings
    subsystems: Dict[str, str] = {}
    details: Dict[str, Any] = {}

    cache = getattr(state, "cache", None)
    if cache is None:
        subsystems["cache"] = "NOT_INITIALIZED"
    else:
        subsystems["cache"] = "OK" if await cache.ping() else "ERROR"

    scheduler = getattr(state, "scheduler", None)
    if scheduler is None:
        subsystems["scheduler"] = "NOT_INITIALIZED"
    else:
        subsystems["scheduler"] = "OK" if scheduler.is_running else "DEGRADED"
        details["jobs"] = scheduler.get_jobs()

    listener = getattr(state, "listener", None)
    if listener is None:
        subsystems["live_feed"] = "DISABLED"
    else:
        subsystems["live_feed"] = "OK" if listener.is_running else "DEGRADED"
        details["live_feed"] = listener.get_stats()

    pipeline = getattr(state, "pipeline", None)
    if pipeline is not None:
        details["discovery"] = pipeline.get_stats()

    hub = getattr(state, "hub", None)
    if hub is not None:
        details["subscribers"] = hub.connection_count

    return HealthResponse(
        status=_overall_status(subsystems),
        timestamp=datetime.now(timezone.utc),
        version=settings.version,
        environment=settings.environment,
        uptime_seconds=time.time() - start_time,
        subsystems=subsystems,
        details=details,
    )
