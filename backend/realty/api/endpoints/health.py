"""
Health check endpoints for the Realty API.

Liveness reports the cache connectivity flag without failing: the API keeps
serving from the durable store while the cache is down.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ...constants import APP_NAME, APP_VERSION
from ...core.config import get_settings

logger = structlog.get_logger()
router = APIRouter()

PROCESS_START_TIME = time.time()


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Process liveness for load balancers."""
    cache = request.app.state.cache_service
    return {
        "status": "healthy",
        "service": APP_NAME,
        "version": APP_VERSION,
        "environment": get_settings().ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime_seconds": round(time.time() - PROCESS_START_TIME, 1),
        "cache": {"connected": cache.is_available()},
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Ready when the durable store answers; the cache is optional."""
    database = await request.app.state.database.health_check()
    cache_connected = request.app.state.cache_service.is_available()

    ready = database.get("status") == "healthy"
    if not ready:
        logger.warning("Readiness check failed", database=database)

    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not_ready",
            "checks": {
                "database": database,
                "cache": {"connected": cache_connected},
            },
        },
    )
