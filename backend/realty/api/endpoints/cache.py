"""
Cache administration endpoints

Stats, targeted clears, warming and health of the cache store. Unlike the
domain routes, these report an unreachable store as HTTP 503 with the
CACHE_UNAVAILABLE error code instead of degrading silently.
"""

from typing import Any, Dict
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends

from ...infrastructure.redis.exceptions import CacheUnavailableHTTPException
from ...services.cache import CacheService
from ...services.properties import PropertyService
from ..dependencies import (
    get_cache_service,
    get_current_user_id,
    get_property_service,
    require_cache,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api/cache")


def _ensure(success: bool, message: str) -> None:
    # The store dropped out between the availability check and the command
    if not success:
        raise CacheUnavailableHTTPException(message)


@router.get("/stats")
async def get_cache_stats(
    user_id: UUID = Depends(get_current_user_id),
    cache: CacheService = Depends(require_cache),
) -> Dict[str, Any]:
    stats = await cache.get_stats()
    if stats is None:
        raise CacheUnavailableHTTPException("Failed to retrieve cache statistics")
    return {"success": True, "data": stats}


@router.delete("/clear")
async def clear_cache(
    user_id: UUID = Depends(get_current_user_id),
    cache: CacheService = Depends(require_cache),
) -> Dict[str, Any]:
    _ensure(await cache.clear_all(), "Failed to clear cache")
    logger.info("Cache cleared", requested_by=str(user_id))
    return {"success": True, "message": "All cache cleared successfully"}


@router.delete("/user/{target_user_id}")
async def clear_user_cache(
    target_user_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    cache: CacheService = Depends(require_cache),
) -> Dict[str, Any]:
    _ensure(await cache.clear_user(target_user_id), "Failed to clear user cache")
    return {
        "success": True,
        "message": f"Cache cleared for user {target_user_id}",
    }


@router.delete("/property/{property_id}")
async def clear_property_cache(
    property_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    cache: CacheService = Depends(require_cache),
) -> Dict[str, Any]:
    _ensure(await cache.clear_property(property_id), "Failed to clear property cache")
    return {
        "success": True,
        "message": f"Cache cleared for property {property_id}",
    }


@router.delete("/search")
async def clear_search_cache(
    user_id: UUID = Depends(get_current_user_id),
    cache: CacheService = Depends(require_cache),
) -> Dict[str, Any]:
    _ensure(await cache.clear_searches(), "Failed to clear search cache")
    return {"success": True, "message": "Search cache cleared successfully"}


@router.post("/warm/property/{property_id}")
async def warm_property_cache(
    property_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    cache: CacheService = Depends(require_cache),
    properties: PropertyService = Depends(get_property_service),
) -> Dict[str, Any]:
    _ensure(await properties.warm_property(property_id), "Failed to warm property cache")
    return {
        "success": True,
        "message": f"Cache warmed for property {property_id}",
    }


@router.get("/health")
async def cache_health(
    cache: CacheService = Depends(get_cache_service),
) -> Dict[str, Any]:
    if not cache.is_available():
        raise CacheUnavailableHTTPException("Cache service is not available")
    if not await cache.ping():
        raise CacheUnavailableHTTPException("Cache service health check failed")
    return {"success": True, "message": "Cache service is healthy", "connected": True}
