"""
Favorite API endpoints

All routes act on the authenticated user's own favorites.
"""

from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from ...constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...services.favorites import DEFAULT_SORT, FavoriteService
from ..dependencies import get_current_user_id, get_favorite_service

logger = structlog.get_logger()
router = APIRouter(prefix="/api/favorites")

SortOption = Literal["newest", "oldest", "property_name"]


class FavoriteCreate(BaseModel):
    property_id: UUID
    notes: Optional[str] = Field(None, max_length=500)
    tags: List[str] = Field(default_factory=list, max_length=20)


class FavoriteUpdate(BaseModel):
    notes: Optional[str] = Field(None, max_length=500)
    tags: Optional[List[str]] = Field(None, max_length=20)


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_favorite(
    body: FavoriteCreate,
    user_id: UUID = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service),
) -> Dict[str, Any]:
    favorite = await service.add_favorite(
        user_id, body.property_id, notes=body.notes, tags=body.tags
    )
    return {
        "success": True,
        "message": "Property added to favorites",
        "favorite": favorite,
    }


@router.get("")
async def list_favorites(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, min_length=1),
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    sort_by: SortOption = Query(DEFAULT_SORT, alias="sortBy"),
    user_id: UUID = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service),
) -> Dict[str, Any]:
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
    result = await service.list_favorites(
        user_id,
        page=page,
        limit=limit,
        search=search,
        tags=tag_list,
        sort_by=sort_by,
    )
    return {"success": True, **result}


@router.get("/check/{property_id}")
async def check_favorite_status(
    property_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service),
) -> Dict[str, Any]:
    status_payload = await service.check_status(user_id, property_id)
    return {"success": True, **status_payload}


@router.put("/{favorite_id}")
async def update_favorite(
    favorite_id: UUID,
    body: FavoriteUpdate,
    user_id: UUID = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service),
) -> Dict[str, Any]:
    favorite = await service.update_favorite(
        favorite_id, user_id, notes=body.notes, tags=body.tags
    )
    return {
        "success": True,
        "message": "Favorite updated successfully",
        "favorite": favorite,
    }


@router.delete("/{property_id}")
async def remove_favorite(
    property_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service),
) -> Dict[str, Any]:
    await service.remove_favorite(user_id, property_id)
    return {"success": True, "message": "Property removed from favorites"}
