"""
Property API endpoints

Public search and detail reads, authenticated create, and owner-only
update and delete.
"""

from datetime import date
from typing import Any, Dict, Literal, Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from ...constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...repositories import PropertySearchCriteria
from ...services.properties import PropertyService
from ..dependencies import get_current_user_id, get_property_service

logger = structlog.get_logger()
router = APIRouter(prefix="/api/properties")

FurnishedState = Literal["Furnished", "Semi-Furnished", "Unfurnished"]
ListingType = Literal["rent", "sale"]


class PropertyBase(BaseModel):
    """Listing fields shared by create and read."""

    title: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., ge=0)
    state: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    area_sq_ft: int = Field(..., ge=1)
    bedrooms: int = Field(..., ge=0)
    bathrooms: int = Field(..., ge=0)
    amenities: str
    furnished: FurnishedState
    available_from: date
    listed_by: str = Field(..., min_length=1, max_length=100)
    tags: str
    color_theme: str = Field(..., pattern=r"^#[0-9A-Fa-f]{6}$")
    rating: float = Field(..., ge=0, le=5)
    is_verified: bool = False
    listing_type: ListingType


class PropertyCreate(PropertyBase):
    listing_id: str = Field(..., min_length=1, max_length=50)


class PropertyUpdate(BaseModel):
    """Partial update; listing id and owner are fixed."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    area_sq_ft: Optional[int] = Field(None, ge=1)
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    amenities: Optional[str] = None
    furnished: Optional[FurnishedState] = None
    available_from: Optional[date] = None
    listed_by: Optional[str] = Field(None, min_length=1, max_length=100)
    tags: Optional[str] = None
    color_theme: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    rating: Optional[float] = Field(None, ge=0, le=5)
    is_verified: Optional[bool] = None
    listing_type: Optional[ListingType] = None


@router.get("")
async def search_properties(
    property_type: Optional[str] = Query(None, alias="type"),
    state: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    min_price: Optional[float] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[float] = Query(None, ge=0, alias="maxPrice"),
    bedrooms: Optional[int] = Query(None, ge=0),
    bathrooms: Optional[int] = Query(None, ge=0),
    furnished: Optional[FurnishedState] = Query(None),
    listing_type: Optional[ListingType] = Query(None, alias="listingType"),
    is_verified: Optional[bool] = Query(None, alias="isVerified"),
    listed_by: Optional[str] = Query(None, alias="listedBy"),
    search: Optional[str] = Query(None, min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    service: PropertyService = Depends(get_property_service),
) -> Dict[str, Any]:
    criteria = PropertySearchCriteria(
        type=property_type,
        state=state,
        city=city,
        min_price=min_price,
        max_price=max_price,
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        furnished=furnished,
        listing_type=listing_type,
        is_verified=is_verified,
        listed_by=listed_by,
        search=search,
    )
    result = await service.search_properties(criteria, page=page, limit=limit)
    return {"success": True, **result}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_property(
    body: PropertyCreate,
    user_id: UUID = Depends(get_current_user_id),
    service: PropertyService = Depends(get_property_service),
) -> Dict[str, Any]:
    listing = await service.create_property(user_id, body.model_dump())
    return {
        "success": True,
        "message": "Property created successfully",
        "property": listing,
    }


# Registered before /{property_id} so the literal path wins
@router.get("/my-properties")
async def list_my_properties(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: UUID = Depends(get_current_user_id),
    service: PropertyService = Depends(get_property_service),
) -> Dict[str, Any]:
    result = await service.list_user_properties(user_id, page=page, limit=limit)
    return {"success": True, **result}


@router.get("/{property_id}")
async def get_property(
    property_id: UUID, service: PropertyService = Depends(get_property_service)
) -> Dict[str, Any]:
    return {"success": True, "property": await service.get_property(property_id)}


@router.put("/{property_id}")
async def update_property(
    property_id: UUID,
    body: PropertyUpdate,
    user_id: UUID = Depends(get_current_user_id),
    service: PropertyService = Depends(get_property_service),
) -> Dict[str, Any]:
    listing = await service.update_property(
        property_id, user_id, body.model_dump(exclude_unset=True)
    )
    return {
        "success": True,
        "message": "Property updated successfully",
        "property": listing,
    }


@router.delete("/{property_id}")
async def delete_property(
    property_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: PropertyService = Depends(get_property_service),
) -> Dict[str, Any]:
    await service.delete_property(property_id, user_id)
    return {"success": True, "message": "Property deleted successfully"}
