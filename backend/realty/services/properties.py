"""
Property Service

Listing CRUD, search and owner pages. Reads go through the cache first;
every write refreshes the property entry and drops the search results and
owner pages that may now be stale. Writes are committed before the cache is
touched, so a concurrent read-through cannot re-cache the pre-write row.
"""

import math
from dataclasses import asdict
from typing import Any, Dict, Mapping, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Property
from ..repositories import FavoriteRepository, PropertyRepository, PropertySearchCriteria
from .cache import CacheService
from .exceptions import ConflictError, NotFoundError, PermissionDeniedError

logger = structlog.get_logger()

# Fields an owner may never change after creation
IMMUTABLE_FIELDS = frozenset({"id", "listing_id", "created_by", "created_at", "updated_at"})


def page_payload(items: list, total: int, page: int, limit: int) -> Dict[str, Any]:
    return {
        "properties": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


class PropertyService:
    """Property operations around the durable store and the cache."""

    def __init__(
        self,
        session: AsyncSession,
        cache: CacheService,
        properties: Optional[PropertyRepository] = None,
        favorites: Optional[FavoriteRepository] = None,
    ):
        self.session = session
        self.cache = cache
        self.properties = properties or PropertyRepository(session)
        self.favorites = favorites or FavoriteRepository(session)

    async def create_property(
        self, owner_id: UUID, data: Mapping[str, Any]
    ) -> Dict[str, Any]:
        listing_id = data["listing_id"]
        if await self.properties.get_by_listing_id(listing_id):
            raise ConflictError("Property with this ID already exists")

        values = {k: v for k, v in data.items() if k not in IMMUTABLE_FIELDS}
        listing = await self.properties.create(
            Property(listing_id=listing_id, created_by=owner_id, **values)
        )
        await self.session.commit()
        payload = listing.to_dict()

        await self.cache.on_property_saved(payload, owner_id)

        logger.info(
            "Property created",
            property_id=payload["id"],
            listing_id=listing_id,
            owner_id=str(owner_id),
        )
        return payload

    async def get_property(self, property_id: UUID) -> Dict[str, Any]:
        """Read-through single property lookup."""
        cached = await self.cache.get_cached_property(property_id)
        if cached.is_hit:
            logger.debug("Returning cached property", property_id=str(property_id))
            return cached.value

        listing = await self.properties.get(property_id)
        if listing is None:
            raise NotFoundError("Property not found")

        payload = listing.to_dict()
        await self.cache.cache_property(payload)
        return payload

    async def search_properties(
        self, criteria: PropertySearchCriteria, page: int = 1, limit: int = 10
    ) -> Dict[str, Any]:
        """
        Read-through search.

        The cache key covers every filter plus the page and page size, so
        equivalent queries share one entry regardless of parameter order.
        """
        query = {**asdict(criteria), "page": page, "limit": limit}

        cached = await self.cache.get_cached_property_search(query)
        if cached.is_hit:
            logger.debug("Returning cached property search results")
            return cached.value

        properties, total = await self.properties.search(
            criteria, skip=(page - 1) * limit, limit=limit
        )
        items = [p.to_dict() for p in properties]
        result = page_payload(items, total, page, limit)

        await self.cache.cache_property_search(query, result)
        for item in items:
            await self.cache.cache_property(item)

        return result

    async def list_user_properties(
        self, owner_id: UUID, page: int = 1, limit: int = 10
    ) -> Dict[str, Any]:
        """Read-through page of an owner's listings."""
        cached = await self.cache.get_cached_user_properties(owner_id, page, limit)
        if cached.is_hit:
            logger.debug("Returning cached user properties", owner_id=str(owner_id))
            return cached.value

        properties, total = await self.properties.list_by_owner(
            owner_id, skip=(page - 1) * limit, limit=limit
        )
        items = [p.to_dict() for p in properties]
        result = page_payload(items, total, page, limit)

        await self.cache.cache_user_properties(owner_id, page, limit, result)
        for item in items:
            await self.cache.cache_property(item)

        return result

    async def _get_owned(self, property_id: UUID, user_id: UUID) -> Property:
        listing = await self.properties.get(property_id)
        if listing is None:
            raise NotFoundError("Property not found")
        if listing.created_by != user_id:
            raise PermissionDeniedError(
                "Access denied. You can only modify properties you created."
            )
        return listing

    async def update_property(
        self, property_id: UUID, user_id: UUID, changes: Mapping[str, Any]
    ) -> Dict[str, Any]:
        listing = await self._get_owned(property_id, user_id)

        for field, value in changes.items():
            if field in IMMUTABLE_FIELDS:
                continue
            setattr(listing, field, value)

        listing = await self.properties.update(listing)
        await self.session.commit()
        payload = listing.to_dict()

        await self.cache.on_property_saved(payload, listing.created_by)

        logger.info("Property updated", property_id=payload["id"], fields=sorted(changes))
        return payload

    async def delete_property(self, property_id: UUID, user_id: UUID) -> None:
        listing = await self._get_owned(property_id, user_id)
        owner_id = listing.created_by
        # Favorites go with the listing (ON DELETE CASCADE)
        favorited_by = await self.favorites.list_user_ids_for_property(property_id)

        await self.properties.delete(listing)
        await self.session.commit()
        await self.cache.on_property_deleted(property_id, owner_id, favorited_by)

        logger.info(
            "Property deleted",
            property_id=str(property_id),
            favorites_removed=len(favorited_by),
        )

    async def warm_property(self, property_id: UUID) -> bool:
        """Load a property from the durable store and write it to the cache."""
        listing = await self.properties.get(property_id)
        if listing is None:
            raise NotFoundError("Property not found")

        return await self.cache.warm_property(listing.to_dict())
