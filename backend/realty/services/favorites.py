"""
Favorite Service

Adds, removes, lists and annotates a user's saved properties. The
favorite-status flag is kept in the cache as an authoritative snapshot: it is
written on every add and remove, so a status check right after a toggle is
answered without touching the durable store. Writes are committed before
the cache is touched.
"""

import math
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Favorite
from ..repositories import FavoriteRepository, PropertyRepository
from .cache import CacheService
from .exceptions import ConflictError, NotFoundError

logger = structlog.get_logger()

DEFAULT_SORT = "newest"


class FavoriteService:
    """Favorite operations around the durable store and the cache."""

    def __init__(
        self,
        session: AsyncSession,
        cache: CacheService,
        favorites: Optional[FavoriteRepository] = None,
        properties: Optional[PropertyRepository] = None,
    ):
        self.session = session
        self.cache = cache
        self.favorites = favorites or FavoriteRepository(session)
        self.properties = properties or PropertyRepository(session)

    async def add_favorite(
        self,
        user_id: UUID,
        property_id: UUID,
        notes: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        listing = await self.properties.get(property_id)
        if listing is None:
            raise NotFoundError("Property not found")

        cached = await self.cache.get_cached_favorite_status(user_id, property_id)
        if cached.is_hit and cached.value.get("is_favorited"):
            raise ConflictError("Property is already in favorites")

        existing = await self.favorites.get_by_user_and_property(user_id, property_id)
        if existing is not None:
            # Cache was cold or unavailable; refresh the flag for the next check
            await self.cache.cache_favorite_status(
                user_id,
                property_id,
                {"is_favorited": True, "favorite_id": str(existing.id)},
            )
            raise ConflictError("Property is already in favorites")

        favorite = await self.favorites.create(
            Favorite(
                user_id=user_id,
                property_id=property_id,
                notes=notes,
                tags=list(tags or []),
            )
        )
        favorite.property = listing
        await self.session.commit()

        await self.cache.on_favorite_added(user_id, property_id, favorite.id)

        logger.info(
            "Favorite added",
            user_id=str(user_id),
            property_id=str(property_id),
            favorite_id=str(favorite.id),
        )
        return favorite.to_dict(include_property=True)

    async def remove_favorite(self, user_id: UUID, property_id: UUID) -> None:
        favorite = await self.favorites.get_by_user_and_property(user_id, property_id)
        if favorite is None:
            raise NotFoundError("Favorite not found")

        await self.favorites.delete(favorite)
        await self.session.commit()
        await self.cache.on_favorite_removed(user_id, property_id)

        logger.info(
            "Favorite removed", user_id=str(user_id), property_id=str(property_id)
        )

    async def list_favorites(
        self,
        user_id: UUID,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        sort_by: str = DEFAULT_SORT,
    ) -> Dict[str, Any]:
        """
        Page of a user's favorites with property details.

        Only the unfiltered listing in default order is cached; its key
        carries just the page and page size.
        """
        cacheable = not search and not tags and sort_by == DEFAULT_SORT

        if cacheable:
            cached = await self.cache.get_cached_user_favorites(user_id, page, limit)
            if cached.is_hit:
                logger.debug("Returning cached favorites", user_id=str(user_id))
                return cached.value

        favorites, total = await self.favorites.list_for_user(
            user_id,
            skip=(page - 1) * limit,
            limit=limit,
            search=search,
            tags=tags,
            sort_by=sort_by,
        )
        result = {
            "favorites": [f.to_dict(include_property=True) for f in favorites],
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if limit else 0,
        }

        if cacheable:
            await self.cache.cache_user_favorites(user_id, page, limit, result)

        return result

    async def update_favorite(
        self,
        favorite_id: UUID,
        user_id: UUID,
        notes: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        favorite = await self.favorites.get_for_user(favorite_id, user_id)
        if favorite is None:
            raise NotFoundError("Favorite not found")

        if notes is not None:
            favorite.notes = notes
        if tags is not None:
            favorite.tags = list(tags)

        favorite = await self.favorites.update(favorite)
        await self.session.commit()
        await self.cache.on_favorite_updated(user_id)

        logger.info("Favorite updated", favorite_id=str(favorite_id))
        return favorite.to_dict(include_property=True)

    async def check_status(self, user_id: UUID, property_id: UUID) -> Dict[str, Any]:
        """Read-through favorite flag for one property."""
        cached = await self.cache.get_cached_favorite_status(user_id, property_id)
        if cached.is_hit:
            return cached.value

        favorite = await self.favorites.get_by_user_and_property(user_id, property_id)
        status: Dict[str, Any] = {"is_favorited": favorite is not None}
        if favorite is not None:
            status["favorite_id"] = str(favorite.id)

        await self.cache.cache_favorite_status(user_id, property_id, status)
        return status
