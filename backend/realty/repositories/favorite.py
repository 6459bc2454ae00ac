"""
Favorite Repository

Per-user favorites with property details, filtering and sorting.
"""

from typing import List, Optional, Sequence, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, or_, select
from sqlalchemy.orm import contains_eager, selectinload
import structlog

from ..models import Favorite, Property
from .base import BaseRepository
from .property import contains_pattern

logger = structlog.get_logger()

SORT_OPTIONS = {
    "newest": Favorite.created_at.desc(),
    "oldest": Favorite.created_at.asc(),
    "property_name": Property.title.asc(),
}


class FavoriteRepository(BaseRepository[Favorite]):
    """Favorite-specific repository scoped by user."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Favorite)

    async def get_for_user(self, favorite_id: UUID, user_id: UUID) -> Optional[Favorite]:
        """Get a favorite by id only if it belongs to user_id."""
        if favorite_id is None:
            raise ValueError("favorite_id is required (cannot be None)")
        if user_id is None:
            raise ValueError("user_id is required (cannot be None)")

        try:
            stmt = (
                select(Favorite)
                .where(Favorite.id == favorite_id, Favorite.user_id == user_id)
                .options(selectinload(Favorite.property))
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(
                "FavoriteRepository: Failed to get favorite",
                favorite_id=str(favorite_id),
                user_id=str(user_id),
                error=str(e),
                exc_info=True,
            )
            raise

    async def get_by_user_and_property(
        self, user_id: UUID, property_id: UUID
    ) -> Optional[Favorite]:
        if user_id is None:
            raise ValueError("user_id is required (cannot be None)")
        if property_id is None:
            raise ValueError("property_id is required (cannot be None)")

        try:
            stmt = select(Favorite).where(
                Favorite.user_id == user_id, Favorite.property_id == property_id
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(
                "FavoriteRepository: Failed to get favorite by property",
                user_id=str(user_id),
                property_id=str(property_id),
                error=str(e),
                exc_info=True,
            )
            raise

    async def list_for_user(
        self,
        user_id: UUID,
        skip: int = 0,
        limit: int = 10,
        search: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        sort_by: str = "newest",
    ) -> Tuple[List[Favorite], int]:
        """
        List a user's favorites joined with their properties.

        Args:
            user_id: Owner of the favorites (REQUIRED)
            skip: Number of records to skip
            limit: Maximum records to return
            search: Case-insensitive match on property title/type/state/city or notes
            tags: Match favorites carrying any of these tags
            sort_by: newest, oldest or property_name

        Returns:
            Page of favorites and the total number of matches
        """
        if user_id is None:
            raise ValueError("user_id is required (cannot be None)")

        conditions = [Favorite.user_id == user_id]
        if search:
            pattern = contains_pattern(search)
            conditions.append(
                or_(
                    Property.title.ilike(pattern),
                    Property.type.ilike(pattern),
                    Property.state.ilike(pattern),
                    Property.city.ilike(pattern),
                    Favorite.notes.ilike(pattern),
                )
            )
        if tags:
            conditions.append(Favorite.tags.overlap(list(tags)))

        order = SORT_OPTIONS.get(sort_by, SORT_OPTIONS["newest"])
        stmt = (
            select(Favorite)
            .join(Favorite.property)
            .options(contains_eager(Favorite.property))
            .where(*conditions)
            .order_by(order)
        )
        count_stmt = (
            select(func.count())
            .select_from(Favorite)
            .join(Favorite.property)
            .where(*conditions)
        )

        try:
            favorites, total = await self.fetch_page(stmt, count_stmt, skip, limit)
        except ValueError:
            raise
        except Exception as e:
            logger.error(
                "FavoriteRepository: Failed to list favorites",
                user_id=str(user_id),
                error=str(e),
                exc_info=True,
            )
            raise

        logger.debug(
            "FavoriteRepository: User favorites retrieved",
            user_id=str(user_id),
            count=len(favorites),
            total=total,
            sort_by=sort_by,
        )
        return favorites, total

    async def list_user_ids_for_property(self, property_id: UUID) -> List[UUID]:
        """Users who have favorited property_id."""
        if property_id is None:
            raise ValueError("property_id is required (cannot be None)")

        try:
            stmt = select(Favorite.user_id).where(Favorite.property_id == property_id)
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
        except Exception as e:
            logger.error(
                "FavoriteRepository: Failed to list users for property",
                property_id=str(property_id),
                error=str(e),
                exc_info=True,
            )
            raise
