"""
Property Repository

Filtered, paginated property search and owner listings.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, or_, select
import structlog

from ..models import Property
from .base import BaseRepository

logger = structlog.get_logger()

@dataclass
class PropertySearchCriteria:
    """Optional filters for property search. None means "not filtered"."""

    type: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    furnished: Optional[str] = None
    listing_type: Optional[str] = None
    is_verified: Optional[bool] = None
    listed_by: Optional[str] = None
    search: Optional[str] = None

def contains_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"

class PropertyRepository(BaseRepository[Property]):
    """Property-specific repository."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Property)

    async def get_by_listing_id(self, listing_id: str) -> Optional[Property]:
        if not listing_id:
            raise ValueError("listing_id is required (cannot be empty)")

        try:
            stmt = select(Property).where(Property.listing_id == listing_id)
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(
                "PropertyRepository: Failed to get property by listing id",
                listing_id=listing_id,
                error=str(e),
                exc_info=True,
            )
            raise

    def _filters(self, criteria: PropertySearchCriteria) -> list:
        conditions = []
        if criteria.type:
            conditions.append(Property.type.ilike(contains_pattern(criteria.type)))
        if criteria.state:
            conditions.append(Property.state.ilike(contains_pattern(criteria.state)))
        if criteria.city:
            conditions.append(Property.city.ilike(contains_pattern(criteria.city)))
        if criteria.listed_by:
            conditions.append(Property.listed_by.ilike(contains_pattern(criteria.listed_by)))
        if criteria.furnished:
            conditions.append(Property.furnished == criteria.furnished)
        if criteria.listing_type:
            conditions.append(Property.listing_type == criteria.listing_type)
        if criteria.is_verified is not None:
            conditions.append(Property.is_verified == criteria.is_verified)
        if criteria.min_price is not None:
            conditions.append(Property.price >= criteria.min_price)
        if criteria.max_price is not None:
            conditions.append(Property.price <= criteria.max_price)
        if criteria.bedrooms is not None:
            conditions.append(Property.bedrooms == criteria.bedrooms)
        if criteria.bathrooms is not None:
            conditions.append(Property.bathrooms == criteria.bathrooms)
        if criteria.search:
            pattern = contains_pattern(criteria.search)
            conditions.append(
                or_(
                    Property.title.ilike(pattern),
                    Property.type.ilike(pattern),
                    Property.state.ilike(pattern),
                    Property.city.ilike(pattern),
                    Property.amenities.ilike(pattern),
                    Property.tags.ilike(pattern),
                )
            )
        return conditions

    async def search(
        self, criteria: PropertySearchCriteria, skip: int = 0, limit: int = 10
    ) -> Tuple[List[Property], int]:
        """
        Search properties, newest first.

        Returns:
            Page of properties and the total number of matches

        Raises:
            ValueError: If pagination arguments are out of range
        """
        conditions = self._filters(criteria)
        stmt = select(Property).where(*conditions).order_by(Property.created_at.desc())
        count_stmt = select(func.count()).select_from(Property).where(*conditions)

        try:
            properties, total = await self.fetch_page(stmt, count_stmt, skip, limit)
        except ValueError:
            raise
        except Exception as e:
            logger.error(
                "PropertyRepository: Search failed",
                error=str(e),
                exc_info=True,
            )
            raise

        logger.debug(
            "PropertyRepository: Search executed",
            filters=len(conditions),
            count=len(properties),
            total=total,
            skip=skip,
            limit=limit,
        )
        return properties, total

    async def list_by_owner(
        self, owner_id: UUID, skip: int = 0, limit: int = 10
    ) -> Tuple[List[Property], int]:
        """List properties created by a user, newest first."""
        if owner_id is None:
            raise ValueError("owner_id is required (cannot be None)")

        owned = Property.created_by == owner_id
        stmt = select(Property).where(owned).order_by(Property.created_at.desc())
        count_stmt = select(func.count()).select_from(Property).where(owned)

        try:
            return await self.fetch_page(stmt, count_stmt, skip, limit)
        except ValueError:
            raise
        except Exception as e:
            logger.error(
                "PropertyRepository: Failed to list owner properties",
                owner_id=str(owner_id),
                error=str(e),
                exc_info=True,
            )
            raise
