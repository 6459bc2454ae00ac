"""
Base Repository

Primary-key CRUD and paging shared by the listing repositories. Failures are
logged with the model name and re-raised; the caller's session decides
whether to roll back.
"""

from typing import Generic, List, Optional, Tuple, Type, TypeVar
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import Select
import structlog

from ..constants import MAX_PAGE_SIZE
from ..models import Base

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=Base)


def check_page(skip: int, limit: int) -> None:
    """
    Raises:
        ValueError: If limit is outside 1..MAX_PAGE_SIZE or skip is negative
    """
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if skip < 0:
        raise ValueError("skip must be non-negative")


class BaseRepository(Generic[ModelT]):
    """Repository bound to one session and one mapped class."""

    def __init__(self, session: AsyncSession, model: Type[ModelT]):
        if not isinstance(session, AsyncSession):
            raise TypeError(
                f"session must be AsyncSession instance, got {type(session).__name__}"
            )
        self.session = session
        self.model = model

    @property
    def model_name(self) -> str:
        return self.model.__name__

    async def get(self, id: UUID) -> Optional[ModelT]:
        if id is None:
            raise ValueError(f"{self.model_name} id is required")

        try:
            return await self.session.get(self.model, id)
        except Exception as e:
            logger.error(
                "Repository: Lookup by id failed",
                model=self.model_name,
                entity_id=str(id),
                error=str(e),
                exc_info=True,
            )
            raise

    async def create(self, entity: ModelT) -> ModelT:
        """Insert and reload so server defaults (id, timestamps) are populated."""
        try:
            self.session.add(entity)
            await self.session.flush()
            await self.session.refresh(entity)
        except Exception as e:
            logger.error(
                "Repository: Insert failed",
                model=self.model_name,
                error=str(e),
                exc_info=True,
            )
            raise

        logger.info("Repository: Inserted", model=self.model_name, entity_id=str(entity.id))
        return entity

    async def update(self, entity: ModelT) -> ModelT:
        """Flush attribute changes already applied to a loaded entity."""
        try:
            await self.session.flush()
            await self.session.refresh(entity)
        except Exception as e:
            logger.error(
                "Repository: Update failed",
                model=self.model_name,
                entity_id=str(entity.id),
                error=str(e),
                exc_info=True,
            )
            raise

        logger.info("Repository: Updated", model=self.model_name, entity_id=str(entity.id))
        return entity

    async def delete(self, entity: ModelT) -> None:
        entity_id = str(entity.id)
        try:
            await self.session.delete(entity)
            await self.session.flush()
        except Exception as e:
            logger.error(
                "Repository: Delete failed",
                model=self.model_name,
                entity_id=entity_id,
                error=str(e),
                exc_info=True,
            )
            raise

        logger.info("Repository: Deleted", model=self.model_name, entity_id=entity_id)

    async def fetch_page(
        self, stmt: Select, count_stmt: Select, skip: int, limit: int
    ) -> Tuple[List[ModelT], int]:
        """
        Run a page query and its matching count query.

        Args:
            stmt: Ordered select of entities, without offset or limit
            count_stmt: select(func.count()) over the same filters
        """
        check_page(skip, limit)

        result = await self.session.execute(stmt.offset(skip).limit(limit))
        items = list(result.scalars().unique().all())
        total = (await self.session.execute(count_stmt)).scalar_one()
        return items, total
