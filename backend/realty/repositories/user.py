"""
User Repository

Lookups by username and email for signup and login.
"""

from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import or_, select
import structlog

from ..models import User
from .base import BaseRepository

logger = structlog.get_logger()


class UserRepository(BaseRepository[User]):
    """User-specific repository."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> Optional[User]:
        if not email:
            raise ValueError("email is required (cannot be empty)")

        try:
            stmt = select(User).where(User.email == email.lower())
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(
                "UserRepository: Failed to get user by email",
                error=str(e),
                exc_info=True,
            )
            raise

    async def find_conflicting(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[UUID] = None,
    ) -> Optional[User]:
        """
        Find another user holding the same username or email.

        Args:
            username: Candidate username
            email: Candidate email
            exclude_id: User to ignore (the one being updated)
        """
        conditions = []
        if username:
            conditions.append(User.username == username)
        if email:
            conditions.append(User.email == email.lower())
        if not conditions:
            return None

        try:
            stmt = select(User).where(or_(*conditions))
            if exclude_id is not None:
                stmt = stmt.where(User.id != exclude_id)
            result = await self.session.execute(stmt.limit(1))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(
                "UserRepository: Failed to check username/email uniqueness",
                username=username,
                error=str(e),
                exc_info=True,
            )
            raise
