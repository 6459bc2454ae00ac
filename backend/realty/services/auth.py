"""
Account Service

Signup, login, profile reads and updates, password changes. Profile reads
are read-through against the user profile cache; a password change drops
the cached profile and a profile update overwrites it. Writes are committed
before the cache is touched.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import create_access_token, hash_password, verify_password
from ..models import User
from ..repositories import UserRepository
from .cache import CacheService
from .exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationFailedError

logger = structlog.get_logger()


@dataclass
class AuthResult:
    """Issued token and public profile."""

    token: str
    user: Dict[str, Any]


class AuthService:
    """Account operations around the durable store and the profile cache."""

    def __init__(
        self,
        session: AsyncSession,
        cache: CacheService,
        users: Optional[UserRepository] = None,
    ):
        self.session = session
        self.cache = cache
        self.users = users or UserRepository(session)

    async def signup(self, username: str, email: str, password: str) -> AuthResult:
        if await self.users.find_conflicting(username=username, email=email):
            raise ConflictError("User with this email or username already exists")

        user = await self.users.create(
            User(
                username=username,
                email=email.lower(),
                password_hash=hash_password(password),
            )
        )
        await self.session.commit()

        profile = user.to_public_dict()
        await self.cache.cache_user_profile(profile)

        logger.info("User signed up", user_id=profile["id"])
        return AuthResult(token=create_access_token(profile["id"]), user=profile)

    async def login(self, email: str, password: str) -> AuthResult:
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login rejected")
            raise AuthenticationError("Invalid credentials")

        profile = user.to_public_dict()
        await self.cache.cache_user_profile(profile)

        logger.info("User logged in", user_id=profile["id"])
        return AuthResult(token=create_access_token(profile["id"]), user=profile)

    async def get_profile(self, user_id: UUID) -> Dict[str, Any]:
        """Read-through profile lookup."""
        cached = await self.cache.get_cached_user_profile(user_id)
        if cached.is_hit:
            logger.debug("Returning cached user profile", user_id=str(user_id))
            return cached.value

        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")

        profile = user.to_public_dict()
        await self.cache.cache_user_profile(profile)
        return profile

    async def update_profile(
        self,
        user_id: UUID,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not username and not email:
            raise ValidationFailedError(
                "At least one field (username or email) is required"
            )

        if await self.users.find_conflicting(
            username=username, email=email, exclude_id=user_id
        ):
            raise ConflictError("Username or email is already taken")

        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")

        if username:
            user.username = username
        if email:
            user.email = email.lower()
        user = await self.users.update(user)
        await self.session.commit()

        profile = user.to_public_dict()
        await self.cache.on_profile_updated(profile)

        logger.info("User profile updated", user_id=profile["id"])
        return profile

    async def change_password(
        self, user_id: UUID, current_password: str, new_password: str
    ) -> None:
        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")

        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        await self.users.update(user)
        await self.session.commit()
        await self.cache.on_password_changed(user_id)

        logger.info("User password changed", user_id=str(user_id))
