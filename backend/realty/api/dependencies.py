"""
FastAPI dependencies shared by the routers.

The database manager and the cache service are created once by the
application lifespan and stored on app.state; requests receive a fresh
session and services bound to it.
"""

from typing import AsyncGenerator
from uuid import UUID

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import TokenError, decode_access_token
from ..infrastructure.redis.exceptions import CacheUnavailableHTTPException
from ..services.auth import AuthService
from ..services.cache import CacheService
from ..services.favorites import FavoriteService
from ..services.properties import PropertyService

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Session for one request. Services commit their writes before touching
    the cache; whatever is left is committed when the handler returns.
    """
    async with request.app.state.database.get_session() as session:
        yield session


def get_cache_service(request: Request) -> CacheService:
    return request.app.state.cache_service


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> UUID:
    """
    Resolve the authenticated user from a Bearer token.

    Raises:
        HTTPException: 401 when the token is missing, invalid or expired
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(credentials.credentials)
        return UUID(payload["sub"])
    except (TokenError, ValueError) as e:
        logger.info("Rejected access token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token.",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    cache: CacheService = Depends(get_cache_service),
) -> AuthService:
    return AuthService(session, cache)


def get_property_service(
    session: AsyncSession = Depends(get_db_session),
    cache: CacheService = Depends(get_cache_service),
) -> PropertyService:
    return PropertyService(session, cache)


def get_favorite_service(
    session: AsyncSession = Depends(get_db_session),
    cache: CacheService = Depends(get_cache_service),
) -> FavoriteService:
    return FavoriteService(session, cache)


def require_cache(cache: CacheService = Depends(get_cache_service)) -> CacheService:
    """Cache service for admin routes; 503 when the store is unreachable."""
    if not cache.is_available():
        raise CacheUnavailableHTTPException()
    return cache
