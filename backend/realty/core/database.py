"""
Realty Database

Owns the asyncpg-backed SQLAlchemy engine for the lifetime of the app.
Startup retries the first connection with exponential backoff; each request
gets a session that commits when the handler returns and rolls back if it
raises.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Any, Optional

import asyncpg
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
import structlog
from prometheus_client import Counter, Histogram

from .config import Settings, get_settings

logger = structlog.get_logger()

CONNECT_ATTEMPTS = 3
TRANSIENT_CONNECT_ERRORS = (
    asyncpg.PostgresConnectionError,
    OperationalError,
    ConnectionError,
    OSError,
)

DB_STARTUP_SECONDS = Histogram(
    "realty_db_startup_seconds", "Time to build the engine and reach PostgreSQL"
)
DB_SESSION_SECONDS = Histogram(
    "realty_db_session_seconds", "Lifetime of request-scoped database sessions"
)
DB_CONNECT_FAILURES = Counter(
    "realty_db_connect_failures_total", "Failed attempts to reach PostgreSQL"
)
DB_ROLLBACKS = Counter("realty_db_rollbacks_total", "Sessions rolled back on error")


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.async_database_url,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.DEBUG,
        connect_args={"server_settings": {"application_name": "realty_api"}},
    )


async def _ping(engine: AsyncEngine) -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


def _log_retry(retry_state) -> None:
    logger.warning(
        "Database not reachable, retrying",
        attempt=retry_state.attempt_number,
        wait_seconds=retry_state.next_action.sleep,
    )


class DatabaseManager:
    """
    Engine and session factory for one application instance.

    initialize() at startup, close() at shutdown; get_session() in between.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    @property
    def is_initialized(self) -> bool:
        return self.session_factory is not None

    async def initialize(self) -> None:
        if self.is_initialized:
            return

        started = time.perf_counter()
        engine = build_engine(self.settings)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(CONNECT_ATTEMPTS),
                wait=wait_exponential(multiplier=1, min=1, max=10),
                retry=retry_if_exception_type(TRANSIENT_CONNECT_ERRORS),
                before_sleep=_log_retry,
                reraise=True,
            ):
                with attempt:
                    try:
                        await _ping(engine)
                    except Exception:
                        DB_CONNECT_FAILURES.inc()
                        raise
        except Exception as e:
            await engine.dispose()
            logger.error("Database unreachable at startup", error=str(e))
            raise

        DB_STARTUP_SECONDS.observe(time.perf_counter() - started)
        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        logger.info(
            "Database initialized",
            pool_size=self.settings.DATABASE_POOL_SIZE,
            max_overflow=self.settings.DATABASE_MAX_OVERFLOW,
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Unit-of-work scope: commit on success, roll back and re-raise on error."""
        if not self.session_factory:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        started = time.perf_counter()
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                DB_ROLLBACKS.inc()
                logger.warning(
                    "Database session rolled back",
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise
            finally:
                DB_SESSION_SECONDS.observe(time.perf_counter() - started)

    async def health_check(self) -> Dict[str, Any]:
        """Round trip to PostgreSQL plus pool occupancy."""
        if not self.engine:
            return {"status": "not_initialized"}

        started = time.perf_counter()
        try:
            await _ping(self.engine)
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

        pool = self.engine.pool
        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
            "pool": {
                "size": pool.size(),
                "checked_out": pool.checkedout(),
                "overflow": pool.overflow(),
            },
        }

    async def close(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self.session_factory = None
        logger.info("Database connections closed")
