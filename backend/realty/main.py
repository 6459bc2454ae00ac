"""
Realty Listings API - Main FastAPI Application

Composition root: configures logging, opens the database and the cache
store in the lifespan, registers middleware, exception handlers and routers.
The cache is optional at startup; the API serves from PostgreSQL alone
while Redis is unreachable.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.endpoints.auth import router as auth_router
from .api.endpoints.cache import router as cache_router
from .api.endpoints.favorites import router as favorites_router
from .api.endpoints.health import router as health_router
from .api.endpoints.properties import router as properties_router
from .constants import APP_NAME, APP_VERSION
from .core.config import Settings, get_settings
from .core.correlation import CorrelationIdMiddleware, get_request_correlation_id
from .core.database import DatabaseManager
from .infrastructure.redis import RedisStore
from .middleware.security import SecurityHeadersMiddleware
from .services.cache import CacheService
from .services.exceptions import DomainException

logger = structlog.get_logger()


def configure_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging at the configured level."""
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(message)s")

    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.is_development
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and the cache store; close both on shutdown."""
    settings: Settings = app.state.settings
    logger.info("Starting Realty API", environment=settings.ENVIRONMENT)

    database = DatabaseManager(settings)
    await database.initialize()

    store = RedisStore.from_settings(settings)
    await store.open()
    if not store.is_available():
        logger.warning("Cache unavailable at startup, serving from database only")

    app.state.database = database
    app.state.cache_service = CacheService(store)
    app.state.startup_time = datetime.now(timezone.utc)

    logger.info(
        "Realty API started",
        version=APP_VERSION,
        cache_connected=store.is_available(),
    )

    try:
        yield
    finally:
        logger.info("Shutting down Realty API")
        await store.close()
        await database.close()
        logger.info("Application shutdown completed")


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    logger.info(
        "Domain rule rejected request",
        path=request.url.path,
        error_code=exc.error_code,
        message=exc.message,
    )
    content = {"success": False, "error": exc.error_code, "message": exc.message}
    if exc.details:
        content["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=content)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    correlation_id = get_request_correlation_id(request)
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        correlation_id=correlation_id,
        exc_info=True,
    )
    content = {"success": False, "message": "Internal server error"}
    if correlation_id:
        content["correlation_id"] = correlation_id
    return JSONResponse(status_code=500, content=content)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=APP_NAME,
        description="Property listing marketplace with a Redis read-through cache",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, tags=["auth"])
    app.include_router(properties_router, tags=["properties"])
    app.include_router(favorites_router, tags=["favorites"])
    app.include_router(cache_router, tags=["cache"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "realty.main:app",
        host=_settings.API_HOST,
        port=_settings.API_PORT,
        reload=_settings.is_development,
    )
