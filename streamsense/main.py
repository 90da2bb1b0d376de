"""Main FastAPI application."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.gzip import GZipMiddleware

from streamsense import __version__
from streamsense.api import api_router
from streamsense.config import get_settings
from streamsense.db import async_session_maker, init_db
from streamsense.services.sessions import UserSessionRegistry
from streamsense.utils.cache import cache
from streamsense.utils.http_client import close_all_clients
from streamsense.utils.logging import get_logger, setup_logging

settings = get_settings()
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    if settings.is_development or settings.is_sqlite:
        await init_db()
        logger.info("Database initialized")

    if await cache.connect():
        logger.info("Redis cache connected")
    else:
        logger.warning("Redis cache unavailable - running without caching")

    app.state.registry = UserSessionRegistry(async_session_maker, start_taste_timers=True)

    yield

    # Graceful shutdown
    logger.info("Shutting down background tasks...")
    await app.state.registry.close()

    await cache.close()
    logger.info("Redis cache closed")

    await close_all_clients()
    logger.info("HTTP clients closed")

    logger.info("Application shutdown complete")


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(GZipMiddleware, minimum_size=500)  # Compress responses > 500 bytes

app.include_router(api_router)


# Store app start time for uptime tracking
_app_start_time = datetime.now(UTC)


async def _ping_database() -> None:
    async with async_session_maker() as db:
        await db.execute(text("SELECT 1"))


async def _probe(probe: Callable[[], Awaitable[Any]]) -> dict[str, str]:
    try:
        await probe()
    except Exception as e:
        logger.warning(f"Health probe {probe.__name__} failed: {e!r}")
        return {"status": "unhealthy"}
    return {"status": "healthy"}


@app.get("/health", include_in_schema=True, tags=["monitoring"])
async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint for monitoring and load balancers.

    The user-data store and Redis decide the status; the DNA queue and the
    number of live user sessions are reported for information only.

    Returns:
        JSONResponse with status, uptime, and service health checks.
    """
    checks: dict[str, Any] = {
        "database": await _probe(_ping_database),
        "redis": await _probe(cache.ping),
    }
    degraded = any(check["status"] != "healthy" for check in checks.values())

    registry: UserSessionRegistry | None = getattr(request.app.state, "registry", None)
    if registry is not None:
        checks["dna_queue"] = registry.dna_queue.get_status().model_dump()
        checks["sessions"] = len(registry)

    health_status = {
        "status": "degraded" if degraded else "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime_seconds": (datetime.now(UTC) - _app_start_time).total_seconds(),
        "version": __version__,
        "checks": checks,
    }
    return JSONResponse(content=health_status, status_code=503 if degraded else 200)
