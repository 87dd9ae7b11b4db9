"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from plank.activity.router import router as activity_router
from plank.admin.router import router as admin_router
from plank.auth.router import router as auth_router
from plank.community.router import router as community_router
from plank.companies.router import router as companies_router
from plank.config import get_settings
from plank.database import close_db, get_session_factory, init_db
from plank.health.router import router as health_router
from plank.middleware import setup_middleware
from plank.progress.router import router as planks_router
from plank.progress.seed import seed_milestones
from plank.redis_client import close_redis, get_redis, init_redis

logger = structlog.get_logger()


async def _connect_redis(url: str) -> None:
    """Connect to Redis if configured. The API runs without it, minus lockout, rate limits and pub/sub."""
    if not url:
        logger.info("redis_disabled")
        return
    await init_redis(url)
    try:
        await get_redis().ping()
    except RedisError:
        logger.warning("redis_unavailable", url=url)
        await close_redis()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await _connect_redis(settings.redis_url)

    # Milestone definitions (idempotent)
    try:
        async with get_session_factory()() as db:
            await seed_milestones(db)
    except SQLAlchemyError:
        logger.warning("milestone_seeding_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Daily Hold Plank Challenge API",
        description="Corporate wellness plank challenge: logs, milestones, company progress and community",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(planks_router)
    app.include_router(activity_router)
    app.include_router(companies_router)
    app.include_router(community_router)
    app.include_router(admin_router)

    return app


app = create_app()
