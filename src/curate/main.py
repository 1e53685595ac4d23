"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from curate.achievements.router import router as achievements_router
from curate.collections.router import router as collections_router
from curate.config import get_settings
from curate.database import close_db, init_db
from curate.health.router import router as health_router
from curate.middleware import setup_middleware
from curate.notifications.router import router as notifications_router
from curate.redis_client import close_redis, init_redis


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    if settings.rate_limit_enabled:
        await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Curate API",
        description="Owner-scoped achievements, collections and notifications with public sharing",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(collections_router)
    app.include_router(achievements_router)
    app.include_router(notifications_router)

    return app


app = create_app()
