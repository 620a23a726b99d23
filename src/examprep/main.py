"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from examprep.config import get_settings
from examprep.database import close_db, create_tables, init_db
from examprep.health.router import router as health_router
from examprep.leaderboard.router import router as leaderboard_router
from examprep.middleware import setup_middleware
from examprep.progress.router import router as progress_router
from examprep.redis_client import close_redis, init_redis


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.database_url.startswith("sqlite"):
        await create_tables()
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Exam Prep Progress API",
        description="Topic mastery, gamified progress and leaderboard ranking",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progress_router)
    app.include_router(leaderboard_router)

    return app


app = create_app()
