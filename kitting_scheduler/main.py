"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

import kitting_scheduler.models  # noqa: F401  registers tables on Base.metadata
from kitting_scheduler.api.v1.router import api_v1_router
from kitting_scheduler.core.config import settings
from kitting_scheduler.core.database import async_session_factory, close_db, init_db
from kitting_scheduler.core.events import init_event_bus
from kitting_scheduler.core.redis import close_redis, init_redis
from kitting_scheduler.db.seed import seed_if_empty

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    logger.info("Starting %s ...", settings.PROJECT_NAME)

    # Startup
    await init_db()
    logger.info("Database initialized")

    if settings.SEED_DEFAULT_SHIFTS:
        async with async_session_factory() as session:
            result = await seed_if_empty(session)
            if result:
                await session.commit()
                logger.info("Default shifts seeded: %s", result)
            else:
                logger.info("Shifts already configured, skipping seed")

    redis_client = None
    try:
        redis_client = await init_redis(app.state)
        logger.info("Redis connected")
    except (RedisError, OSError) as exc:
        app.state.redis = None
        logger.warning("Redis unavailable (%s), events are delivered in-process only", exc)

    init_event_bus(app.state, redis_client)

    yield

    # Shutdown
    await close_redis(app.state)
    logger.info("Redis disconnected")

    await close_db()
    logger.info("Database disconnected")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")
