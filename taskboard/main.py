"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from taskboard.config import settings
from taskboard.core.logging import configure_logging
from taskboard.database import close_db, engine, init_db
from taskboard.middleware.metrics import MetricsMiddleware, setup_metrics
from taskboard.services.subscription_service import change_feed
from taskboard.api.v1 import (
    auth,
    profile,
    boards,
    tasks,
    calendar,
    github,
    notifications,
    live,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    configure_logging()
    await init_db()
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Metrics middleware
app.add_middleware(MetricsMiddleware)
setup_metrics(app)

# Include routers
app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
app.include_router(profile.router, prefix=f"{settings.API_V1_PREFIX}/profile", tags=["profile"])
app.include_router(boards.router, prefix=f"{settings.API_V1_PREFIX}/boards", tags=["boards"])
app.include_router(tasks.router, prefix=f"{settings.API_V1_PREFIX}/tasks", tags=["tasks"])
app.include_router(calendar.router, prefix=f"{settings.API_V1_PREFIX}/calendar", tags=["calendar"])
app.include_router(github.router, prefix=f"{settings.API_V1_PREFIX}/github", tags=["github"])
app.include_router(
    notifications.router,
    prefix=f"{settings.API_V1_PREFIX}/notifications",
    tags=["notifications"],
)
app.include_router(live.router, prefix=f"{settings.API_V1_PREFIX}/live", tags=["live"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    health_status = {
        "status": "ok",
        "checks": {
            "database": "unknown",
            "redis": "unknown",
        },
        "live_subscriptions": change_feed.count(),
    }

    # Check database
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "ok"
    except Exception as e:
        health_status["checks"]["database"] = f"error: {str(e)}"
        health_status["status"] = "degraded"

    # Check Redis only when reminders depend on it
    if settings.REMINDERS_ENABLED:
        client = aioredis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        try:
            await client.ping()
            health_status["checks"]["redis"] = "ok"
        except Exception as e:
            health_status["checks"]["redis"] = f"error: {str(e)}"
            health_status["status"] = "degraded"
        finally:
            await client.aclose()
    else:
        health_status["checks"]["redis"] = "disabled"

    return health_status
