"""
Vidstream — Main FastAPI Application

Engagement & Social-Graph Engine: likes, subscriptions, channel stats,
video feeds and live notifications.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from app.core.config import get_settings
from app.core.database import dispose_db, init_db
from app.core.errors import EngagementError
from app.core.events import NotificationHub
from app.core.locks import KeyedLock
from app.core.logging import configure_logging
from app.services.engagement.toggle_coordinator import ToggleCoordinator

settings = get_settings()
configure_logging(settings)

logger = structlog.get_logger()


# ── Lifespan ─────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown hooks."""
    logger.info("Starting Vidstream", version=settings.app_version)

    await init_db()

    logger.info("Vidstream ready", api_prefix=settings.api_prefix)

    yield

    stats = app.state.hub.get_stats()
    await dispose_db()
    logger.info("Shutting down Vidstream", open_connections=stats["active_connections"])


# ── Errors ───────────────────────────────────────────────────────────────

async def engagement_error_handler(request: Request, exc: EngagementError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=str(exc))
    else:
        logger.info("Request rejected", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ── App ──────────────────────────────────────────────────────────────────

def create_app() -> FastAPI:
    app = FastAPI(
        title="Vidstream",
        description="Engagement & Social-Graph Engine for a video-sharing platform",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # Composition root: one hub and one coordinator per application
    hub = NotificationHub(queue_size=settings.notification_queue_size)
    app.state.hub = hub
    app.state.coordinator = ToggleCoordinator(hub=hub, locks=KeyedLock())

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(EngagementError, engagement_error_handler)

    # Prometheus metrics
    app.mount("/metrics", make_asgi_app())

    # ── Routes ───────────────────────────────────────────────────────────

    from app.api.routes import dashboard, health, likes, subscriptions, videos, websocket

    app.include_router(likes.router, prefix=settings.api_prefix)
    app.include_router(subscriptions.router, prefix=settings.api_prefix)
    app.include_router(dashboard.router, prefix=settings.api_prefix)
    app.include_router(videos.router, prefix=settings.api_prefix)
    app.include_router(websocket.router, prefix=settings.api_prefix)
    app.include_router(health.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        return {
            "name": "Vidstream",
            "description": "Engagement & Social-Graph Engine",
            "version": settings.app_version,
            "features": ["likes", "subscriptions", "channel_stats", "video_feed", "live_notifications"],
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_probe():
        return {"status": "healthy"}

    return app


app = create_app()
