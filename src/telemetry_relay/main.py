"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance with its own ConnectionRegistry and feed on app.state. Lifespan
manages the feed and drops every viewer on shutdown. Middleware, routers,
the WebSocket endpoint and the dashboard document root are registered here.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from telemetry_relay import __version__
from telemetry_relay.api import api_router, ingest_router
from telemetry_relay.config import Settings
from telemetry_relay.config import settings as default_settings
from telemetry_relay.feeds import build_feed
from telemetry_relay.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. The feed is only attached here; it starts ticking when
    the first viewer connects.
    """
    settings: Settings = app.state.settings
    registry: ConnectionRegistry = app.state.registry

    logger.info(
        "relay.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        feed_mode=settings.feed_mode,
    )

    feed = app.state.feed
    if feed is not None:
        feed.attach()

    yield

    # Shutdown
    logger.info("relay.shutdown", clients=registry.count)
    if feed is not None:
        await feed.aclose()
    await registry.close_all()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings

    app = FastAPI(
        title="Telemetry Relay",
        description="Fans vehicle telemetry from a simulator out to live dashboards",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = ConnectionRegistry()
    # Built eagerly so a bad replay file fails create_app(), not the first viewer
    app.state.feed = build_feed(settings, app.state.registry)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler

    from telemetry_relay.middleware.cors import CorsHeadersMiddleware
    from telemetry_relay.middleware.request_id import RequestIdMiddleware

    app.add_middleware(CorsHeadersMiddleware, allow_origin=settings.cors_origin)
    app.add_middleware(RequestIdMiddleware)

    # Producer + operational routes
    app.include_router(ingest_router, tags=["ingest"])
    app.include_router(api_router)

    # Viewer push channel
    from telemetry_relay.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    # Everything else is the dashboard's document root (must be mounted last)
    from telemetry_relay.static_files import DocumentRoot
    app.mount("/", DocumentRoot(directory=settings.static_dir), name="static")

    return app


# Default app instance (used by uvicorn: telemetry_relay.main:app)
app = create_app()
