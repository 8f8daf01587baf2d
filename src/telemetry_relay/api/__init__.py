"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: The producer-facing ingest route lives at the root (/data) because
simulators are configured with that path. Operational routes sit under
/api/v1 so they never collide with files in the dashboard's document root.
"""

from fastapi import APIRouter

from telemetry_relay.api.health import router as health_router
from telemetry_relay.api.ingest import router as ingest_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health_router, tags=["health"])

__all__ = ["api_router", "ingest_router"]
