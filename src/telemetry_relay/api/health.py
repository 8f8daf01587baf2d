"""Health check endpoint.

Learn: Reports the process is up, how many viewers are connected and
whether the diagnostic feed is currently ticking.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from telemetry_relay import __version__
from telemetry_relay.dependencies import get_feed, get_registry
from telemetry_relay.feeds.base import Feed
from telemetry_relay.realtime.registry import ConnectionRegistry
from telemetry_relay.schemas.telemetry import FeedStatus, HealthRead

router = APIRouter()


@router.get("/health", response_model=HealthRead)
async def health_check(
    registry: ConnectionRegistry = Depends(get_registry),
    feed: Optional[Feed] = Depends(get_feed),
):
    """Check server status, viewer count and feed state."""
    return HealthRead(
        status="ok",
        version=__version__,
        connected_clients=registry.count,
        feed=FeedStatus(
            mode=feed.mode if feed else "off",
            running=feed.running if feed else False,
        ),
    )
