"""FastAPI dependencies for app-scoped state.

Learn: The registry and feed are created by create_app() and parked on
app.state. Route handlers ask for them through Depends() rather than
importing module globals, so every test app gets its own registry.
"""

from typing import Optional

from starlette.requests import HTTPConnection

from telemetry_relay.config import Settings
from telemetry_relay.feeds.base import Feed
from telemetry_relay.realtime.registry import ConnectionRegistry


def get_registry(conn: HTTPConnection) -> ConnectionRegistry:
    return conn.app.state.registry


def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_feed(conn: HTTPConnection) -> Optional[Feed]:
    return conn.app.state.feed
