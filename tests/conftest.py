"""Test fixtures — a fresh relay app per test, with fake viewers.

Learn: create_app() takes a Settings instance, so every test builds its own
app with its own ConnectionRegistry. The diagnostic feed is off unless a
test turns it on, which keeps broadcast counts deterministic.

Fake viewers are plain objects with an async send_text(), registered
directly on the registry. No sockets involved.
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from telemetry_relay.config import Settings
from telemetry_relay.main import create_app
from telemetry_relay.realtime.registry import Connection


class FakeChannel:
    """Records every frame pushed to it."""

    def __init__(self):
        self.sent: list[str] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(data)

    async def wait_for(self, count: int, timeout: float = 1.0) -> list[str]:
        """Yield to the loop until `count` frames arrived."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while len(self.sent) < count:
            if loop.time() > deadline:
                raise AssertionError(f"expected {count} frames, got {len(self.sent)}")
            await asyncio.sleep(0.001)
        return self.sent


class BrokenChannel:
    """Raises on every write, like a socket whose peer vanished."""

    async def send_text(self, data: str) -> None:
        raise ConnectionResetError("peer gone")


@pytest.fixture()
def relay_settings(tmp_path):
    static_dir = tmp_path / "www"
    static_dir.mkdir()
    (static_dir / "index.html").write_text("<h1>dashboard</h1>")
    return Settings(feed_mode="off", static_dir=static_dir, send_queue_size=8)


@pytest.fixture()
def app(relay_settings):
    return create_app(relay_settings)


@pytest.fixture()
def registry(app):
    return app.state.registry


@pytest.fixture()
def make_connection():
    """Factory: make_connection(channel=None, queue_size=8) -> Connection."""

    def _make(channel=None, queue_size: int = 8) -> Connection:
        return Connection(channel or FakeChannel(), queue_size=queue_size)

    return _make


@pytest.fixture()
def fake_channel_cls():
    return FakeChannel


@pytest.fixture()
def broken_channel_cls():
    return BrokenChannel


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client bound to the test app (no lifespan, no sockets)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
