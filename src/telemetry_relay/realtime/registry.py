"""Connection registry — live viewers and the fan-out over them.

Learn: The registry is the only shared mutable state in the relay. It maps
connection IDs to Connection handles and is guarded by one asyncio.Lock,
so a broadcast pass never iterates over a viewer that is mid-teardown.

Sends never block the broadcaster. Each Connection owns a bounded buffer
and a sender task that drains it into the socket:

  broadcast → put_nowait(buffer) → sender task → websocket.send_text

A full buffer means the viewer can't keep up. It is dropped in the same
pass instead of stalling delivery to everyone else.
"""

import asyncio
import enum
import uuid
from typing import Callable, Optional, Protocol

import structlog

logger = structlog.get_logger()

# WebSocket close codes used when the relay drops a viewer
CLOSE_NORMAL = 1000
CLOSE_SEND_FAILED = 1011
CLOSE_TRY_AGAIN_LATER = 1013


class ConnectionSendFailure(Exception):
    """Raised by a sender task when the socket rejects a write."""

    def __init__(self, connection_id: str):
        super().__init__(f"Send to connection {connection_id} failed")
        self.connection_id = connection_id


class ConnectionState(str, enum.Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class DeliveryResult(str, enum.Enum):
    """Outcome of offering one message to one connection."""

    DELIVERED = "delivered"
    BUFFER_FULL = "buffer_full"
    CLOSED = "closed"


class PushChannel(Protocol):
    """Anything we can push text frames into (a Starlette WebSocket)."""

    async def send_text(self, data: str) -> None: ...


class Connection:
    """One viewer's outbound push channel.

    Learn: offer() is synchronous and never waits. The message either
    lands in the buffer or the caller gets a non-DELIVERED result back.
    Ordering within a connection comes from the single sender task.
    """

    def __init__(self, channel: PushChannel, queue_size: int = 64):
        self.id = uuid.uuid4().hex
        self.channel = channel
        self.state = ConnectionState.OPEN
        self.close_code = CLOSE_NORMAL
        self.close_reason = ""
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=queue_size)
        self._sender: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def offer(self, message: str) -> DeliveryResult:
        if self.state is not ConnectionState.OPEN:
            return DeliveryResult.CLOSED
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            return DeliveryResult.BUFFER_FULL
        return DeliveryResult.DELIVERED

    def start(self) -> asyncio.Task:
        """Spawn the sender task that drains the buffer into the channel."""
        if self._sender is None:
            self._sender = asyncio.create_task(self._run_sender())
        return self._sender

    async def _run_sender(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.channel.send_text(message)
            except Exception as e:
                self.state = ConnectionState.CLOSING
                raise ConnectionSendFailure(self.id) from e

    def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Mark closed and stop the sender. Safe to call more than once."""
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        self.close_code = code
        self.close_reason = reason
        if self._sender is not None and not self._sender.done():
            self._sender.cancel()


LifecycleHook = Callable[[], None]

_CLOSE_CODES = {
    DeliveryResult.BUFFER_FULL: (CLOSE_TRY_AGAIN_LATER, "viewer too slow"),
    DeliveryResult.CLOSED: (CLOSE_SEND_FAILED, "send failed"),
}


class ConnectionRegistry:
    """Process-wide set of open viewer connections.

    Learn: One instance lives on app.state and is injected into the
    ingest route and the WebSocket endpoint. Lifecycle hooks fire when
    the registry goes from empty to occupied and back, which is how the
    diagnostic feeds know when to run.

    Usage:
        registry = ConnectionRegistry()
        conn_id = await registry.register(Connection(websocket))
        delivered = await registry.broadcast('{"speed": 50}')
        await registry.unregister(conn_id)
    """

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._lock = asyncio.Lock()
        self._on_occupied: list[LifecycleHook] = []
        self._on_vacant: list[LifecycleHook] = []

    # ─── Introspection ────────────────────────────────────

    @property
    def count(self) -> int:
        return len(self._connections)

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def ids(self) -> list[str]:
        return list(self._connections)

    def add_lifecycle_hooks(
        self,
        on_occupied: Optional[LifecycleHook] = None,
        on_vacant: Optional[LifecycleHook] = None,
    ) -> None:
        """Register callbacks for first-viewer-in and last-viewer-out."""
        if on_occupied is not None:
            self._on_occupied.append(on_occupied)
        if on_vacant is not None:
            self._on_vacant.append(on_vacant)

    # ─── Membership ───────────────────────────────────────

    async def register(self, connection: Connection) -> str:
        async with self._lock:
            was_empty = not self._connections
            self._connections[connection.id] = connection
            clients = len(self._connections)

        logger.info("registry.connected", connection_id=connection.id, clients=clients)
        if was_empty:
            self._fire(self._on_occupied, "occupied")
        return connection.id

    async def unregister(
        self,
        connection_id: str,
        code: int = CLOSE_NORMAL,
        reason: str = "",
    ) -> None:
        """Remove a connection if present. No-op when already gone."""
        async with self._lock:
            removed = self._remove_locked(connection_id, code, reason)
            now_empty = removed and not self._connections

        if removed:
            logger.info(
                "registry.disconnected",
                connection_id=connection_id,
                clients=self.count,
            )
        if now_empty:
            self._fire(self._on_vacant, "vacant")

    async def close_all(self) -> None:
        """Drop every connection (shutdown)."""
        async with self._lock:
            had_connections = bool(self._connections)
            for connection_id in list(self._connections):
                self._remove_locked(connection_id, CLOSE_NORMAL, "server shutdown")

        if had_connections:
            logger.info("registry.closed_all")
            self._fire(self._on_vacant, "vacant")

    # ─── Fan-out ──────────────────────────────────────────

    async def broadcast(self, message: str) -> int:
        """Offer message to every registered connection.

        Learn: Each offer returns a DeliveryResult. Anything other than
        DELIVERED sends that connection down the unregister path before
        the lock is released, so callers never observe a dead entry.

        Returns the number of connections that accepted the message.
        """
        delivered = 0
        async with self._lock:
            if not self._connections:
                return 0

            failed: list[tuple[str, DeliveryResult]] = []
            for connection in list(self._connections.values()):
                result = connection.offer(message)
                if result is DeliveryResult.DELIVERED:
                    delivered += 1
                else:
                    failed.append((connection.id, result))

            for connection_id, result in failed:
                code, reason = _CLOSE_CODES[result]
                self._remove_locked(connection_id, code, reason)
                logger.warning(
                    "registry.dropped",
                    connection_id=connection_id,
                    result=result.value,
                )
            now_empty = bool(failed) and not self._connections

        if now_empty:
            self._fire(self._on_vacant, "vacant")
        return delivered

    # ─── Internals ────────────────────────────────────────

    def _remove_locked(self, connection_id: str, code: int, reason: str) -> bool:
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return False
        connection.close(code, reason)
        return True

    def _fire(self, hooks: list[LifecycleHook], transition: str) -> None:
        for hook in hooks:
            try:
                hook()
            except Exception:
                logger.exception("registry.hook_failed", transition=transition)
