"""WebSocket endpoint — live telemetry delivery to dashboard viewers.

Learn: Each dashboard connects to /ws. The handler:
1. Accepts the socket and queues a connection-confirmation message
2. Registers the connection so broadcasts start reaching it
3. Drains the connection's buffer into the socket (sender task)
4. Reads and ignores whatever the viewer sends (client listener)

When either task ends (viewer left, write failed, registry dropped a slow
viewer) the other is cancelled and the connection is unregistered.
"""

import asyncio
import json
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from telemetry_relay.config import Settings
from telemetry_relay.dependencies import get_registry, get_settings
from telemetry_relay.realtime.registry import (
    Connection,
    ConnectionRegistry,
    ConnectionSendFailure,
)

logger = structlog.get_logger()
router = APIRouter()


def welcome_message(connection_id: str) -> str:
    return json.dumps({
        "type": "connection",
        "status": "connected",
        "client_id": connection_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


@router.websocket("/ws")
async def viewer_websocket(
    websocket: WebSocket,
    registry: ConnectionRegistry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
):
    """Push every broadcast to this viewer until it goes away."""
    await websocket.accept()

    connection = Connection(websocket, queue_size=settings.send_queue_size)
    # Queued before register() so it precedes any broadcast
    connection.offer(welcome_message(connection.id))
    await registry.register(connection)

    async def client_listener():
        """Inbound frames are ignored apart from an application-level ping."""
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    return
                data = frame.get("text")
                if data is None:
                    # Binary frames carry nothing the relay understands
                    continue
                try:
                    msg = json.loads(data)
                except json.JSONDecodeError:
                    continue
                if isinstance(msg, dict) and msg.get("type") == "ping":
                    connection.offer(json.dumps({"type": "pong"}))
        except (WebSocketDisconnect, asyncio.CancelledError):
            pass

    sender_task = connection.start()
    client_task = asyncio.create_task(client_listener())

    try:
        done, pending = await asyncio.wait(
            [sender_task, client_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        if sender_task in done and not sender_task.cancelled():
            exc = sender_task.exception()
            if isinstance(exc, ConnectionSendFailure):
                logger.warning("viewer.send_failed", connection_id=connection.id)
            elif exc is not None:
                logger.error("viewer.sender_crashed", connection_id=connection.id, error=str(exc))
        if client_task in done and not client_task.cancelled():
            exc = client_task.exception()
            if exc is not None:
                logger.error("viewer.listener_crashed", connection_id=connection.id, error=str(exc))
    finally:
        client_task.cancel()
        await asyncio.gather(client_task, return_exceptions=True)
        await registry.unregister(connection.id)
        if websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close(
                    code=connection.close_code,
                    reason=connection.close_reason,
                )
            except RuntimeError:
                # Peer already sent its close frame
                pass
