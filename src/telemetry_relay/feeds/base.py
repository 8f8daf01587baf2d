"""Feed base — periodic diagnostic producers keyed to viewer presence.

Learn: A feed gives dashboards something to draw before the simulator
starts posting. It is a cancellable asyncio task that only exists while
at least one viewer is connected:

  first viewer registers  → on_occupied hook → feed.start()
  last viewer unregisters → on_vacant hook   → feed.stop()

Each tick builds one message with next_message() and submits it to the
registry exactly like the ingest endpoint does.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog

from telemetry_relay.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


class FeedError(Exception):
    """Raised when a feed can't be built (e.g. unreadable replay file)."""


class Feed(ABC):
    """Abstract base for diagnostic feeds."""

    mode: str = ""
    default_interval: float = 3.0

    def __init__(self, registry: ConnectionRegistry, interval: Optional[float] = None):
        self.registry = registry
        self.interval = interval if interval is not None else self.default_interval
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def attach(self) -> None:
        """Tie start/stop to the registry's occupied/vacant transitions."""
        self.registry.add_lifecycle_hooks(on_occupied=self.start, on_vacant=self.stop)
        if self.registry.count:
            self.start()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info("feed.started", mode=self.mode, interval=self.interval)

    def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.info("feed.stopped", mode=self.mode, ticks=self.ticks)

    async def aclose(self) -> None:
        """Stop and wait for the loop to unwind (shutdown)."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                message = self.next_message()
            except Exception:
                logger.exception("feed.tick_failed", mode=self.mode)
                continue
            self.ticks += 1
            await self.registry.broadcast(json.dumps(message))

    @abstractmethod
    def next_message(self) -> dict[str, Any]:
        """Build the next message to broadcast."""
        ...
