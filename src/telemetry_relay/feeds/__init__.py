"""Diagnostic feeds — keep dashboards busy until the simulator posts.

Learn: The feed is picked by TELEMETRY_RELAY_FEED_MODE:
    feed = build_feed(settings, registry)   # None when mode is "off"
    feed.attach()                           # start/stop with viewer presence

Feeds are registered by mode name, so a new source only needs a Feed
subclass and an entry in _FEEDS.
"""

from typing import Optional

from telemetry_relay.config import Settings
from telemetry_relay.feeds.base import Feed, FeedError
from telemetry_relay.feeds.replay import ReplayFeed
from telemetry_relay.feeds.synthetic import SyntheticFeed
from telemetry_relay.realtime.registry import ConnectionRegistry

__all__ = [
    "Feed",
    "FeedError",
    "ReplayFeed",
    "SyntheticFeed",
    "build_feed",
    "list_feeds",
]

# ─── Registry ──────────────────────────────────────────────

_FEEDS: dict[str, type[Feed]] = {
    SyntheticFeed.mode: SyntheticFeed,
    ReplayFeed.mode: ReplayFeed,
}


def list_feeds() -> list[str]:
    """List feed modes, including "off"."""
    return ["off", *sorted(_FEEDS)]


def build_feed(settings: Settings, registry: ConnectionRegistry) -> Optional[Feed]:
    """Build the configured feed, or None when feeds are off.

    Raises ValueError for an unknown mode and FeedError when the feed
    can't load its source.
    """
    mode = settings.feed_mode
    if mode == "off":
        return None

    cls = _FEEDS.get(mode)
    if not cls:
        raise ValueError(f"Unknown feed mode '{mode}'. Available: {', '.join(list_feeds())}")

    if cls is ReplayFeed:
        if settings.replay_file is None:
            raise FeedError("Replay feed needs a replay_file")
        return ReplayFeed(registry, settings.replay_file, interval=settings.feed_interval)
    return cls(registry, interval=settings.feed_interval)
