"""Replay feed — loop a recorded CSV drive over viewers.

Learn: Useful when the simulator isn't running but a real trace is on
disk. The file needs a header row. Cells are typed on load:

  "42"    → 42
  "3.5"   → 3.5
  "true"  → True
  ""      → (column omitted from that row)
  other   → kept as a string

One row goes out per tick; after the last row the feed starts over.
"""

import csv
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from telemetry_relay.feeds.base import Feed, FeedError
from telemetry_relay.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()

_BOOLEANS = {"true": True, "false": False}


def type_cell(value: str) -> Union[int, float, bool, str]:
    text = value.strip()
    lowered = text.lower()
    if lowered in _BOOLEANS:
        return _BOOLEANS[lowered]
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def load_rows(path: Path) -> list[dict[str, Any]]:
    """Read and type every data row of a CSV file."""
    try:
        with open(path, newline="", encoding="utf-8-sig") as fh:
            reader = csv.DictReader(fh)
            rows = []
            for raw in reader:
                row = {
                    key.strip(): type_cell(value)
                    for key, value in raw.items()
                    if key is not None and value is not None and value.strip() != ""
                }
                if row:
                    rows.append(row)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise FeedError(f"Cannot read replay file {path}: {e}") from e

    if not rows:
        raise FeedError(f"Replay file {path} has no data rows")
    return rows


class ReplayFeed(Feed):
    """Streams rows of a CSV file, one per tick, looping forever."""

    mode = "replay"
    default_interval = 2.0

    def __init__(
        self,
        registry: ConnectionRegistry,
        path: Union[str, Path],
        interval: Optional[float] = None,
    ):
        super().__init__(registry, interval)
        self.path = Path(path)
        self.rows = load_rows(self.path)
        self.position = 0
        logger.info("feed.replay_loaded", path=str(self.path), rows=len(self.rows))

    def next_message(self) -> dict[str, Any]:
        row = dict(self.rows[self.position])
        self.position += 1
        if self.position >= len(self.rows):
            self.position = 0
            logger.info("feed.replay_restarting", path=str(self.path))
        return row
