"""Synthetic feed — random but plausible vehicle telemetry.

Learn: Values are drawn uniformly from FIELD_RANGES, which is the only
contract this feed has. Pass a seeded random.Random for reproducible
output in tests.
"""

import random
from datetime import datetime, timezone
from typing import Any, Optional

from telemetry_relay.feeds.base import Feed
from telemetry_relay.realtime.registry import ConnectionRegistry

# (low, high) inclusive bounds per numeric field
FIELD_RANGES: dict[str, tuple[float, float]] = {
    "speed": (0.0, 120.0),  # km/h
    "acceleration": (-3.0, 3.0),  # m/s²
    "fuel_consumption": (2.0, 15.0),  # L/100km
    "co2_emission": (50.0, 300.0),  # g/km
    "nox_emission": (0.0, 0.5),  # g/km
    "position_x": (0.0, 1000.0),  # m
    "position_y": (0.0, 1000.0),  # m
    "alignment_score": (0.0, 1.0),
}

VEHICLE_IDS = ("veh_0", "veh_1", "veh_2", "veh_3")
ROLES = ("leader", "follower")


class SyntheticFeed(Feed):
    """Emits one pseudo-random vehicle update per tick."""

    mode = "synthetic"
    default_interval = 3.0

    def __init__(
        self,
        registry: ConnectionRegistry,
        interval: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(registry, interval)
        self.rng = rng or random.Random()

    def next_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "vehicle_id": self.rng.choice(VEHICLE_IDS),
            "role": self.rng.choice(ROLES),
            "platooning_status": self.rng.random() < 0.5,
            "source": "synthetic",
        }
        for name, (low, high) in FIELD_RANGES.items():
            message[name] = round(self.rng.uniform(low, high), 2)
        return message
