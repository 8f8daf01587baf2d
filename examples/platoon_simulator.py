#!/usr/bin/env python3
"""
Platoon simulator — a stand-in producer for the telemetry relay.

Drives three vehicles down a straight road and POSTs one batch per tick
to /data, the same shape the real driving simulator sends.
Run with: python examples/platoon_simulator.py [--ticks 100]

Requires: pip install httpx
Relay must be running: http://localhost:8080
"""

import argparse
import math
import sys
import time
from datetime import datetime, timezone

import httpx

BASE = "http://localhost:8080"
GAP_M = 12.0


def vehicle_state(index: int, t: float) -> dict:
    speed = 80 + 5 * math.sin(t / 10 + index)
    return {
        "vehicle_id": f"veh_{index}",
        "role": "leader" if index == 0 else "follower",
        "platooning_status": "on",
        "speed": round(speed, 2),
        "acceleration": round(0.5 * math.cos(t / 10 + index), 3),
        "fuel_consumption": round(4.5 + speed / 40, 2),
        "co2_emission": round(95 + speed * 0.6, 1),
        "position_x": round(speed / 3.6 * t - index * GAP_M, 2),
        "position_y": 0.0,
        "alignment_score": round(1 - 0.02 * index, 2),
    }


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--ticks", type=int, default=100)
    parser.add_argument("--interval", type=float, default=0.5)
    args = parser.parse_args()

    client = httpx.Client(base_url=BASE, timeout=5)

    # ── Health check ──────────────────────────────────────────────
    try:
        health = client.get("/api/v1/health").json()
    except httpx.ConnectError:
        print(f"Relay not reachable at {BASE}")
        sys.exit(1)
    print(f"Relay {health['version']}: {health['connected_clients']} viewer(s)")

    # ── Drive ─────────────────────────────────────────────────────
    for tick in range(args.ticks):
        t = tick * args.interval
        batch = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "vehicles": [vehicle_state(i, t) for i in range(3)],
        }
        resp = client.post("/data", json=batch)
        result = resp.json()
        print(f"tick {tick:4d}: {result['received_vehicles']} vehicles → "
              f"{result['connected_clients']} viewer(s)")
        time.sleep(args.interval)


if __name__ == "__main__":
    main()
