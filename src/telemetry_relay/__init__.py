"""Telemetry Relay — live vehicle telemetry fan-out.

Accepts JSON telemetry from a driving simulator over HTTP and pushes
every update to the dashboards currently connected over WebSockets.
"""

__version__ = "0.1.0"
