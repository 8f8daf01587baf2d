"""Real-time infrastructure — connection registry + WebSocket viewers.

Learn: Telemetry flows one way:
1. Producer → POST /data (or a diagnostic feed) → ConnectionRegistry.broadcast
2. Registry → per-viewer buffer → sender task → WebSocket → dashboard

Nothing is stored. A viewer that isn't connected when a message is
broadcast never sees it.
"""
