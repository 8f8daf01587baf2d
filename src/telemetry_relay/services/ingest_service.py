"""Ingest service — turn a producer's POST body into broadcast messages.

Learn: The simulator sends one of two shapes:

  single:  {"vehicle_id": "v1", "speed": 50, ...}
  batch:   {"timestamp": "...", "vehicles": [{...}, {...}]}

A single object is forwarded as-is. A batch is expanded into one message
per vehicle, each coerced through VehicleTelemetry and stamped with the
batch's shared timestamp. Messages go to the registry in list order.

Nothing here touches the registry until the whole body has parsed, so a
malformed request can never leave half a batch behind.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from telemetry_relay.realtime.registry import ConnectionRegistry
from telemetry_relay.schemas.telemetry import IngestResult, VehicleTelemetry

logger = structlog.get_logger()

BATCH_KEY = "vehicles"


class MalformedPayload(Exception):
    """Raised when the request body is not valid JSON."""


class UnsupportedPayloadShape(Exception):
    """Raised when the body is valid JSON but not a shape we relay."""


@dataclass
class ExtractedMessages:
    messages: list[dict[str, Any]] = field(default_factory=list)
    skipped: int = 0


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def parse_body(body: bytes) -> Any:
    """Decode a request body as strict JSON (no NaN/Infinity)."""
    try:
        return json.loads(body, parse_constant=_reject_constant)
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise MalformedPayload(f"Invalid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedPayload("Invalid JSON: nested too deeply") from e


def extract_messages(
    payload: Any,
    received_at: Optional[str] = None,
) -> ExtractedMessages:
    """Split a decoded payload into per-vehicle messages.

    Learn: Batch elements that aren't objects are skipped and counted,
    they never abort the rest of the batch. When neither the batch nor
    the element carries a timestamp, the relay's receipt time is used.
    """
    if not isinstance(payload, dict):
        raise UnsupportedPayloadShape(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    if BATCH_KEY not in payload:
        if not payload:
            return ExtractedMessages()
        return ExtractedMessages(messages=[payload])

    vehicles = payload[BATCH_KEY]
    if not isinstance(vehicles, list):
        raise UnsupportedPayloadShape(f"'{BATCH_KEY}' must be a list")

    shared_timestamp = payload.get("timestamp")
    fallback_timestamp = received_at or datetime.now(timezone.utc).isoformat()

    result = ExtractedMessages()
    for index, vehicle in enumerate(vehicles):
        if not isinstance(vehicle, dict):
            result.skipped += 1
            logger.warning(
                "ingest.vehicle_skipped",
                index=index,
                type=type(vehicle).__name__,
            )
            continue

        try:
            message = VehicleTelemetry.model_validate(vehicle).model_dump()
        except ValidationError as e:
            result.skipped += 1
            logger.warning("ingest.vehicle_invalid", index=index, error=str(e))
            continue

        if shared_timestamp is not None:
            message["timestamp"] = shared_timestamp
        elif message.get("timestamp") is None:
            message["timestamp"] = fallback_timestamp
        result.messages.append(message)

    return result


class IngestService:
    """Parses producer payloads and fans them out through the registry."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def ingest(self, body: bytes) -> IngestResult:
        """Parse, expand and broadcast one request body.

        Raises MalformedPayload or UnsupportedPayloadShape before any
        message is broadcast.
        """
        extracted = extract_messages(parse_body(body))

        delivered = 0
        for message in extracted.messages:
            delivered += await self.registry.broadcast(json.dumps(message))

        logger.info(
            "ingest.accepted",
            vehicles=len(extracted.messages),
            skipped=extracted.skipped,
            deliveries=delivered,
        )
        return IngestResult(
            received_vehicles=len(extracted.messages),
            connected_clients=self.registry.count,
        )
