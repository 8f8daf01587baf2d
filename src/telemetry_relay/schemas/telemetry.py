"""Pydantic schemas for vehicle telemetry and ingest responses.

Learn: The relay doesn't own the telemetry schema — the simulator does.
VehicleTelemetry therefore allows extra fields and passes them through.
The known numeric fields get a defensive coercion: anything missing,
non-numeric or non-finite becomes 0, so one bad record in a batch
degrades to zeros instead of failing the whole request.

platooning_status shows up as a bool from some simulator builds and as
"on"/"off" from others. It is passed through untouched.
"""

import math
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field

NUMERIC_DEFAULT = 0


def coerce_number(value: Any) -> Union[int, float]:
    """Best-effort numeric parse with a zero fallback.

    Ints stay ints, floats stay floats, numeric strings are parsed.
    Booleans, NaN/inf, None and anything unparseable fall back to 0.
    """
    if isinstance(value, bool):
        return NUMERIC_DEFAULT
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else NUMERIC_DEFAULT
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return NUMERIC_DEFAULT
        return parsed if math.isfinite(parsed) else NUMERIC_DEFAULT
    return NUMERIC_DEFAULT


Number = Annotated[Union[int, float], BeforeValidator(coerce_number)]


# ─── Telemetry ────────────────────────────────────────────


class VehicleTelemetry(BaseModel):
    """One vehicle update. Unknown fields pass through unchanged."""

    timestamp: Optional[Any] = None
    vehicle_id: Optional[Any] = None

    speed: Number = NUMERIC_DEFAULT
    acceleration: Number = NUMERIC_DEFAULT
    fuel_consumption: Number = NUMERIC_DEFAULT
    co2_emission: Number = NUMERIC_DEFAULT
    nox_emission: Number = NUMERIC_DEFAULT
    position_x: Number = NUMERIC_DEFAULT
    position_y: Number = NUMERIC_DEFAULT
    alignment_score: Number = NUMERIC_DEFAULT

    model_config = {"extra": "allow"}


NUMERIC_FIELDS = tuple(
    name for name in VehicleTelemetry.model_fields
    if name not in ("timestamp", "vehicle_id")
)


# ─── Ingest responses ─────────────────────────────────────


class IngestResult(BaseModel):
    status: str = "success"
    received_vehicles: int = Field(0, ge=0)
    connected_clients: int = Field(0, ge=0)


class IngestError(BaseModel):
    status: str = "error"
    message: str


# ─── Health ───────────────────────────────────────────────


class FeedStatus(BaseModel):
    mode: str
    running: bool


class HealthRead(BaseModel):
    status: str
    version: str
    connected_clients: int
    feed: FeedStatus
