"""Ingest parsing tests — payload shapes, coercion, timestamps.

Learn: These exercise parse_body/extract_messages directly, without HTTP.
The route-level behaviour (status codes, envelopes) lives in
test_ingest_api.py.
"""

import json

import pytest

from telemetry_relay.realtime.registry import ConnectionRegistry
from telemetry_relay.schemas.telemetry import NUMERIC_FIELDS, VehicleTelemetry, coerce_number
from telemetry_relay.services.ingest_service import (
    IngestService,
    MalformedPayload,
    UnsupportedPayloadShape,
    extract_messages,
    parse_body,
)

T = "2024-01-01T00:00:00Z"


# ─── parse_body ───────────────────────────────────────────


@pytest.mark.parametrize(
    "body",
    [b"", b"{not json", b'{"speed": 1', b"\xff\xfe\x00garbage", b'{"speed": NaN}'],
)
def test_parse_body_rejects_malformed(body):
    with pytest.raises(MalformedPayload):
        parse_body(body)


def test_parse_body_accepts_utf8_object():
    assert parse_body('{"vehicle_id": "véh"}'.encode()) == {"vehicle_id": "véh"}


# ─── Shapes ───────────────────────────────────────────────


def test_single_object_forwarded_as_is():
    payload = {"vehicle_id": "v1", "speed": "fast", "platooning_status": "on"}
    extracted = extract_messages(payload)
    assert extracted.messages == [payload]


def test_empty_object_yields_nothing():
    assert extract_messages({}).messages == []


@pytest.mark.parametrize("payload", [[1, 2], "text", 42, None])
def test_non_object_rejected(payload):
    with pytest.raises(UnsupportedPayloadShape):
        extract_messages(payload)


def test_vehicles_must_be_a_list():
    with pytest.raises(UnsupportedPayloadShape):
        extract_messages({"timestamp": T, "vehicles": {"vehicle_id": "v1"}})


def test_batch_expands_in_order_with_shared_timestamp():
    payload = {
        "timestamp": T,
        "vehicles": [
            {"vehicle_id": "v1", "speed": 50},
            {"vehicle_id": "v2", "speed": "abc", "timestamp": "stale"},
        ],
    }
    messages = extract_messages(payload).messages

    assert [m["vehicle_id"] for m in messages] == ["v1", "v2"]
    assert all(m["timestamp"] == T for m in messages)
    assert messages[0]["speed"] == 50
    assert messages[1]["speed"] == 0


def test_batch_defaults_missing_numeric_fields():
    message = extract_messages({"timestamp": T, "vehicles": [{"vehicle_id": "v1"}]}).messages[0]
    for name in NUMERIC_FIELDS:
        assert message[name] == 0


def test_batch_passes_unknown_fields_through():
    vehicle = {"vehicle_id": "v1", "role": "leader", "platooning_status": True, "lane": "2"}
    message = extract_messages({"timestamp": T, "vehicles": [vehicle]}).messages[0]
    assert message["role"] == "leader"
    assert message["platooning_status"] is True
    assert message["lane"] == "2"


def test_batch_skips_non_object_elements():
    payload = {"timestamp": T, "vehicles": [{"vehicle_id": "v1"}, "junk", 7, {"vehicle_id": "v2"}]}
    extracted = extract_messages(payload)
    assert [m["vehicle_id"] for m in extracted.messages] == ["v1", "v2"]
    assert extracted.skipped == 2


def test_batch_without_timestamp_keeps_vehicle_or_receipt_time():
    payload = {"vehicles": [{"vehicle_id": "v1", "timestamp": "own"}, {"vehicle_id": "v2"}]}
    messages = extract_messages(payload, received_at="receipt").messages
    assert messages[0]["timestamp"] == "own"
    assert messages[1]["timestamp"] == "receipt"


def test_empty_batch():
    assert extract_messages({"timestamp": T, "vehicles": []}).messages == []


# ─── Coercion ─────────────────────────────────────────────


@pytest.mark.parametrize(
    "raw, expected",
    [
        (50, 50),
        (12.5, 12.5),
        ("42", 42),
        (" 3.25 ", 3.25),
        ("abc", 0),
        ("", 0),
        (None, 0),
        (True, 0),
        (float("nan"), 0),
        ("inf", 0),
        ([1], 0),
    ],
)
def test_coerce_number(raw, expected):
    assert coerce_number(raw) == expected


def test_coerce_keeps_ints_as_ints():
    assert isinstance(VehicleTelemetry(speed=50).speed, int)
    assert isinstance(VehicleTelemetry(speed="50.5").speed, float)


# ─── Service ──────────────────────────────────────────────


@pytest.mark.asyncio
async def test_service_broadcasts_each_vehicle(make_connection):
    registry = ConnectionRegistry()
    conn = make_connection()
    await registry.register(conn)

    body = json.dumps({"timestamp": T, "vehicles": [{"vehicle_id": "v1"}, {"vehicle_id": "v2"}]})
    result = await IngestService(registry).ingest(body.encode())

    assert result.received_vehicles == 2
    assert result.connected_clients == 1
    assert conn.pending == 2


@pytest.mark.asyncio
async def test_service_malformed_does_not_broadcast(make_connection):
    registry = ConnectionRegistry()
    conn = make_connection()
    await registry.register(conn)

    with pytest.raises(MalformedPayload):
        await IngestService(registry).ingest(b"{oops")

    assert conn.pending == 0
    assert registry.count == 1
