"""Tests for HTTP middleware — CORS headers, request IDs.

Learn: The dashboard and simulator may live on other origins, so every
response must carry permissive CORS headers, and pre-flight OPTIONS must
get an empty 200 on any path.
"""

import pytest


@pytest.mark.asyncio
async def test_preflight_on_data(client):
    r = await client.options(
        "/data",
        headers={
            "Origin": "http://dashboard.local",
            "Access-Control-Request-Method": "POST",
        },
    )
    assert r.status_code == 200
    assert r.content == b""
    assert r.headers["Access-Control-Allow-Origin"] == "*"
    assert "POST" in r.headers["Access-Control-Allow-Methods"]
    assert "Content-Type" in r.headers["Access-Control-Allow-Headers"]


@pytest.mark.asyncio
async def test_bare_options_on_any_path(client):
    r = await client.options("/some/static/path.js")
    assert r.status_code == 200
    assert r.content == b""


@pytest.mark.asyncio
async def test_cors_headers_on_ingest_responses(client):
    ok = await client.post("/data", json={"vehicle_id": "v1"})
    bad = await client.post("/data", content=b"nope")
    assert ok.headers["Access-Control-Allow-Origin"] == "*"
    assert bad.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_cors_headers_on_404(client):
    r = await client.get("/missing.png")
    assert r.status_code == 404
    assert r.headers["Access-Control-Allow-Origin"] == "*"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/v1/health")
    r2 = await client.get("/api/v1/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID (e.g. a simulator tick ID) is echoed back."""
    r = await client.post(
        "/data",
        json={"vehicle_id": "v1"},
        headers={"X-Request-ID": "tick-000042"},
    )
    assert r.headers["X-Request-ID"] == "tick-000042"
