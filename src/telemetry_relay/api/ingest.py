"""Ingest API — the simulator posts telemetry here.

Learn: POST /data takes the raw body rather than a pydantic model so that
both payload shapes (single vehicle, batch) and malformed JSON are handled
by IngestService with the relay's own error envelope:

  200 {"status": "success", "received_vehicles": n, "connected_clients": c}
  400 {"status": "error", "message": "..."}

CORS pre-flight (OPTIONS) is answered by CorsHeadersMiddleware.
"""

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from telemetry_relay.dependencies import get_registry
from telemetry_relay.realtime.registry import ConnectionRegistry
from telemetry_relay.schemas.telemetry import IngestError, IngestResult
from telemetry_relay.services.ingest_service import (
    IngestService,
    MalformedPayload,
    UnsupportedPayloadShape,
)

logger = structlog.get_logger()
router = APIRouter()


def _get_service(registry: ConnectionRegistry = Depends(get_registry)) -> IngestService:
    return IngestService(registry)


@router.post(
    "/data",
    response_model=IngestResult,
    responses={400: {"model": IngestError}},
)
async def ingest_telemetry(
    request: Request,
    svc: IngestService = Depends(_get_service),
):
    """Fan one producer payload out to every connected viewer."""
    body = await request.body()
    try:
        return await svc.ingest(body)
    except (MalformedPayload, UnsupportedPayloadShape) as e:
        logger.warning("ingest.rejected", error=str(e), kind=type(e).__name__)
        return JSONResponse(
            status_code=400,
            content=IngestError(message=str(e)).model_dump(),
        )
