"""Request ID middleware — correlate producer posts with relay logs.

Learn: Every HTTP request gets an ID, either from the incoming
X-Request-ID header (simulators can set their own tick ID) or a fresh
UUID. It is bound to structlog's contextvars so the ingest.* and
registry.* entries emitted while handling the request carry it, and it
is echoed back in the response header.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID and log its outcome."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.debug(
            "http.request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response
