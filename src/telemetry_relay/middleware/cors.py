"""Permissive CORS headers middleware.

Learn: The dashboard is often opened straight from disk or from another
dev server, and the simulator may post from anywhere, so every response
carries a wildcard Access-Control-Allow-Origin. Pre-flight OPTIONS
requests are answered here with 200 and an empty body, whatever the path.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

ALLOW_METHODS = "GET, POST, OPTIONS"
ALLOW_HEADERS = "Content-Type, Authorization, X-Request-ID"


class CorsHeadersMiddleware(BaseHTTPMiddleware):
    """Add cross-origin headers to all responses."""

    def __init__(self, app, allow_origin: str = "*"):
        super().__init__(app)
        self.allow_origin = allow_origin

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = self.allow_origin
        response.headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
        response.headers["Access-Control-Allow-Headers"] = ALLOW_HEADERS
        return response
