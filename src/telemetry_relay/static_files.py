"""Dashboard document root.

Learn: Anything that isn't an API route or the WebSocket is looked up as a
file under static_dir ("/" serves index.html). Starlette's StaticFiles
does the heavy lifting; this subclass only adjusts two edges:

- files with an unknown extension go out as application/octet-stream
  instead of text/plain
- unreadable files answer 500 instead of 401
"""

import mimetypes
import os

import structlog
from starlette.exceptions import HTTPException
from starlette.responses import FileResponse, Response
from starlette.staticfiles import StaticFiles
from starlette.types import Scope

logger = structlog.get_logger()

DEFAULT_MEDIA_TYPE = "application/octet-stream"


class DocumentRoot(StaticFiles):
    """StaticFiles with relay-specific content types and error codes."""

    def __init__(self, directory: str | os.PathLike[str]):
        super().__init__(directory=directory, html=True, check_dir=False)

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as e:
            # StaticFiles reports PermissionError as 401
            if e.status_code == 401:
                logger.error("static.read_failed", path=path, error="permission denied")
                raise HTTPException(status_code=500) from e
            raise
        except OSError as e:
            logger.error("static.read_failed", path=path, error=str(e))
            raise HTTPException(status_code=500) from e

    def file_response(self, full_path, stat_result, scope, status_code=200) -> Response:
        response = super().file_response(full_path, stat_result, scope, status_code)
        media_type, _ = mimetypes.guess_type(str(full_path))
        if media_type is None and isinstance(response, FileResponse):
            response.headers["content-type"] = DEFAULT_MEDIA_TYPE
        return response
