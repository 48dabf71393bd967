from __future__ import annotations

import logging
import traceback
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

log = logging.getLogger("api_usage.errors")


class SafeErrorMiddleware(BaseHTTPMiddleware):
    """
    Turn an unhandled error in /log or the scrape endpoint into an opaque 500.

    The gateway only sees the status. The traceback, with the request method
    and path, goes to the exporter log under ``api_usage.errors``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            log.error(
                "Unhandled error: %s method=%s path=%s\n%s",
                str(e),
                request.method,
                request.url.path,
                traceback.format_exc(),
            )
            return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})
