"""
Jotbox Backend: Request Logging Middleware
==========================================

What:  One access-log line per HTTP request.
How:   Measures the time spent below this middleware and logs method, path,
       status, duration, request ID and which part of the app served the
       request ("api" for the notes prefix, "app" for pass-through paths).
       The level follows the status: 5xx → ERROR, 4xx → WARNING, else INFO.
When:  Inside RequestIDMiddleware, so the request ID is already set.

Never logged: request bodies (note content) and request headers (the
identity header carries the caller's scope token).

Paths in settings.access_log_quiet_paths (default "/health", probed every
few seconds by orchestrators) are served without a log line.
"""

import logging
import time
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from app.middleware.request_id import request_id_var
from app.routing import is_api_path

logger = logging.getLogger("jotbox.access")


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        api_prefix: str = "/api",
        quiet_paths: Iterable[str] = ("/health",),
    ):
        super().__init__(app)
        self.api_prefix = api_prefix
        self.quiet_paths = frozenset(quiet_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.quiet_paths:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        area = "api" if is_api_path(path, self.api_prefix) else "app"
        rid = request_id_var.get("")
        status = response.status_code
        logger.log(
            level_for_status(status),
            "%s %s %d %.1fms [%s] (%s)",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            area,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "area": area,
            },
        )
        return response
