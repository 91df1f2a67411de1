"""
Jotbox Backend: Request ID Middleware
=====================================

What:  Assigns a correlation ID to each request and echoes it in the
       configured response header (settings.request_id_header).
How:   A client-supplied ID is reused only when it is a short token of
       letters, digits, '.', '_' or '-'. Anything else is replaced by a
       generated 8-character ID, so a client cannot smuggle arbitrary text
       into log lines or error envelopes.
When:  Outermost middleware, so every log line of a request can carry it.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

# Coroutine-local: concurrent requests share one thread
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def accept_request_id(candidate: str) -> str:
    """Return `candidate` if it is a safe correlation token, else a fresh ID."""
    if candidate and REQUEST_ID_PATTERN.match(candidate):
        return candidate
    return new_request_id()


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Accept the client's ID from `header_name` if it is a safe token
        2. Otherwise generate one
        3. Store it in the ContextVar and on request.state
        4. Echo it under `header_name`
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = accept_request_id(request.headers.get(self.header_name, ""))
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[self.header_name] = rid
        return response
