"""
Jotbox Backend: Response Builder
================================

What:  Renders dispatch outcomes into JSON responses.
How:   Success payloads and JotboxError exceptions both become JSONResponse
       objects carrying the status code, the Access-Control-Allow-Origin
       header and, for errors, the standard envelope:

           {"error": "...", "message": "...", "details": {...}, "request_id": "..."}

Security: for 5xx errors the client gets a generic message and no details;
the exception context is logged server-side by the caller.
"""

from typing import Any, Dict, Optional

from starlette.responses import JSONResponse

from app.exceptions import JotboxError, MethodNotAllowedError
from app.middleware.request_id import request_id_var
from app.schemas.note import ErrorResponse

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."


def json_response(
    payload: Any,
    status_code: int = 200,
    allow_origin: str = "*",
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """JSON response with the cross-origin header every API response carries."""
    merged = {"Access-Control-Allow-Origin": allow_origin}
    if headers:
        merged.update(headers)
    return JSONResponse(content=payload, status_code=status_code, headers=merged)


def error_body(exc: JotboxError) -> Dict[str, Any]:
    """Envelope for `exc`; server errors never expose message or context."""
    if exc.status_code >= 500:
        body = ErrorResponse(
            error=exc.error_code,
            message=GENERIC_SERVER_ERROR,
            request_id=request_id_var.get(""),
        )
    else:
        body = ErrorResponse(
            error=exc.error_code,
            message=exc.message,
            details=exc.context or None,
            request_id=request_id_var.get(""),
        )
    return body.model_dump(exclude_none=True)


def error_response(exc: JotboxError, allow_origin: str = "*") -> JSONResponse:
    headers = None
    if isinstance(exc, MethodNotAllowedError):
        headers = {"Allow": ", ".join(exc.allowed)}
    return json_response(
        error_body(exc),
        status_code=exc.status_code,
        allow_origin=allow_origin,
        headers=headers,
    )
