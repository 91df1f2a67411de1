"""
Jotbox Backend: Custom Exception Hierarchy
==========================================

What:  Application-specific exceptions for every failure the notes API reports.
How:   Each exception carries a user-facing message, a machine-readable
       `error_code`, the HTTP `status_code` it renders as, and an optional
       context dict that is logged but never returned for server errors.
Who:   Raised by the identity resolver, router, codec and storage backends;
       rendered by `app.responses.error_response`.

Exception Hierarchy:
    JotboxError (base)                  → 500
    ├── UnauthenticatedError            → 401 (identity header missing/empty)
    ├── ValidationError                 → 400 (client can fix the request)
    ├── NotFoundError                   → 404 (no note for this scope + id)
    ├── MethodNotAllowedError           → 405 (verb not valid for the path)
    └── BackendError                    → 500 (any storage-layer fault)
        └── BackendUnavailableError     → 500 (transport fault, retryable reads)
"""

from typing import Any, Dict, Iterable, Optional


class JotboxError(Exception):
    """
    Base exception for all Jotbox application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; only returned for 4xx errors)
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class UnauthenticatedError(JotboxError):
    """
    Raised when the request carries no identity token.

    The token is an opaque scope, not a credential. Its presence is the only
    thing checked.
    """

    status_code = 401
    error_code = "unauthenticated"

    def __init__(
        self,
        header: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["header"] = header
        super().__init__(
            message=f"Missing {header} header. The client must supply an identity token.",
            context=ctx,
        )
        self.header = header


class ValidationError(JotboxError):
    """
    Raised when client input fails validation.

    When:    Malformed JSON, non-object body, missing or mistyped fields,
             a mutating verb on the collection path without a note id.

    Example response:
        {
            "error": "validation_error",
            "message": "Field 'content' must be a string",
            "details": {"field": "content"}
        }
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(JotboxError):
    """
    Raised when a requested resource does not exist for the caller.

    A note owned by another scope is reported exactly like a note that never
    existed, so the response never confirms that an id is in use.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class MethodNotAllowedError(JotboxError):
    """Raised when the path matched but the verb is not supported for it."""

    status_code = 405
    error_code = "method_not_allowed"

    def __init__(
        self,
        method: str,
        allowed: Iterable[str],
        context: Optional[Dict[str, Any]] = None,
    ):
        self.method = method
        self.allowed = tuple(allowed)
        ctx = context or {}
        ctx["allowed"] = list(self.allowed)
        super().__init__(message=f"Method {method} not allowed.", context=ctx)


class BackendError(JotboxError):
    """
    Raised when the storage backend fails.

    When:    Query or command failed, stored data could not be decoded,
             a backend call exceeded its timeout.

    Security Note:
        The message returned to the client is always generic. The context
        (exception type, key, statement) is logged server-side only.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A storage error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class BackendUnavailableError(BackendError):
    """
    Raised when the backend could not be reached (connection refused, reset,
    timed out). Read-only operations may be retried on this error; mutations
    never are.
    """

    def __init__(
        self,
        message: str = "The storage backend is temporarily unavailable.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
