"""
Jotbox Backend: Note Dispatcher (request orchestrator)
======================================================

What:  Turns one HTTP request into one scoped storage operation and renders
       the outcome.
How:   Composes the identity resolver, router, codec, storage backend and
       response builder. Stateless apart from its collaborators.
Who:   Called by NotesAPIMiddleware for every request.

Dispatch Flow:
    ┌──────────┐   ┌──────────┐   ┌──────────┐   ┌──────────┐   ┌──────────┐
    │  Prefix  │──▶│ Identity │──▶│  Router  │──▶│ Backend  │──▶│ Response │
    │  check   │   │ (scope)  │   │ (action) │   │ (CRUD)   │   │ builder  │
    └──────────┘   └──────────┘   └──────────┘   └──────────┘   └──────────┘
         │ outside the API prefix
         ▼
    PASS_THROUGH: the surrounding application serves the request

    Identity, routing and body validation all complete before the backend
    is touched. Any failure after that point, including an unexpected
    exception, is rendered here: nothing escapes the dispatch boundary.

Backend Calls:
    - every call runs under its own timeout (settings.backend_timeout_seconds)
    - list is retried on BackendUnavailableError with exponential backoff
    - create, update and delete are never retried (a retried create
      duplicates the note)
"""

import asyncio
import logging
from typing import Any, Awaitable, List, Tuple, TypeVar, Union

from starlette.requests import Request
from starlette.responses import Response
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.config import Settings
from app.exceptions import BackendError, BackendUnavailableError, JotboxError
from app.identity import resolve_scope
from app.middleware.request_id import request_id_var
from app.models.note import Note
from app.responses import error_response, json_response
from app.routing import PASS_THROUGH, Action, PassThrough, Route, is_api_path, resolve_route
from app.schemas.note import DeleteResponse, note_to_wire, parse_create_body, parse_update_body
from app.storage.base import NoteBackend

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NoteDispatcher:
    """
    Maps (method, path, identity) onto a NoteBackend operation.

    Responsibilities:
        - dispatch(): full request handling, or PASS_THROUGH
        - execute(): run a resolved Route against the backend

    Error Handling Strategy:
        JotboxError subclasses render with their own status code. Any other
        exception is logged with its traceback and rendered as a generic 500.
    """

    def __init__(self, backend: NoteBackend, settings: Settings):
        self.backend = backend
        self.settings = settings

    async def dispatch(self, request: Request) -> Union[Response, PassThrough]:
        """
        Handle `request` if it is addressed to the notes API.

        Returns:
            A JSON response, or PASS_THROUGH for paths outside the API prefix.
        """
        path = request.url.path
        if not is_api_path(path, self.settings.api_prefix):
            return PASS_THROUGH

        allow_origin = self.settings.cors_allow_origin
        rid = request_id_var.get("")
        try:
            scope = resolve_scope(request.headers, self.settings.identity_header)
            route = resolve_route(request.method, path, self.settings.api_prefix)
            if route is PASS_THROUGH:
                return PASS_THROUGH
            body = b""
            if route.action in (Action.CREATE, Action.UPDATE):
                body = await request.body()
            payload, status = await self.execute(route, scope, body)
            return json_response(payload, status_code=status, allow_origin=allow_origin)

        except JotboxError as e:
            if e.status_code >= 500:
                logger.error(
                    "[%s] %s %s failed: %s | Context: %s",
                    rid, request.method, path, e.message, e.context,
                    exc_info=e.__cause__ is not None,
                )
            else:
                logger.info("[%s] %s %s rejected: %s", rid, request.method, path, e.error_code)
            return error_response(e, allow_origin=allow_origin)

        except Exception as e:
            logger.error(
                "[%s] Unexpected error dispatching %s %s: %s",
                rid, request.method, path, str(e),
                exc_info=True,
            )
            return error_response(
                BackendError(context={"error_type": type(e).__name__}),
                allow_origin=allow_origin,
            )

    async def execute(self, route: Route, scope: str, body: bytes = b"") -> Tuple[Any, int]:
        """
        Run `route` for `scope` and return (payload, status_code).

        Bodies are validated before the backend is called.
        """
        if route.action is Action.LIST:
            notes = await self._list_with_retry(scope)
            return [note_to_wire(n) for n in notes], 200

        if route.action is Action.CREATE:
            data = parse_create_body(body)
            note = await self._call(
                self.backend.create_note(scope, data.content, data.title)
            )
            return note_to_wire(note), 201

        if route.action is Action.UPDATE:
            data = parse_update_body(body)
            note = await self._call(
                self.backend.update_note(scope, route.note_id, data.content, data.title)
            )
            return note_to_wire(note), 200

        await self._call(self.backend.delete_note(scope, route.note_id))
        return DeleteResponse().model_dump(), 200

    async def _call(self, operation: Awaitable[T]) -> T:
        """Await one backend call under the configured timeout."""
        try:
            return await asyncio.wait_for(
                operation, timeout=self.settings.backend_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise BackendUnavailableError(
                context={
                    "error_type": "TimeoutError",
                    "timeout_seconds": self.settings.backend_timeout_seconds,
                },
            ) from e

    async def _list_with_retry(self, scope: str) -> List[Note]:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(BackendUnavailableError),
            stop=stop_after_attempt(self.settings.list_retry_attempts),
            wait=wait_exponential_jitter(
                initial=self.settings.retry_min_wait,
                max=self.settings.retry_max_wait,
                jitter=self.settings.retry_min_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._call(self.backend.list_notes(scope))
