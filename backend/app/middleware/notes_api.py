"""
Jotbox Backend: Notes API Middleware
====================================

What:  Hands every request to the NoteDispatcher; requests the dispatcher
       does not handle continue down the application (health route, static
       assets, framework 404).
How:   The dispatcher returns either a Response or the PASS_THROUGH
       sentinel. Only the sentinel reaches `call_next`, so an API miss
       inside the prefix is a JSON 404, while a miss outside the prefix is
       left to whatever the application serves there.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.routing import PASS_THROUGH
from app.services.note_service import NoteDispatcher


class NotesAPIMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, dispatcher: NoteDispatcher):
        super().__init__(app)
        self.dispatcher = dispatcher

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        outcome = await self.dispatcher.dispatch(request)
        if outcome is PASS_THROUGH:
            return await call_next(request)
        return outcome
