"""
Jotbox Backend: FastAPI Application Factory
===========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance
       wired to one storage backend.
Who:   uvicorn (`uvicorn app.main:app`) and the test suite.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌────────┐ ┌─────────┐ ┌──────┐ ┌──────────────┐   │
    │  │ Req ID │→│ Logging │→│ CORS │→│ Notes API    │   │
    │  └────────┘ └─────────┘ └──────┘ └──────┬───────┘   │
    │                          pass-through   ▼           │
    │  Routes:       ┌──────────────┐  ┌──────────────┐   │
    │                │ GET /health  │  │ static (opt) │   │
    │                └──────────────┘  └──────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, ensure the relational schema if enabled
    Shutdown: close the backend (dispose engine / close Redis client)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app import __version__
from app.config import Settings, settings as default_settings
from app.exceptions import BackendError
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.notes_api import NotesAPIMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.responses import error_response
from app.routes import health
from app.services.note_service import NoteDispatcher
from app.storage import NoteBackend, RelationalStore, build_backend

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Output: stdout (captured by Docker / the process manager)
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that report every operation
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI, app_settings: Settings) -> None:
    """
    Render unexpected failures in framework routes (health, static) with the
    envelope the notes dispatcher uses. The dispatcher renders its own
    errors and never lets one escape.
    """

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all: stack trace logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return error_response(
            BackendError(context={"error_type": type(exc).__name__}),
            allow_origin=app_settings.cors_allow_origin,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    app_settings: Optional[Settings] = None,
    backend: Optional[NoteBackend] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: configuration; defaults to the environment-loaded singleton
        backend:      storage backend; defaults to `build_backend(app_settings)`

    Returns:
        Fully configured FastAPI instance. The backend is reachable at
        `app.state.backend`.
    """
    app_settings = app_settings or default_settings
    if backend is None:
        backend = build_backend(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(app_settings.log_level)
        logger.info("=" * 60)
        logger.info("Jotbox Backend %s starting (backend=%s)", __version__, backend.name)

        if isinstance(backend, RelationalStore) and app_settings.create_schema:
            try:
                await backend.create_schema()
            except BackendError as e:
                # Keep serving: /health reports the backend as unreachable
                logger.error("Schema setup failed: %s | Context: %s", e.message, e.context)

        logger.info(
            "Notes API under %s, identity header %s",
            app_settings.api_prefix,
            app_settings.identity_header,
        )
        logger.info("=" * 60)

        yield

        logger.info("Jotbox Backend shutting down...")
        await backend.close()
        logger.info("Shutdown complete.")

    app = FastAPI(
        title="Jotbox API",
        description=(
            "Personal note storage. Notes are partitioned by an opaque identity "
            "token sent in a request header."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.backend = backend

    # ── Register Middleware ───────────────────────────────────────────────
    # Added innermost first; execution order is the reverse:
    # RequestID → Logging → GZip → CORS → NotesAPI → routes
    app.add_middleware(
        NotesAPIMiddleware,
        dispatcher=NoteDispatcher(backend, app_settings),
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=False,     # identity travels in a header, not cookies
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
        expose_headers=[app_settings.request_id_header],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(
        RequestLoggingMiddleware,
        api_prefix=app_settings.api_prefix,
        quiet_paths=app_settings.access_log_quiet_paths_list,
    )
    app.add_middleware(RequestIDMiddleware, header_name=app_settings.request_id_header)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app, app_settings)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    if app_settings.static_dir:
        # Mounted last: it owns every path the routes above do not
        app.mount(
            "/",
            StaticFiles(directory=app_settings.static_dir, html=True),
            name="static",
        )

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `app.main:app` to be importable
app = create_app()
