"""
Jotbox Backend: Health Check Route
==================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Pings the configured storage backend and reports aggregate status.
Who:   Docker health checks, load balancers, monitoring systems.

Status levels:
    - healthy:   backend reachable (HTTP 200)
    - unhealthy: backend unreachable (HTTP 503, stop routing traffic)

The path lies outside the API prefix: the notes dispatcher passes it
through to this router.
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app import __version__
from app.schemas.note import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Storage backend unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request) -> JSONResponse:
    """Probe the storage backend (SELECT 1 or PING) and report status."""
    backend = request.app.state.backend

    reachable = await backend.ping()
    if not reachable:
        logger.warning("Health check: %s backend unreachable", backend.name)

    body = HealthResponse(
        status="healthy" if reachable else "unhealthy",
        version=__version__,
        backend=backend.name,
        storage="connected" if reachable else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(status_code=200 if reachable else 503, content=body.model_dump())
