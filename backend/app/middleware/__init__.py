# Middleware package init
"""
Jotbox Backend: Middleware Package
==================================

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → [Notes API] → Routes

    1. Request ID: correlation ID for logging and error envelopes
    2. Logging: method, path, status, duration with the request ID
    3. CORS: answers preflight OPTIONS before the notes API sees them
    4. Notes API: dispatches API paths, passes every other path through to
       the routes (health check, static files)

    Starlette runs middleware in reverse order of `add_middleware`, so
    `create_app()` adds them innermost first.
"""
