# Routes package init
"""
Jotbox Backend: Framework Routes
================================

Route Inventory:
    - health.py:  GET /health   (service and storage health check)

The notes API itself is not a FastAPI router: NotesAPIMiddleware dispatches
everything under the API prefix and passes other paths through to these
routes and to the optional static mount.
"""
