"""
Jotbox Backend: Application Package Initializer
===============================================

What: Marks the `app` directory as a Python package.
Who:  Imported by uvicorn (`app.main:app`), pytest, and every module below.

Architecture Note:
    Every request to the notes API flows through one pipeline:

    ┌─────────────────────────────────────┐
    │   Middleware (NotesAPIMiddleware)   │  ← pass-through for non-API paths
    ├─────────────────────────────────────┤
    │  Identity → Router → Dispatcher     │  ← scope, action, note id
    ├─────────────────────────────────────┤
    │  Storage Backend (NoteBackend ABC)  │  ← PrefixStore | RelationalStore
    ├─────────────────────────────────────┤
    │        Response Builder             │  ← JSON envelope + CORS header
    └─────────────────────────────────────┘

    The backend is chosen once from configuration; nothing above the storage
    layer knows which variant is running.
"""

__version__ = "1.0.0"
