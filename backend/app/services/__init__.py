# Services package init
"""
Jotbox Backend: Services Layer
==============================

What:  Request orchestration between the HTTP edge and the storage backends.
How:   Services accept a request (or a resolved Route), apply the API's
       rules, and call a NoteBackend. They never import a concrete backend.

Service Inventory:
    - NoteDispatcher: identity → route → body → backend → response, with
      per-call timeouts and retry of the read-only list operation
"""
