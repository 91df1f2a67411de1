"""
Jotbox Backend: Storage Backends
================================

What:  Interchangeable NoteBackend implementations and the factory that picks
       one from configuration.

Backend Inventory:
    - NoteBackend (abstract): scoped list/create/update/delete contract
    - PrefixStore:     Redis keys "{namespace}:{scope}:{id}", prefix SCAN
    - RelationalStore: SQL table with (id, scope)-conditioned statements

`build_backend()` is the only place that knows both variants exist.
"""

import logging

from redis.asyncio import Redis

from app.config import Settings
from app.database import build_engine, build_session_factory
from app.storage.base import NoteBackend
from app.storage.prefix_store import PrefixStore
from app.storage.relational_store import RelationalStore

logger = logging.getLogger(__name__)

__all__ = ["NoteBackend", "PrefixStore", "RelationalStore", "build_backend"]


def build_backend(settings: Settings) -> NoteBackend:
    """
    Construct the backend named by `settings.storage_backend`.

    Clients and pools are created lazily by their libraries: nothing connects
    until the first operation (or the startup schema check).
    """
    if settings.storage_backend == "prefix":
        client = Redis.from_url(settings.redis_url, decode_responses=True)
        logger.info("Storage backend: prefix (namespace=%s)", settings.key_namespace)
        return PrefixStore(client, namespace=settings.key_namespace)

    engine = build_engine(settings)
    logger.info("Storage backend: relational (dialect=%s)", engine.dialect.name)
    return RelationalStore(
        engine,
        build_session_factory(engine),
        default_title=settings.default_title,
    )
