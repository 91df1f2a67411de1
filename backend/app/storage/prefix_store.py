"""
Jotbox Backend: Prefix Store (key/value backend)
================================================

What:  NoteBackend over Redis, isolating scopes by key prefix.
How:   Each note is one JSON blob (see `app.schemas.note.StoredNote`) under

           {namespace}:{scope}:{note_id}

       Listing a scope is a SCAN over "{namespace}:{scope}:*" followed by one
       GET per key.

Consistency Notes (known limitations, not bugs):
    - list_notes is not a snapshot. SCAN and the per-key GETs are separate
      round-trips, so a note created or deleted mid-scan may or may not
      appear. Keys deleted between SCAN and GET are skipped.
    - update_note is read-modify-write (GET, merge, SET) with no
      optimistic-concurrency check. Two concurrent updates of the same note
      race and the later SET silently wins (lost update). The SET uses XX,
      so a note deleted mid-update is reported as not found instead of being
      written back.

Scope Safety:
    The scope is client-supplied and may contain glob metacharacters or the
    ':' separator. The SCAN pattern escapes glob characters, and keys whose
    suffix after the prefix is not a canonical note id are ignored, so scope
    "a" never sees the keys of scope "a:b".
"""

import logging
import re
from typing import List, Optional, Union

from redis import exceptions as redis_errors
from redis.asyncio import Redis

from app.exceptions import BackendError, BackendUnavailableError, NotFoundError
from app.models.note import Note
from app.routing import is_note_id
from app.schemas.note import decode_stored, encode_stored
from app.storage.base import Clock, NoteBackend, new_note_id, now_ms, sort_newest_first

logger = logging.getLogger(__name__)

# Characters with special meaning in Redis MATCH patterns
_GLOB_CHARS = re.compile(r"([*?\[\]\\^])")

# Keys requested per SCAN round-trip
SCAN_BATCH = 100


def escape_glob(value: str) -> str:
    """Escape Redis glob metacharacters so `value` matches literally."""
    return _GLOB_CHARS.sub(r"\\\1", value)


def _as_text(value: Union[str, bytes]) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


class PrefixStore(NoteBackend):
    """
    Redis-backed note store.

    Args:
        client:    redis.asyncio client (connection pool owned by the caller)
        namespace: first key segment, "notes" by default
        clock:     epoch-millisecond clock, injectable for tests
    """

    name = "prefix"

    def __init__(self, client: Redis, namespace: str = "notes", clock: Clock = now_ms):
        self.client = client
        self.namespace = namespace
        self.clock = clock

    # ── Key scheme ────────────────────────────────────────────────────────

    def _prefix(self, scope: str) -> str:
        return f"{self.namespace}:{scope}:"

    def _key(self, scope: str, note_id: str) -> str:
        """
        Key of the note addressed by (scope, note_id).

        Raises:
            NotFoundError: `note_id` is not a canonical note id. Anything else
                           could carry a separator and address a key under a
                           longer scope ("b:<id>" under scope "a" is "a:b"'s note).
        """
        if not is_note_id(note_id):
            raise NotFoundError(resource="note", resource_id=note_id)
        return self._prefix(scope) + note_id

    # ── Operations ────────────────────────────────────────────────────────

    async def list_notes(self, scope: str) -> List[Note]:
        prefix = self._prefix(scope)
        pattern = escape_glob(prefix) + "*"
        notes: List[Note] = []
        try:
            async for raw_key in self.client.scan_iter(match=pattern, count=SCAN_BATCH):
                key = _as_text(raw_key)
                note_id = key[len(prefix):]
                if not key.startswith(prefix) or not is_note_id(note_id):
                    continue
                blob = await self.client.get(key)
                if blob is None:
                    # deleted between SCAN and GET
                    continue
                notes.append(decode_stored(blob, scope, note_id))
        except redis_errors.RedisError as e:
            raise self._wrap(e, "list") from e
        return sort_newest_first(notes)

    async def create_note(
        self,
        scope: str,
        content: str,
        title: Optional[str] = None,
    ) -> Note:
        # title is not modeled by this backend
        timestamp = self.clock()
        note = Note(
            id=new_note_id(),
            scope=scope,
            content=content,
            created_at=timestamp,
            updated_at=timestamp,
        )
        try:
            await self.client.set(self._key(scope, note.id), encode_stored(note))
        except redis_errors.RedisError as e:
            raise self._wrap(e, "create") from e
        logger.info("Note %s created", note.id)
        return note

    async def update_note(
        self,
        scope: str,
        note_id: str,
        content: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Note:
        key = self._key(scope, note_id)
        try:
            blob = await self.client.get(key)
            if blob is None:
                raise NotFoundError(resource="note", resource_id=note_id)

            existing = decode_stored(blob, scope, note_id)
            updated = existing.merged(content=content, updated_at=self.clock())

            # Unconditional overwrite of whatever another writer stored since
            # the GET above; XX only refuses to recreate a deleted key.
            written = await self.client.set(key, encode_stored(updated), xx=True)
        except redis_errors.RedisError as e:
            raise self._wrap(e, "update") from e

        if not written:
            raise NotFoundError(resource="note", resource_id=note_id)
        logger.info("Note %s updated", note_id)
        return updated

    async def delete_note(self, scope: str, note_id: str) -> None:
        try:
            removed = await self.client.delete(self._key(scope, note_id))
        except redis_errors.RedisError as e:
            raise self._wrap(e, "delete") from e
        if not removed:
            raise NotFoundError(resource="note", resource_id=note_id)
        logger.info("Note %s deleted", note_id)

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except redis_errors.RedisError as e:
            logger.warning("Redis ping failed: %s", str(e))
            return False

    async def close(self) -> None:
        await self.client.aclose()

    @staticmethod
    def _wrap(exc: redis_errors.RedisError, operation: str) -> BackendError:
        context = {"operation": operation, "error_type": type(exc).__name__}
        if isinstance(exc, (redis_errors.ConnectionError, redis_errors.TimeoutError)):
            return BackendUnavailableError(context=context)
        return BackendError(context=context)
