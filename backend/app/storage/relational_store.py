"""
Jotbox Backend: Relational Store (SQL backend)
==============================================

What:  NoteBackend over one SQL table, isolating scopes by column condition.
How:   Async SQLAlchemy Core statements against `notes` (see NoteRecord):

    list    SELECT ... WHERE scope = :scope ORDER BY created_at DESC, id DESC
    create  INSERT INTO notes (...)
    update  UPDATE notes SET ... WHERE id = :id AND scope = :scope
    delete  DELETE FROM notes WHERE id = :id AND scope = :scope

    update and delete are single statements conditioned on BOTH id and
    scope. The affected row count is the only ownership check: zero rows
    means NotFoundError, whether the id never existed or belongs to another
    scope. The two cases are indistinguishable to the caller.

Each operation runs in its own transaction via `session_scope`.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, select, text, update
from sqlalchemy import exc as sa_errors
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.database import Base, session_scope
from app.exceptions import BackendError, BackendUnavailableError, NotFoundError
from app.models.note import Note, NoteRecord
from app.storage.base import Clock, NoteBackend, new_note_id, now_ms

logger = logging.getLogger(__name__)


class RelationalStore(NoteBackend):
    """
    SQLAlchemy-backed note store.

    Args:
        engine:          AsyncEngine (pool configured by `app.database`)
        session_factory: factory bound to `engine`
        default_title:   stored when the client supplies no title
        clock:           epoch-millisecond clock, injectable for tests
    """

    name = "relational"

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession],
        default_title: str = "(Untitled)",
        clock: Clock = now_ms,
    ):
        self.engine = engine
        self.session_factory = session_factory
        self.default_title = default_title
        self.clock = clock

    def _title(self, title: Optional[str]) -> str:
        return title or self.default_title

    async def create_schema(self) -> None:
        """Create the notes table and index when missing. No migrations."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except sa_errors.SQLAlchemyError as e:
            raise self._wrap(e, "create_schema") from e
        logger.info("Relational schema ensured (table=%s)", NoteRecord.__tablename__)

    # ── Operations ────────────────────────────────────────────────────────

    async def list_notes(self, scope: str) -> List[Note]:
        query = (
            select(NoteRecord)
            .where(NoteRecord.scope == scope)
            .order_by(NoteRecord.created_at.desc(), NoteRecord.id.desc())
        )
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(query)
                return [record.to_note() for record in result.scalars().all()]
        except sa_errors.SQLAlchemyError as e:
            raise self._wrap(e, "list") from e

    async def create_note(
        self,
        scope: str,
        content: str,
        title: Optional[str] = None,
    ) -> Note:
        record = NoteRecord(
            id=new_note_id(),
            scope=scope,
            title=self._title(title),
            content=content,
            created_at=self.clock(),
        )
        try:
            async with session_scope(self.session_factory) as session:
                session.add(record)
                await session.flush()
        except sa_errors.SQLAlchemyError as e:
            raise self._wrap(e, "create") from e
        logger.info("Note %s created", record.id)
        return record.to_note()

    async def update_note(
        self,
        scope: str,
        note_id: str,
        content: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Note:
        values: Dict[str, str] = {}
        if content is not None:
            values["content"] = content
        if title is not None:
            values["title"] = self._title(title)
        if not values:
            raise ValueError("update_note needs content or title")

        owned = (NoteRecord.id == note_id) & (NoteRecord.scope == scope)
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(
                    update(NoteRecord)
                    .where(owned)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFoundError(resource="note", resource_id=note_id)

                # Read back inside the same transaction
                row = await session.execute(select(NoteRecord).where(owned))
                note = row.scalar_one().to_note()
        except sa_errors.SQLAlchemyError as e:
            raise self._wrap(e, "update") from e
        logger.info("Note %s updated", note_id)
        return note

    async def delete_note(self, scope: str, note_id: str) -> None:
        try:
            async with session_scope(self.session_factory) as session:
                result = await session.execute(
                    delete(NoteRecord)
                    .where(NoteRecord.id == note_id, NoteRecord.scope == scope)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFoundError(resource="note", resource_id=note_id)
        except sa_errors.SQLAlchemyError as e:
            raise self._wrap(e, "delete") from e
        logger.info("Note %s deleted", note_id)

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def close(self) -> None:
        await self.engine.dispose()

    @staticmethod
    def _wrap(exc: sa_errors.SQLAlchemyError, operation: str) -> BackendError:
        context = {"operation": operation, "error_type": type(exc).__name__}
        connection_lost = isinstance(exc, sa_errors.DBAPIError) and exc.connection_invalidated
        if connection_lost or isinstance(
            exc, (sa_errors.OperationalError, sa_errors.InterfaceError, sa_errors.TimeoutError)
        ):
            return BackendUnavailableError(context=context)
        return BackendError(context=context)
