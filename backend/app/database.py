"""
Jotbox Backend: Database Engine and Sessions
============================================

What:  Async SQLAlchemy engine construction, session factory, and a
       transactional session scope for the relational backend.
How:   `build_engine()` turns settings into an AsyncEngine with connection
       pooling; `session_scope()` commits on success and rolls back on error.
Who:   The storage factory builds the engine once per application and hands
       the session factory to RelationalStore.

Connection Pooling (PostgreSQL):
    pool_size=20:      persistent connections for normal load
    max_overflow=10:   temporary connections for spikes (total max = 30)
    pool_pre_ping:     validates connections before use
    pool_recycle=3600: recycles connections every hour

    SQLite URLs (tests, local runs) skip the sizing arguments, which its
    pool classes do not accept.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which `RelationalStore.create_schema()`
    passes to `create_all`.
    """
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine described by `settings.database_url`."""
    url = make_url(settings.database_url)
    options = {
        # Echo SQL in DEBUG mode for development visibility
        "echo": settings.log_level == "DEBUG",
    }
    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(url, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to `engine`.

    expire_on_commit=False keeps ORM attributes readable after commit,
    outside the session context.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """
    Provide one transactional session.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the caller, which executes its statements
        3. On success: commits the transaction
        4. On error: rolls back, then re-raises for the caller to translate
        5. Always: closes the session (returns the connection to the pool)

    Example usage:
        async with session_scope(factory) as session:
            await session.execute(delete(NoteRecord).where(...))
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            # Cancellation from the request context also lands here
            await session.rollback()
            raise
        finally:
            await session.close()
