"""
Jotbox Backend: Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── fake_clock:       deterministic epoch-ms clock (+1s per call)
    ├── prefix_store:     PrefixStore over fakeredis
    ├── relational_store: RelationalStore over in-memory SQLite
    ├── backend:          parametrized over both stores
    ├── test_settings:    Settings matching `backend`, fast retries
    ├── mock_backend:     AsyncMock NoteBackend for dispatcher tests
    ├── test_client:      HTTPX AsyncClient bound to a fresh app
    └── mock_client:      HTTPX AsyncClient bound to `mock_backend`
"""

import os

# Settings are read at import time; point them at SQLite before any app import
os.environ["STORAGE_BACKEND"] = "relational"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "WARNING"

from contextlib import asynccontextmanager
from typing import AsyncIterator
from unittest.mock import AsyncMock

import fakeredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.database import build_session_factory
from app.main import create_app
from app.storage import NoteBackend, PrefixStore, RelationalStore

IDENTITY_HEADER = "X-User-Token"


class FakeClock:
    """Epoch-ms clock that advances one second per reading."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1_000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


@asynccontextmanager
async def make_prefix_store(clock=None) -> AsyncIterator[PrefixStore]:
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    store = PrefixStore(client, namespace="notes", clock=clock or FakeClock())
    try:
        yield store
    finally:
        await client.aclose()


@asynccontextmanager
async def make_relational_store(clock=None) -> AsyncIterator[RelationalStore]:
    # StaticPool: every session shares the single in-memory database
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    store = RelationalStore(
        engine,
        build_session_factory(engine),
        default_title="(Untitled)",
        clock=clock or FakeClock(),
    )
    await store.create_schema()
    try:
        yield store
    finally:
        await engine.dispose()


def settings_for(backend_name: str, **overrides) -> Settings:
    values = dict(
        storage_backend=backend_name,
        database_url="sqlite+aiosqlite:///:memory:",
        identity_header=IDENTITY_HEADER,
        api_prefix="/api",
        backend_timeout_seconds=2.0,
        list_retry_attempts=3,
        retry_min_wait=0,
        retry_max_wait=0,
        log_level="WARNING",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest_asyncio.fixture
async def prefix_store(fake_clock):
    async with make_prefix_store(fake_clock) as store:
        yield store


@pytest_asyncio.fixture
async def relational_store(fake_clock):
    async with make_relational_store(fake_clock) as store:
        yield store


@pytest_asyncio.fixture(params=["prefix", "relational"])
async def backend(request, fake_clock):
    """Each test using this fixture runs once per storage backend."""
    factory = make_prefix_store if request.param == "prefix" else make_relational_store
    async with factory(fake_clock) as store:
        yield store


@pytest.fixture
def test_settings(backend):
    return settings_for(backend.name)


@pytest.fixture
def mock_backend():
    """
    NoteBackend double with every operation as an AsyncMock.

    Usage:
        mock_backend.list_notes.return_value = []
        mock_backend.create_note.assert_not_awaited()
    """
    backend = AsyncMock(spec=NoteBackend)
    backend.name = "mock"
    backend.ping.return_value = True
    return backend


@asynccontextmanager
async def client_for(app) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def settings_factory():
    """Build Settings for a backend name with keyword overrides."""
    return settings_for


@pytest_asyncio.fixture
async def test_client(backend, test_settings):
    """
    HTTPX client for the app wired to `backend`.

    ASGITransport does not run the lifespan; the store fixtures already
    created the schema.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/api/notes", headers={"X-User-Token": "alice"})
    """
    app = create_app(test_settings, backend=backend)
    async with client_for(app) as client:
        yield client


@pytest_asyncio.fixture
async def mock_client(mock_backend):
    """HTTPX client for an app wired to `mock_backend`."""
    app = create_app(settings_for("relational"), backend=mock_backend)
    async with client_for(app) as client:
        yield client
