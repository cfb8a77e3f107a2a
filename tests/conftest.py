from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from beydex.config import settings
from beydex.models.beyblade import BeybladeXParts, CatalogEntry, CollectionItem
from beydex.models.db import Base
from beydex.services.object_store import ObjectStore


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite engine for testing.

    The driver's implicit transaction handling is disabled so that
    SAVEPOINT (session.begin_nested) behaves as on PostgreSQL.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_implicit_begin(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture
def store(tmp_path: Path) -> ObjectStore:
    """Object store rooted in a temporary directory."""
    return ObjectStore(tmp_path / "storage", settings.storage_public_url)


@asynccontextmanager
async def _test_client(
    async_engine: AsyncEngine, store: ObjectStore, raise_app_exceptions: bool = True
) -> AsyncGenerator[AsyncClient, None]:
    from beydex.db.database import get_session
    from beydex.main import app
    from beydex.services.object_store import get_object_store

    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session():
        async with async_session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_object_store] = lambda: store

    transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def client(async_engine: AsyncEngine, store: ObjectStore) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async test client with overridden database session and store."""
    async with _test_client(async_engine, store) as client:
        yield client


@pytest.fixture
async def lenient_client(
    async_engine: AsyncEngine, store: ObjectStore
) -> AsyncGenerator[AsyncClient, None]:
    """Like client, but unhandled errors come back as 500 responses instead of raising."""
    async with _test_client(async_engine, store, raise_app_exceptions=False) as client:
        yield client


def _make_entry(
    entry_id: int,
    name: str,
    series: str = "Beyblade X",
    generation: str = "Basic Line",
    type: str = "Ataque",
    components=None,
) -> CatalogEntry:
    return CatalogEntry(
        id=entry_id,
        name=name,
        series=series,
        generation=generation,
        type=type,
        components=components,
    )


def _make_item(
    item_id: int,
    entry: CatalogEntry,
    user_id: str = "user-1",
    acquired_at: date | None = None,
    created_at: datetime | None = None,
) -> CollectionItem:
    return CollectionItem(
        id=item_id,
        user_id=user_id,
        beyblade_id=entry.id,
        acquired_at=acquired_at,
        created_at=created_at or datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
        beyblade=entry,
    )


@pytest.fixture
def dran_sword() -> CatalogEntry:
    return _make_entry(
        1,
        "DranSword",
        components=BeybladeXParts(blade="Dran Sword", ratchet="3-60", bit="Flat"),
    )


@pytest.fixture
def make_entry():
    """Factory for catalog entry domain models."""
    return _make_entry


@pytest.fixture
def make_item():
    """Factory for collection item domain models."""
    return _make_item


@pytest.fixture
def seed(async_engine: AsyncEngine):
    """Persist ORM rows in their own committed transaction; returns their ids."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async def _seed(*rows) -> list[int]:
        async with async_session() as session:
            session.add_all(rows)
            await session.commit()
            return [row.id for row in rows]

    return _seed
