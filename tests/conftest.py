"""Pytest configuration and shared fixtures for the test suite."""

import os
import uuid
from typing import AsyncGenerator, AsyncIterator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from kvstore.contracts import KeyValueStorage
from kvstore.storage.database import create_key_value_table
from kvstore.storage.memory import MemoryKeyValueStorage, MemoryStore
from kvstore.storage.postgres import PostgresKeyValueStorage
from kvstore.storage.sqlite import SqliteKeyValueStorage

SQLITE_MEMORY_URL = "sqlite+aiosqlite:///:memory:"
POSTGRES_URL = os.getenv("KVSTORE_TEST_POSTGRES_URL")

StorageFactory = Callable[[str], KeyValueStorage]

requires_postgres = pytest.mark.skipif(
    not POSTGRES_URL, reason="KVSTORE_TEST_POSTGRES_URL is not set"
)


async def collect(items: AsyncIterator[tuple[str, object]]) -> list[tuple[str, object]]:
    """Drain an async iterator of entries into a list."""
    return [item async for item in items]


async def create_engine_with_table(url: str) -> AsyncEngine:
    """Create an async engine and the key-value table."""
    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await create_key_value_table(conn)
    return engine


@pytest.fixture
async def sqlite_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite engine with the key-value table.

    Yields:
        Async engine bound to a single in-memory database
    """
    engine = await create_engine_with_table(SQLITE_MEMORY_URL)
    yield engine
    await engine.dispose()


@pytest.fixture(
    params=[
        "memory",
        "sqlite",
        pytest.param("postgres", marks=requires_postgres),
    ]
)
async def storage_factory(request: pytest.FixtureRequest) -> AsyncGenerator[StorageFactory, None]:
    """Build storages for any namespace over one shared backing store.

    Yields:
        Callable taking a namespace and returning a storage bound to it
    """
    if request.param == "memory":
        store: MemoryStore = {}
        yield lambda namespace: MemoryKeyValueStorage(store, namespace)
        return

    if request.param == "sqlite":
        engine = await create_engine_with_table(SQLITE_MEMORY_URL)
        yield lambda namespace: SqliteKeyValueStorage(engine, namespace)
        await engine.dispose()
        return

    # Postgres is shared between runs, so namespaces get a unique prefix
    engine = await create_engine_with_table(POSTGRES_URL or "")
    prefix = uuid.uuid4().hex
    created: list[PostgresKeyValueStorage] = []

    def make(namespace: str) -> PostgresKeyValueStorage:
        storage = PostgresKeyValueStorage(engine, f"{prefix}:{namespace}")
        created.append(storage)
        return storage

    yield make
    for storage in created:
        await storage.clear()
    await engine.dispose()


@pytest.fixture
def storage(storage_factory: StorageFactory) -> KeyValueStorage:
    """Storage bound to the ``main`` namespace."""
    return storage_factory("main")
