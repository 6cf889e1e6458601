"""Build a storage from configuration."""

from typing import Optional

from kvstore.config import StorageConfig
from kvstore.contracts import KeyValueStorage
from kvstore.observability.logging import get_logger
from kvstore.storage.database import Database, DatabaseConfig
from kvstore.storage.memory import MemoryKeyValueStorage, MemoryStore
from kvstore.storage.postgres import PostgresKeyValueStorage
from kvstore.storage.sqlite import SqliteKeyValueStorage

logger = get_logger(__name__)


async def create_storage(
    config: StorageConfig, store: Optional[MemoryStore] = None
) -> tuple[KeyValueStorage, Optional[Database]]:
    """Create the storage selected by ``config.url``.

    SQL backends get their table created before being returned. The caller
    owns the returned database and should ``close()`` it.

    Args:
        config: Storage configuration
        store: Shared dictionary for the memory backend (a new one when None)

    Returns:
        Tuple of the storage and its Database (None for the memory backend)

    Raises:
        ValueError: If the URL scheme is not supported
    """
    backend = config.backend
    if backend == "memory":
        logger.info("kv_storage_created", backend=backend, namespace=config.namespace)
        return MemoryKeyValueStorage(store, config.namespace), None

    database = Database(
        DatabaseConfig(
            url=config.url,
            echo=config.echo,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
        )
    )
    storage_class = SqliteKeyValueStorage if backend == "sqlite" else PostgresKeyValueStorage
    storage = storage_class(database.engine, config.namespace)
    await storage.init()
    logger.info("kv_storage_created", backend=backend, namespace=config.namespace)
    return storage, database
