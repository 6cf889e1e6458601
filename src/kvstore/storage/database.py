"""Database configuration and engine management.

This module wraps the SQLAlchemy async engine the SQL backends are bound to,
and creates the key-value table.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from kvstore.observability.logging import get_logger
from kvstore.storage.base_model import Base
from kvstore.storage.models import key_value_table

logger = get_logger(__name__)


class DatabaseConfig:
    """Database configuration.

    Attributes:
        url: Async database connection URL (aiosqlite or asyncpg)
        echo: Whether to log SQL statements (default: False)
        pool_size: Connection pool size (default: 5)
        max_overflow: Maximum overflow connections (default: 10)
    """

    def __init__(
        self,
        url: str = "sqlite+aiosqlite:///:memory:",
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
    ):
        self.url = url
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow


async def create_key_value_table(connection: AsyncConnection) -> None:
    """Create the key-value table if it does not exist yet.

    Args:
        connection: Connection to run the DDL on
    """
    await connection.run_sync(Base.metadata.create_all, tables=[key_value_table], checkfirst=True)


class Database:
    """Async engine owner for the SQL backends.

    Example:
        >>> db = Database(DatabaseConfig(url="sqlite+aiosqlite:///./kv.db"))
        >>> await db.create_tables()
        >>> storage = SqliteKeyValueStorage(db.engine, "users")
    """

    def __init__(self, config: DatabaseConfig):
        """Initialize database with configuration.

        Args:
            config: Database configuration
        """
        self.config = config

        # Prepare engine kwargs (exclude pool settings for SQLite)
        engine_kwargs = {"echo": config.echo}
        if "sqlite" not in config.url:
            engine_kwargs["pool_size"] = config.pool_size
            engine_kwargs["max_overflow"] = config.max_overflow

        self.engine: AsyncEngine = create_async_engine(config.url, **engine_kwargs)

    @property
    def dialect_name(self) -> str:
        """Name of the SQLAlchemy dialect (``sqlite`` or ``postgresql``)."""
        return self.engine.dialect.name

    async def create_tables(self) -> None:
        """Create the key-value table if it does not exist."""
        async with self.engine.begin() as conn:
            await create_key_value_table(conn)
        logger.debug("kv_table_ready", dialect=self.dialect_name)

    async def drop_tables(self) -> None:
        """Drop the key-value table."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all, tables=[key_value_table])

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[AsyncConnection, None]:
        """Open a connection inside a transaction that commits on success.

        Yields:
            Async connection
        """
        async with self.engine.begin() as conn:
            yield conn

    async def close(self) -> None:
        """Close database engine and connections."""
        await self.engine.dispose()

    async def health_check(self) -> bool:
        """Check database connectivity.

        Returns:
            True if database is healthy

        Raises:
            Exception if database connection fails
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
