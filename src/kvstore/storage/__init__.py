"""Key-value storage backends.

Memory, SQLite and Postgres implementations of the storage contract, plus the
engine management and factory used to build them.
"""

from kvstore.storage.database import Database, DatabaseConfig
from kvstore.storage.factory import create_storage
from kvstore.storage.memory import MemoryKeyValueStorage, MemoryStore
from kvstore.storage.models import KEY_VALUE_TABLE_NAME, KeyValueModel
from kvstore.storage.postgres import PostgresKeyValueStorage
from kvstore.storage.sql import SqlKeyValueStorage
from kvstore.storage.sqlite import SqliteKeyValueStorage

__all__ = [
    "Database",
    "DatabaseConfig",
    "KEY_VALUE_TABLE_NAME",
    "KeyValueModel",
    "MemoryKeyValueStorage",
    "MemoryStore",
    "PostgresKeyValueStorage",
    "SqlKeyValueStorage",
    "SqliteKeyValueStorage",
    "create_storage",
]
