"""kvstore: namespaced key-value storage over memory, SQLite and Postgres."""

from kvstore.clamp import ClampSettings, clamp
from kvstore.config import StorageConfig
from kvstore.contracts import (
    InsertOrUpdateValue,
    KeyValueStorage,
    SupportsGetAndRemoveMany,
    SupportsHasMany,
)
from kvstore.errors import (
    KeysAlreadyExistStorageError,
    KeysNotFoundStorageError,
    StorageError,
    TypeStorageError,
    UnexpectedStorageError,
)

__version__ = "0.1.0"

__all__ = [
    "ClampSettings",
    "InsertOrUpdateValue",
    "KeyValueStorage",
    "KeysAlreadyExistStorageError",
    "KeysNotFoundStorageError",
    "StorageConfig",
    "StorageError",
    "SupportsGetAndRemoveMany",
    "SupportsHasMany",
    "TypeStorageError",
    "UnexpectedStorageError",
    "clamp",
]
