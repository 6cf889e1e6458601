"""Key-value storage contract.

This module defines the abstract interface every backend implements and the
optional capability interfaces a backend may opt into. All backends are bound
to a single namespace; entries in other namespaces are invisible to them.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import (
    AsyncIterator,
    Awaitable,
    Callable,
    Generic,
    Iterable,
    NamedTuple,
    Optional,
    Sequence,
    TypeVar,
)

from kvstore.clamp import ClampSettings

V = TypeVar("V")
T = TypeVar("T")


class InsertOrUpdateValue(NamedTuple, Generic[V]):
    """Pair of candidate values for ``insert_or_update_many``.

    Attributes:
        insert_value: Written when the key is absent
        update_value: Written when the key is present
    """

    insert_value: V
    update_value: V


def unique_items(items: Iterable[tuple[str, T]]) -> dict[str, T]:
    """Collapse duplicated keys in a batch; the last occurrence wins."""
    return dict(items)


def unique_keys(keys: Iterable[str]) -> list[str]:
    """Drop duplicated keys while keeping first-seen order."""
    return list(dict.fromkeys(keys))


class KeyValueStorage(ABC, Generic[V]):
    """Abstract namespaced key-value storage.

    Values are arbitrary JSON-serializable objects. Batch operations report a
    result per distinct key; empty input returns an empty result without
    touching storage.

    Raises (from every operation):
        StorageError: Recognized storage failures
        UnexpectedStorageError: Any other failure, chained to its cause
    """

    namespace: str

    def __aiter__(self) -> AsyncIterator[tuple[str, V]]:
        return self.iterate()

    @abstractmethod
    def iterate(self) -> AsyncIterator[tuple[str, V]]:
        """Iterate over the ``(key, value)`` pairs of the bound namespace.

        Each call starts a fresh iteration.
        """
        ...

    @abstractmethod
    async def clear(self) -> None:
        """Remove every entry in the bound namespace."""
        ...

    @abstractmethod
    async def size(self) -> int:
        """Return the number of entries in the bound namespace."""
        ...

    @abstractmethod
    async def get_many(self, keys: Sequence[str]) -> dict[str, Optional[V]]:
        """Return the stored value for each key, or None when missing.

        Args:
            keys: Keys to look up

        Returns:
            Mapping of every requested key to its value or None
        """
        ...

    @abstractmethod
    def get_starts_with_many(self, prefix: str) -> AsyncIterator[tuple[str, V]]:
        """Iterate over entries whose key starts with ``prefix``."""
        ...

    @abstractmethod
    def get_ends_with_many(self, suffix: str) -> AsyncIterator[tuple[str, V]]:
        """Iterate over entries whose key ends with ``suffix``."""
        ...

    @abstractmethod
    def get_includes_many(self, substring: str) -> AsyncIterator[tuple[str, V]]:
        """Iterate over entries whose key contains ``substring``."""
        ...

    @abstractmethod
    async def insert_if_not_exists_many(
        self, items: Sequence[tuple[str, V]], clamp: Optional[ClampSettings] = None
    ) -> dict[str, bool]:
        """Insert items whose key is absent.

        Args:
            items: ``(key, value)`` pairs
            clamp: Optional bounds applied to numeric values

        Returns:
            Mapping of key to True when inserted, False when it already existed
        """
        ...

    @abstractmethod
    async def update_if_exists_many(
        self, items: Sequence[tuple[str, V]], clamp: Optional[ClampSettings] = None
    ) -> dict[str, bool]:
        """Update items whose key is present. Absent keys are never created.

        Args:
            items: ``(key, value)`` pairs
            clamp: Optional bounds applied to numeric values

        Returns:
            Mapping of key to True when updated, False when not found
        """
        ...

    @abstractmethod
    async def insert_or_update_many(
        self,
        items: Sequence[tuple[str, InsertOrUpdateValue[V]]],
        clamp: Optional[ClampSettings] = None,
    ) -> None:
        """Write ``insert_value`` for absent keys and ``update_value`` for present ones.

        Args:
            items: ``(key, InsertOrUpdateValue)`` pairs
            clamp: Optional bounds applied to whichever value is written
        """
        ...

    @abstractmethod
    async def remove_if_exists_many(self, keys: Sequence[str]) -> dict[str, bool]:
        """Remove keys that exist.

        Returns:
            Mapping of key to True when removed, False when not found
        """
        ...

    @asynccontextmanager
    async def begin(self) -> AsyncIterator["KeyValueStorage[V]"]:
        """Open a transactional scope yielding the storage to use inside it.

        Backends without transaction support yield ``self``.
        """
        yield self

    async def transaction(self, fn: Callable[["KeyValueStorage[V]"], Awaitable[T]]) -> T:
        """Run ``fn`` against a transactional storage and return its result.

        Example:
            >>> await storage.transaction(lambda trx: trx.get_many(["a"]))
            {'a': 1}
        """
        async with self.begin() as storage:
            return await fn(storage)


class SupportsHasMany(ABC):
    """Backends that can check existence without fetching values."""

    @abstractmethod
    async def has_many(self, keys: Sequence[str]) -> dict[str, bool]:
        """Return True for every key present in the bound namespace."""
        ...


class SupportsGetAndRemoveMany(ABC, Generic[V]):
    """Backends that can read and delete entries in a single call."""

    @abstractmethod
    async def get_and_remove_many(self, keys: Sequence[str]) -> dict[str, Optional[V]]:
        """Remove keys and return the values they held (None when missing)."""
        ...
