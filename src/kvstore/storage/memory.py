"""In-memory key-value storage.

Many namespace-bound instances can share one dictionary. The physical key is
the tuple ``(namespace, key)``, so namespaces never collide and the namespace
can be read back from every entry. Values are kept as JSON text, exactly as the
SQL backends store them.
"""

from typing import AsyncIterator, Callable, Optional, Sequence

from kvstore.clamp import ClampSettings, clamp as clamp_value
from kvstore.codec import decode, encode
from kvstore.contracts import (
    InsertOrUpdateValue,
    KeyValueStorage,
    SupportsGetAndRemoveMany,
    SupportsHasMany,
    V,
    unique_items,
    unique_keys,
)
from kvstore.errors import translate_errors
from kvstore.observability.logging import get_logger

logger = get_logger(__name__)

InternalKey = tuple[str, str]
MemoryStore = dict[InternalKey, str]


class MemoryKeyValueStorage(KeyValueStorage[V], SupportsHasMany, SupportsGetAndRemoveMany[V]):
    """Key-value storage over a shared in-process dictionary.

    Iteration and pattern scans walk the whole shared dictionary and keep
    entries of the bound namespace, so they cost O(total entries). Batches are
    applied key by key; the dictionary is not locked, so multi-threaded hosts
    must synchronize externally.

    Attributes:
        namespace: Namespace every operation is scoped to
        store: Shared dictionary keyed by ``(namespace, key)``

    Example:
        >>> store: MemoryStore = {}
        >>> users = MemoryKeyValueStorage(store, "users")
        >>> await users.insert_if_not_exists_many([("alice", 1)])
        {'alice': True}
    """

    def __init__(self, store: Optional[MemoryStore] = None, namespace: str = "default") -> None:
        """Initialize storage bound to a namespace.

        Args:
            store: Dictionary shared between namespaces (a new one when None)
            namespace: Namespace to bind to
        """
        self.store: MemoryStore = {} if store is None else store
        self.namespace = namespace

    def with_namespace(self, namespace: str) -> "MemoryKeyValueStorage[V]":
        """Return a view of the same dictionary bound to another namespace."""
        return MemoryKeyValueStorage(self.store, namespace)

    def _internal_key(self, key: str) -> InternalKey:
        return (self.namespace, key)

    async def _entries(
        self, predicate: Callable[[str], bool], operation: str
    ) -> AsyncIterator[tuple[str, V]]:
        with translate_errors(operation, self.namespace):
            for internal_key in list(self.store):
                namespace, key = internal_key
                if namespace != self.namespace or not predicate(key):
                    continue
                # Skip entries removed after the scan started
                value = self.store.get(internal_key)
                if value is None:
                    continue
                yield key, decode(value)

    def iterate(self) -> AsyncIterator[tuple[str, V]]:
        return self._entries(lambda key: True, "iterate")

    async def clear(self) -> None:
        with translate_errors("clear", self.namespace):
            stale = [internal_key for internal_key in self.store if internal_key[0] == self.namespace]
            for internal_key in stale:
                del self.store[internal_key]
            logger.debug("kv_clear", namespace=self.namespace, count=len(stale))

    async def size(self) -> int:
        with translate_errors("size", self.namespace):
            return sum(1 for namespace, _ in self.store if namespace == self.namespace)

    async def has_many(self, keys: Sequence[str]) -> dict[str, bool]:
        with translate_errors("has_many", self.namespace):
            return {key: self._internal_key(key) in self.store for key in unique_keys(keys)}

    async def get_many(self, keys: Sequence[str]) -> dict[str, Optional[V]]:
        with translate_errors("get_many", self.namespace):
            result: dict[str, Optional[V]] = {}
            for key in unique_keys(keys):
                value = self.store.get(self._internal_key(key))
                result[key] = None if value is None else decode(value)
            return result

    async def get_and_remove_many(self, keys: Sequence[str]) -> dict[str, Optional[V]]:
        with translate_errors("get_and_remove_many", self.namespace):
            result: dict[str, Optional[V]] = {}
            for key in unique_keys(keys):
                value = self.store.pop(self._internal_key(key), None)
                result[key] = None if value is None else decode(value)
            return result

    def get_starts_with_many(self, prefix: str) -> AsyncIterator[tuple[str, V]]:
        return self._entries(lambda key: key.startswith(prefix), "get_starts_with_many")

    def get_ends_with_many(self, suffix: str) -> AsyncIterator[tuple[str, V]]:
        return self._entries(lambda key: key.endswith(suffix), "get_ends_with_many")

    def get_includes_many(self, substring: str) -> AsyncIterator[tuple[str, V]]:
        return self._entries(lambda key: substring in key, "get_includes_many")

    async def insert_if_not_exists_many(
        self, items: Sequence[tuple[str, V]], clamp: Optional[ClampSettings] = None
    ) -> dict[str, bool]:
        with translate_errors("insert_if_not_exists_many", self.namespace):
            result: dict[str, bool] = {}
            for key, value in unique_items(items).items():
                internal_key = self._internal_key(key)
                inserted = internal_key not in self.store
                if inserted:
                    self.store[internal_key] = encode(clamp_value(value, clamp))
                result[key] = inserted
            logger.debug("kv_insert_if_not_exists_many", namespace=self.namespace, count=len(result))
            return result

    async def update_if_exists_many(
        self, items: Sequence[tuple[str, V]], clamp: Optional[ClampSettings] = None
    ) -> dict[str, bool]:
        with translate_errors("update_if_exists_many", self.namespace):
            result: dict[str, bool] = {}
            for key, value in unique_items(items).items():
                internal_key = self._internal_key(key)
                updated = internal_key in self.store
                if updated:
                    self.store[internal_key] = encode(clamp_value(value, clamp))
                result[key] = updated
            logger.debug("kv_update_if_exists_many", namespace=self.namespace, count=len(result))
            return result

    async def insert_or_update_many(
        self,
        items: Sequence[tuple[str, InsertOrUpdateValue[V]]],
        clamp: Optional[ClampSettings] = None,
    ) -> None:
        with translate_errors("insert_or_update_many", self.namespace):
            batch = unique_items(items)
            for key, (insert_value, update_value) in batch.items():
                internal_key = self._internal_key(key)
                value = update_value if internal_key in self.store else insert_value
                self.store[internal_key] = encode(clamp_value(value, clamp))
            logger.debug("kv_insert_or_update_many", namespace=self.namespace, count=len(batch))

    async def remove_if_exists_many(self, keys: Sequence[str]) -> dict[str, bool]:
        with translate_errors("remove_if_exists_many", self.namespace):
            result = {
                key: self.store.pop(self._internal_key(key), None) is not None
                for key in unique_keys(keys)
            }
            logger.debug("kv_remove_if_exists_many", namespace=self.namespace, count=len(result))
            return result
