"""Operations derived from the storage contract.

Higher-level facades are built from these helpers. Each helper uses a
backend's native capability when it has one and otherwise composes the
required contract operations.
"""

from typing import Optional, Sequence

from kvstore.clamp import ClampSettings, Number
from kvstore.codec import is_number
from kvstore.contracts import (
    InsertOrUpdateValue,
    KeyValueStorage,
    SupportsGetAndRemoveMany,
    SupportsHasMany,
    V,
    unique_items,
)
from kvstore.errors import KeysAlreadyExistStorageError, KeysNotFoundStorageError, TypeStorageError


async def has_many(storage: KeyValueStorage[V], keys: Sequence[str]) -> dict[str, bool]:
    """Return True for every key present in the storage's namespace."""
    if isinstance(storage, SupportsHasMany):
        return await storage.has_many(keys)
    values = await storage.get_many(keys)
    return {key: value is not None for key, value in values.items()}


async def get_and_remove_many(
    storage: KeyValueStorage[V], keys: Sequence[str]
) -> dict[str, Optional[V]]:
    """Remove keys and return the values they held (None when missing)."""
    if isinstance(storage, SupportsGetAndRemoveMany):
        return await storage.get_and_remove_many(keys)

    async def read_then_remove(trx: KeyValueStorage[V]) -> dict[str, Optional[V]]:
        values = await trx.get_many(keys)
        await trx.remove_if_exists_many([key for key, value in values.items() if value is not None])
        return values

    return await storage.transaction(read_then_remove)


async def insert_many(
    storage: KeyValueStorage[V],
    items: Sequence[tuple[str, V]],
    clamp: Optional[ClampSettings] = None,
) -> None:
    """Insert items, failing when any key already exists.

    Keys that were absent are still inserted; the error lists the others.

    Raises:
        KeysAlreadyExistStorageError: If at least one key already existed
    """
    result = await storage.insert_if_not_exists_many(items, clamp)
    existing = [key for key, inserted in result.items() if not inserted]
    if existing:
        raise KeysAlreadyExistStorageError(existing, namespace=storage.namespace)


async def update_many(
    storage: KeyValueStorage[V],
    items: Sequence[tuple[str, V]],
    clamp: Optional[ClampSettings] = None,
) -> None:
    """Update items, failing when any key is missing.

    Raises:
        KeysNotFoundStorageError: If at least one key did not exist
    """
    result = await storage.update_if_exists_many(items, clamp)
    missing = [key for key, updated in result.items() if not updated]
    if missing:
        raise KeysNotFoundStorageError(missing, namespace=storage.namespace)


async def increment_if_exists_many(
    storage: KeyValueStorage[Number],
    items: Sequence[tuple[str, Number]],
    clamp: Optional[ClampSettings] = None,
) -> dict[str, bool]:
    """Add a delta to existing numeric values.

    Reads and writes run in one transaction on backends that support them.
    Use a negative delta to decrement.

    Returns:
        Mapping of key to True when incremented, False when not found

    Raises:
        TypeStorageError: If a stored value is not a number; nothing is written
    """
    deltas = unique_items(items)
    if not deltas:
        return {}

    async def increment(trx: KeyValueStorage[Number]) -> dict[str, bool]:
        current = await trx.get_many(list(deltas))
        not_numbers = [
            key for key, value in current.items() if value is not None and not is_number(value)
        ]
        if not_numbers:
            raise TypeStorageError(not_numbers, namespace=trx.namespace)
        updates = [
            (key, value + deltas[key]) for key, value in current.items() if value is not None
        ]
        updated = await trx.update_if_exists_many(updates, clamp)
        return {key: updated.get(key, False) for key in deltas}

    return await storage.transaction(increment)


async def get_or_insert_many(
    storage: KeyValueStorage[V],
    items: Sequence[tuple[str, V]],
    clamp: Optional[ClampSettings] = None,
) -> dict[str, V]:
    """Return existing values and insert the missing ones.

    Existing keys are never written. Inserted values are read back so the
    result holds what was stored after clamping.

    Returns:
        Mapping of every requested key to its stored value
    """
    defaults = unique_items(items)
    if not defaults:
        return {}

    async def get_or_insert(trx: KeyValueStorage[V]) -> dict[str, V]:
        values = await trx.get_many(list(defaults))
        missing = [key for key, value in values.items() if value is None]
        if missing:
            await trx.insert_if_not_exists_many([(key, defaults[key]) for key in missing], clamp)
            values.update(await trx.get_many(missing))
        return {key: values[key] for key in defaults}

    return await storage.transaction(get_or_insert)


async def insert_or_increment_many(
    storage: KeyValueStorage[Number],
    items: Sequence[tuple[str, InsertOrUpdateValue[Number]]],
    clamp: Optional[ClampSettings] = None,
) -> None:
    """Insert missing keys and add a delta to existing ones.

    ``insert_value`` is stored for absent keys and ``update_value`` is added to
    the current value of present keys.

    Raises:
        TypeStorageError: If a given or stored value is not a number; nothing
            is written
    """
    batch = unique_items(items)
    if not batch:
        return

    not_numbers = [
        key
        for key, (insert_value, delta) in batch.items()
        if not (is_number(insert_value) and is_number(delta))
    ]
    if not_numbers:
        raise TypeStorageError(not_numbers, namespace=storage.namespace)

    async def insert_or_increment(trx: KeyValueStorage[Number]) -> None:
        current = await trx.get_many(list(batch))
        stored_not_numbers = [
            key for key, value in current.items() if value is not None and not is_number(value)
        ]
        if stored_not_numbers:
            raise TypeStorageError(stored_not_numbers, namespace=trx.namespace)
        writes = []
        for key, (insert_value, delta) in batch.items():
            value = current[key]
            new_value = insert_value if value is None else value + delta
            writes.append((key, InsertOrUpdateValue(insert_value, new_value)))
        await trx.insert_or_update_many(writes, clamp)

    await storage.transaction(insert_or_increment)
