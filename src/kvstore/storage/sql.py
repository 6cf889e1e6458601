"""Shared SQL implementation of the key-value storage contract.

All namespaces live in the single ``key_value`` table. Every batch operation is
one statement, so a batch is applied atomically by the database engine.
Dialect subclasses provide the upsert construct and the type-aware clamp
expression; everything else is shared.
"""

from abc import abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Sequence, Union

from sqlalchemy import ColumnElement, Select, Text, case, delete, func, literal, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from kvstore.clamp import ClampSettings
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
from kvstore.errors import UnexpectedStorageError, translate_errors
from kvstore.observability.logging import get_logger
from kvstore.storage.database import create_key_value_table
from kvstore.storage.models import key_value_table as table

logger = get_logger(__name__)

Bind = Union[AsyncEngine, AsyncConnection]


class SqlKeyValueStorage(KeyValueStorage[V], SupportsHasMany, SupportsGetAndRemoveMany[V]):
    """Key-value storage over the shared ``key_value`` table.

    An instance bound to an ``AsyncEngine`` checks out a connection per
    operation. An instance bound to an ``AsyncConnection`` runs every operation
    inside that connection's transaction; ``begin()`` hands these out.

    Attributes:
        bind: Engine (pool) or connection the statements are executed on
        namespace: Namespace every operation is scoped to
    """

    def __init__(self, bind: Bind, namespace: str) -> None:
        """Initialize storage bound to a namespace.

        Args:
            bind: SQLAlchemy async engine or connection
            namespace: Namespace to bind to
        """
        self.bind = bind
        self.namespace = namespace

    @abstractmethod
    def _insert(self) -> Any:
        """Return the dialect INSERT construct supporting ON CONFLICT."""
        ...

    @abstractmethod
    def _clamp_json(self, value_json: str, clamp: ClampSettings) -> ColumnElement[str]:
        """Build an expression clamping ``value_json`` when it is a JSON number.

        The numeric check happens in SQL; other JSON values are returned as is.
        """
        ...

    def _json_value(self, value: Any, clamp: Optional[ClampSettings]) -> ColumnElement[str]:
        value_json = encode(value)
        if clamp is None or clamp.is_empty:
            return literal(value_json, Text)
        return self._clamp_json(value_json, clamp)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[AsyncConnection]:
        if isinstance(self.bind, AsyncConnection):
            yield self.bind
        else:
            async with self.bind.begin() as conn:
                yield conn

    async def init(self) -> None:
        """Create the key-value table if it does not exist."""
        with translate_errors("init", self.namespace):
            async with self._connect() as conn:
                await create_key_value_table(conn)

    def _transaction_error(self, error: BaseException) -> UnexpectedStorageError:
        return UnexpectedStorageError(
            f'Unexpected error "{error}" occurred',
            cause=error,
            operation="transaction",
            namespace=self.namespace,
        )

    @asynccontextmanager
    async def begin(self) -> AsyncIterator["SqlKeyValueStorage[V]"]:
        """Open a database transaction and yield a storage bound to it.

        Writes made through the yielded storage are committed together when the
        block exits and rolled back if it raises. An instance that is already
        bound to a connection joins the enclosing transaction.

        Raises:
            UnexpectedStorageError: If the transaction cannot be opened or
                committed. Exceptions raised inside the block propagate as is.
        """
        if isinstance(self.bind, AsyncConnection):
            yield self
            return
        try:
            conn = await self.bind.connect()
        except (SQLAlchemyError, OSError) as error:
            raise self._transaction_error(error) from error
        try:
            try:
                await conn.begin()
            except (SQLAlchemyError, OSError) as error:
                raise self._transaction_error(error) from error
            try:
                yield type(self)(conn, self.namespace)
            except BaseException:
                await conn.rollback()
                raise
            try:
                await conn.commit()
            except (SQLAlchemyError, OSError) as error:
                raise self._transaction_error(error) from error
        finally:
            await conn.close()

    def _select(self, *criteria: ColumnElement[bool]) -> Select:
        return select(table.c.key, table.c.value).where(table.c.namespace == self.namespace, *criteria)

    async def _stream(self, statement: Select, operation: str) -> AsyncIterator[tuple[str, V]]:
        with translate_errors(operation, self.namespace):
            async with self._connect() as conn:
                result = await conn.stream(statement)
                try:
                    async for key, value in result:
                        yield key, decode(value)
                finally:
                    await result.close()

    def _starts_with(self, prefix: str) -> ColumnElement[bool]:
        return table.c.key.startswith(prefix, autoescape=True)

    def _ends_with(self, suffix: str) -> ColumnElement[bool]:
        return table.c.key.endswith(suffix, autoescape=True)

    def _includes(self, substring: str) -> ColumnElement[bool]:
        return table.c.key.contains(substring, autoescape=True)

    def iterate(self) -> AsyncIterator[tuple[str, V]]:
        return self._stream(self._select(), "iterate")

    def get_starts_with_many(self, prefix: str) -> AsyncIterator[tuple[str, V]]:
        return self._stream(self._select(self._starts_with(prefix)), "get_starts_with_many")

    def get_ends_with_many(self, suffix: str) -> AsyncIterator[tuple[str, V]]:
        return self._stream(self._select(self._ends_with(suffix)), "get_ends_with_many")

    def get_includes_many(self, substring: str) -> AsyncIterator[tuple[str, V]]:
        return self._stream(self._select(self._includes(substring)), "get_includes_many")

    async def clear(self) -> None:
        with translate_errors("clear", self.namespace):
            async with self._connect() as conn:
                await conn.execute(delete(table).where(table.c.namespace == self.namespace))
            logger.debug("kv_clear", namespace=self.namespace)

    async def size(self) -> int:
        with translate_errors("size", self.namespace):
            statement = select(func.count()).select_from(table).where(table.c.namespace == self.namespace)
            async with self._connect() as conn:
                result = await conn.execute(statement)
                return int(result.scalar_one())

    async def has_many(self, keys: Sequence[str]) -> dict[str, bool]:
        if not keys:
            return {}
        with translate_errors("has_many", self.namespace):
            keys = unique_keys(keys)
            statement = select(table.c.key).where(
                table.c.namespace == self.namespace, table.c.key.in_(keys)
            )
            async with self._connect() as conn:
                found = set((await conn.execute(statement)).scalars().all())
            return {key: key in found for key in keys}

    async def get_many(self, keys: Sequence[str]) -> dict[str, Optional[V]]:
        if not keys:
            return {}
        with translate_errors("get_many", self.namespace):
            keys = unique_keys(keys)
            async with self._connect() as conn:
                rows = (await conn.execute(self._select(table.c.key.in_(keys)))).all()
            result: dict[str, Optional[V]] = dict.fromkeys(keys)
            for key, value in rows:
                result[key] = decode(value)
            return result

    async def get_and_remove_many(self, keys: Sequence[str]) -> dict[str, Optional[V]]:
        if not keys:
            return {}
        with translate_errors("get_and_remove_many", self.namespace):
            keys = unique_keys(keys)
            statement = (
                delete(table)
                .where(table.c.namespace == self.namespace, table.c.key.in_(keys))
                .returning(table.c.key, table.c.value)
            )
            async with self._connect() as conn:
                rows = (await conn.execute(statement)).all()
            result: dict[str, Optional[V]] = dict.fromkeys(keys)
            for key, value in rows:
                result[key] = decode(value)
            return result

    async def insert_if_not_exists_many(
        self, items: Sequence[tuple[str, V]], clamp: Optional[ClampSettings] = None
    ) -> dict[str, bool]:
        if not items:
            return {}
        with translate_errors("insert_if_not_exists_many", self.namespace):
            batch = unique_items(items)
            statement = (
                self._insert()
                .values(
                    [
                        {"namespace": self.namespace, "key": key, "value": self._json_value(value, clamp)}
                        for key, value in batch.items()
                    ]
                )
                .on_conflict_do_nothing(index_elements=["key", "namespace"])
                .returning(table.c.key)
            )
            async with self._connect() as conn:
                inserted = set((await conn.execute(statement)).scalars().all())
            logger.debug(
                "kv_insert_if_not_exists_many",
                namespace=self.namespace,
                count=len(batch),
                inserted=len(inserted),
            )
            return {key: key in inserted for key in batch}

    async def update_if_exists_many(
        self, items: Sequence[tuple[str, V]], clamp: Optional[ClampSettings] = None
    ) -> dict[str, bool]:
        if not items:
            return {}
        with translate_errors("update_if_exists_many", self.namespace):
            batch = unique_items(items)
            new_value = case(
                {key: self._json_value(value, clamp) for key, value in batch.items()},
                value=table.c.key,
                else_=literal("", Text),
            )
            statement = (
                update(table)
                .where(table.c.namespace == self.namespace, table.c.key.in_(list(batch)))
                .values(value=new_value)
                .returning(table.c.key)
            )
            async with self._connect() as conn:
                updated = set((await conn.execute(statement)).scalars().all())
            logger.debug(
                "kv_update_if_exists_many",
                namespace=self.namespace,
                count=len(batch),
                updated=len(updated),
            )
            return {key: key in updated for key in batch}

    async def insert_or_update_many(
        self,
        items: Sequence[tuple[str, InsertOrUpdateValue[V]]],
        clamp: Optional[ClampSettings] = None,
    ) -> None:
        if not items:
            return
        with translate_errors("insert_or_update_many", self.namespace):
            batch = unique_items(items)
            statement = self._insert().values(
                [
                    {
                        "namespace": self.namespace,
                        "key": key,
                        "value": self._json_value(insert_value, clamp),
                    }
                    for key, (insert_value, _) in batch.items()
                ]
            )
            update_value = case(
                {key: self._json_value(new_value, clamp) for key, (_, new_value) in batch.items()},
                value=statement.excluded.key,
                else_=statement.excluded.value,
            )
            statement = statement.on_conflict_do_update(
                index_elements=["key", "namespace"],
                set_={"value": update_value},
            )
            async with self._connect() as conn:
                await conn.execute(statement)
            logger.debug("kv_insert_or_update_many", namespace=self.namespace, count=len(batch))

    async def remove_if_exists_many(self, keys: Sequence[str]) -> dict[str, bool]:
        if not keys:
            return {}
        with translate_errors("remove_if_exists_many", self.namespace):
            keys = unique_keys(keys)
            statement = (
                delete(table)
                .where(table.c.namespace == self.namespace, table.c.key.in_(keys))
                .returning(table.c.key)
            )
            async with self._connect() as conn:
                removed = set((await conn.execute(statement)).scalars().all())
            logger.debug(
                "kv_remove_if_exists_many",
                namespace=self.namespace,
                count=len(keys),
                removed=len(removed),
            )
            return {key: key in removed for key in keys}
