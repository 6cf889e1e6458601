"""SQLite key-value storage.

Requires SQLite 3.35+ for ``RETURNING`` and the JSON1 functions, both
bundled with current Python builds. Use with the ``sqlite+aiosqlite`` driver.
"""

from typing import Any

from sqlalchemy import ColumnElement, Text, and_, case, func, literal, or_
from sqlalchemy.dialects.sqlite import insert

from kvstore.clamp import ClampSettings
from kvstore.contracts import V
from kvstore.storage.models import key_value_table
from kvstore.storage.sql import SqlKeyValueStorage


class SqliteKeyValueStorage(SqlKeyValueStorage[V]):
    """Key-value storage for SQLite.

    Clamping uses ``json_type`` to detect numbers and the scalar ``MAX``/``MIN``
    functions to bound them. SQLite ``LIKE`` ignores ASCII case, so pattern
    scans add a case-sensitive ``substr``/``instr`` check.

    Example:
        >>> engine = create_async_engine("sqlite+aiosqlite:///./kv.db")
        >>> storage = SqliteKeyValueStorage(engine, "users")
        >>> await storage.init()
    """

    def _insert(self) -> Any:
        return insert(key_value_table)

    def _clamp_json(self, value_json: str, clamp: ClampSettings) -> ColumnElement[str]:
        raw = literal(value_json, Text)
        value = func.json(raw)
        number = func.json_extract(value, "$")
        clamped = number
        if clamp.min is not None:
            clamped = func.max(clamped, clamp.min)
        if clamp.max is not None:
            clamped = func.min(clamped, clamp.max)
        value_type = func.json_type(value)
        # json_quote prints REALs with 15 digits, so only rewrite values the bounds moved
        return case(
            (
                and_(or_(value_type == "integer", value_type == "real"), number != clamped),
                func.json_quote(clamped),
            ),
            else_=raw,
        )

    def _starts_with(self, prefix: str) -> ColumnElement[bool]:
        key = key_value_table.c.key
        return and_(
            super()._starts_with(prefix),
            func.substr(key, 1, func.length(prefix)) == prefix,
        )

    def _ends_with(self, suffix: str) -> ColumnElement[bool]:
        key = key_value_table.c.key
        return and_(
            super()._ends_with(suffix),
            func.substr(key, func.length(key) - func.length(suffix) + 1) == suffix,
        )

    def _includes(self, substring: str) -> ColumnElement[bool]:
        key = key_value_table.c.key
        return and_(super()._includes(substring), func.instr(key, substring) > 0)
