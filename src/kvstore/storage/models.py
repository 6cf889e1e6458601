"""SQLAlchemy model for the shared key-value table.

The layout is shared with other implementations reading the same database
and must not change.
"""

from sqlalchemy import PrimaryKeyConstraint, Table, Text
from sqlalchemy.orm import Mapped, mapped_column

from kvstore.storage.base_model import Base

KEY_VALUE_TABLE_NAME = "key_value"


class KeyValueModel(Base):
    """ORM model for namespaced key-value entries.

    Attributes:
        namespace: Logical store the entry belongs to
        key: Key, unique within its namespace
        value: JSON-encoded value
    """

    __tablename__ = KEY_VALUE_TABLE_NAME
    __table_args__ = (PrimaryKeyConstraint("key", "namespace", name="primary_key"),)

    namespace: Mapped[str] = mapped_column(Text, nullable=False)
    key: Mapped[str] = mapped_column(Text, nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)


key_value_table: Table = KeyValueModel.__table__  # type: ignore[assignment]
