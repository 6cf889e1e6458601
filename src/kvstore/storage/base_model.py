"""SQLAlchemy declarative base for the key-value table.

Keeping a single base means ``Base.metadata`` is the one registry used for
idempotent table creation.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for kvstore ORM models."""

    pass
