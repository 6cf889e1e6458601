"""Configuration for building key-value storages."""

import os
from typing import Literal

from pydantic import BaseModel, Field

Backend = Literal["memory", "sqlite", "postgres"]

MEMORY_URL = "memory://"


class StorageConfig(BaseModel):
    """Settings used by ``create_storage``.

    Attributes:
        url: ``memory://`` or an async SQLAlchemy URL
            (``sqlite+aiosqlite:///./kv.db``, ``postgresql+asyncpg://...``)
        namespace: Namespace the storage is bound to
        echo: Log SQL statements
        pool_size: Connection pool size (ignored for SQLite)
        max_overflow: Maximum overflow connections (ignored for SQLite)
    """

    url: str = Field(default=MEMORY_URL, min_length=1)
    namespace: str = "default"
    echo: bool = False
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)

    @property
    def backend(self) -> Backend:
        """Backend selected by the URL scheme.

        Raises:
            ValueError: If the scheme is not supported
        """
        scheme = self.url.split("://", 1)[0].split("+", 1)[0].lower()
        if scheme == "memory":
            return "memory"
        if scheme == "sqlite":
            return "sqlite"
        if scheme in ("postgresql", "postgres"):
            return "postgres"
        raise ValueError(f"Unsupported storage URL scheme: {scheme!r}")

    @classmethod
    def from_env(cls) -> "StorageConfig":
        """Load configuration from environment variables.

        Environment variables follow the pattern: KVSTORE_<SETTING_NAME>
        For example: KVSTORE_URL, KVSTORE_NAMESPACE

        Returns:
            StorageConfig instance with environment overrides
        """
        return cls(
            url=os.getenv("KVSTORE_URL", cls.model_fields["url"].default),
            namespace=os.getenv("KVSTORE_NAMESPACE", cls.model_fields["namespace"].default),
            echo=os.getenv("KVSTORE_ECHO", str(cls.model_fields["echo"].default)).lower()
            in ("true", "1", "yes"),
            pool_size=int(os.getenv("KVSTORE_POOL_SIZE", cls.model_fields["pool_size"].default)),
            max_overflow=int(
                os.getenv("KVSTORE_MAX_OVERFLOW", cls.model_fields["max_overflow"].default)
            ),
        )
