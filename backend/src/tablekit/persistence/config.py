"""Database configuration and record store factory."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from tablekit.persistence.adapter import RecordStore

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"


@dataclass
class DatabaseConfig:
    """Record store configuration.

    Supports memory:// (the default) and any SQLAlchemy URL, in practice
    sqlite:/// and postgresql://.
    """

    url: str = MEMORY_URL

    @classmethod
    def from_env(cls) -> DatabaseConfig:
        """Create config from environment variables.

        Resolution order:
        1. TABLEKIT_DATABASE_URL env var
        2. DATABASE_URL env var (standard)
        3. Default: memory://
        """
        url = os.environ.get("TABLEKIT_DATABASE_URL") or os.environ.get("DATABASE_URL")
        return cls(url=url or MEMORY_URL)

    @property
    def is_memory(self) -> bool:
        return self.url.startswith("memory")

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def sqlalchemy_url(self) -> str:
        """URL suitable for SQLAlchemy engine creation.

        Ensures postgresql:// URLs use the psycopg (v3) driver, which the
        postgres extra installs, not psycopg2.
        """
        if self.url.startswith("postgresql://"):
            return self.url.replace("postgresql://", "postgresql+psycopg://", 1)
        return self.url


class StoreFactory:
    """Creates one RecordStore per collection, sharing a single engine."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._engine: Engine | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            from sqlalchemy import create_engine
            from sqlalchemy.pool import StaticPool

            kwargs: dict = {}
            if self.config.is_sqlite:
                kwargs["connect_args"] = {"check_same_thread": False}
                if self.config.url in ("sqlite://", "sqlite:///:memory:"):
                    kwargs["poolclass"] = StaticPool
            self._engine = create_engine(self.config.sqlalchemy_url, **kwargs)
        return self._engine

    def create(self, collection: str, primary_key: str = "id") -> RecordStore:
        """Create a store for a collection (not shared between calls).

        Raises:
            ValueError: For unsupported URL schemes.
        """
        if self.config.is_memory:
            from tablekit.persistence.memory import InMemoryRecordStore

            return InMemoryRecordStore(collection, primary_key)

        if "://" not in self.config.url:
            raise ValueError(f"Unsupported database URL scheme: {self.config.url}")

        from tablekit.persistence.sql import SQLRecordStore

        store = SQLRecordStore(self.engine, collection, primary_key)
        store.initialize()
        logger.info("Opened SQL store for collection %s", collection)
        return store

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
