"""Record stores and the predicate algebra they execute."""

from tablekit.persistence.adapter import RecordStore, UpdateResult
from tablekit.persistence.config import DatabaseConfig, StoreFactory
from tablekit.persistence.memory import InMemoryRecordStore

__all__ = [
    "DatabaseConfig",
    "InMemoryRecordStore",
    "RecordStore",
    "StoreFactory",
    "UpdateResult",
]
