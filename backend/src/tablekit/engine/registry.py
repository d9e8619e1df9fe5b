"""Entity registry: binds entity keys to record stores."""

import logging

from tablekit.errors import NotFoundError
from tablekit.persistence.adapter import RecordStore

logger = logging.getLogger(__name__)


class EntityRegistry:
    """Maps an entity key to the RecordStore holding its records."""

    def __init__(self) -> None:
        self._stores: dict[str, RecordStore] = {}

    def register(self, entity_key: str, store: RecordStore) -> None:
        """Bind a store to an entity key, replacing any previous binding."""
        self._stores[entity_key] = store
        logger.info("Table store registered: %s -> %s", entity_key, store.name)

    def get(self, entity_key: str) -> RecordStore:
        store = self._stores.get(entity_key)
        if store is None:
            raise NotFoundError(f"No store registered for entity: {entity_key}")
        return store

    def has(self, entity_key: str) -> bool:
        return entity_key in self._stores

    def keys(self) -> list[str]:
        return list(self._stores)
