"""In-memory registry of table configurations."""

import logging
from dataclasses import replace

from tablekit.auth.permissions import can_use_action, can_view_column
from tablekit.auth.types import Caller
from tablekit.config.types import TableConfiguration
from tablekit.errors import NotFoundError

logger = logging.getLogger(__name__)


class TableConfigStore:
    """Holds one TableConfiguration per entity key.

    Populated at startup, read-only afterwards.
    """

    def __init__(self) -> None:
        self._configs: dict[str, TableConfiguration] = {}

    def register(self, config: TableConfiguration) -> None:
        """Register a table configuration.

        Raises:
            ValueError: If the entity key is already registered
        """
        if config.entity_key in self._configs:
            raise ValueError(
                f"Table configuration already registered: {config.entity_key}"
            )
        self._configs[config.entity_key] = config
        logger.info("Table configuration registered: %s", config.entity_key)

    def get(self, entity_key: str) -> TableConfiguration | None:
        return self._configs.get(entity_key)

    def require(self, entity_key: str) -> TableConfiguration:
        config = self._configs.get(entity_key)
        if config is None:
            raise NotFoundError(f"Table configuration not found: {entity_key}")
        return config

    def has(self, entity_key: str) -> bool:
        return entity_key in self._configs

    def list_configs(self) -> list[TableConfiguration]:
        return list(self._configs.values())

    def get_for_user(
        self, entity_key: str, caller: Caller | None
    ) -> TableConfiguration | None:
        """Get the caller's variant of a configuration.

        Columns and actions restricted to roles the caller lacks are removed.
        """
        config = self.get(entity_key)
        if config is None:
            return None

        columns = tuple(c for c in config.columns if can_view_column(c, caller))
        visible_keys = {c.key for c in columns}
        return replace(
            config,
            columns=columns,
            default_columns=tuple(
                k for k in config.default_columns if k in visible_keys
            ),
            actions=tuple(a for a in config.actions if can_use_action(a, caller)),
        )

    def require_for_user(
        self, entity_key: str, caller: Caller | None
    ) -> TableConfiguration:
        config = self.get_for_user(entity_key, caller)
        if config is None:
            raise NotFoundError(f"Table configuration not found: {entity_key}")
        return config
