"""Wire configurations, stores and the table service together."""

import logging
from pathlib import Path

from tablekit.config.loader import TableConfigLoader
from tablekit.config.store import TableConfigStore
from tablekit.config.types import TableConfiguration
from tablekit.engine.registry import EntityRegistry
from tablekit.engine.service import TableService
from tablekit.hooks.registry import HookRegistry
from tablekit.persistence.config import StoreFactory
from tablekit.settings import Settings

logger = logging.getLogger(__name__)


def register_table(
    service: TableService, factory: StoreFactory, config: TableConfiguration
) -> None:
    """Register a configuration and bind it to a fresh store."""
    service.configs.register(config)
    service.entities.register(
        config.entity_key, factory.create(config.collection_name, config.primary_key)
    )


def build_service(
    settings: Settings,
    hooks: HookRegistry | None = None,
    extra_configs: list[TableConfiguration] | None = None,
) -> tuple[TableService, StoreFactory]:
    """Create a TableService with every table from settings.tables_path.

    Returns:
        The service and the store factory (close it on shutdown)
    """
    db_config = settings.database

    # Ensure parent directory exists for SQLite databases
    if db_config.is_sqlite:
        sqlite_path = db_config.url.replace("sqlite:///", "")
        if sqlite_path and sqlite_path != ":memory:":
            Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)

    factory = StoreFactory(db_config)
    service = TableService(TableConfigStore(), EntityRegistry())

    loader = TableConfigLoader(settings.tables_path, hooks)
    loader.load_all()
    for config in [*loader.list_configs(), *(extra_configs or [])]:
        register_table(service, factory, config)

    logger.info(
        "Table service ready: %d table(s) on %s",
        len(service.configs.list_configs()),
        db_config.url.split("://", 1)[0],
    )
    return service, factory
