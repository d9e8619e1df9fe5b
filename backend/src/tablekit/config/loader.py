"""Load table configurations from YAML files."""

from pathlib import Path
from typing import Any

import yaml

from tablekit.config.types import AGGREGATE_FUNCTIONS, TableConfiguration
from tablekit.core.types import COLUMN_TYPES
from tablekit.hooks.registry import HookRegistry
from tablekit.hooks.types import HOOK_POINTS, TableHooks


class TableConfigLoader:
    """Loads table definitions from tables/*.yaml files.

    Each file holds one document with a top-level ``table`` key. Hooks are
    referenced by name and resolved through the given HookRegistry.
    """

    def __init__(self, tables_path: Path, hooks: HookRegistry | None = None):
        self.tables_path = tables_path
        self.hooks = hooks or HookRegistry()
        self.configs: dict[str, TableConfiguration] = {}

    def load_all(self) -> None:
        """Load all table definitions."""
        if not self.tables_path.exists():
            return

        for yaml_file in sorted(self.tables_path.glob("*.yaml")):
            with open(yaml_file) as f:
                data = yaml.safe_load(f)
            if data and "table" in data:
                config = self.parse(data["table"], source=yaml_file.name)
                if config.entity_key in self.configs:
                    raise ValueError(
                        f"Duplicate table '{config.entity_key}' in {yaml_file.name}"
                    )
                self.configs[config.entity_key] = config

    def parse(self, data: dict[str, Any], source: str = "<dict>") -> TableConfiguration:
        """Resolve one table definition dict into a TableConfiguration."""
        if "entityKey" not in data:
            raise ValueError(f"{source}: table definition has no entityKey")

        hooks = self._resolve_hooks(data.get("hooks") or {}, source)
        config = TableConfiguration.from_dict(data, hooks=hooks)
        self._check(config, source)
        return config

    def _resolve_hooks(self, data: dict[str, str], source: str) -> TableHooks:
        """Map {hookPoint: hookName} to registered callables."""
        resolved = {}
        for point, name in data.items():
            if point not in HOOK_POINTS:
                raise ValueError(f"{source}: unknown hook point '{point}'")
            resolved[point] = self.hooks.get(name)
        return TableHooks.from_mapping(resolved)

    def _check(self, config: TableConfiguration, source: str) -> None:
        """Reject definitions that reference unknown columns or types."""
        keys = [c.key for c in config.columns]
        if len(keys) != len(set(keys)):
            raise ValueError(f"{source}: duplicate column keys in '{config.entity_key}'")

        for column in config.columns:
            if column.type not in COLUMN_TYPES:
                raise ValueError(
                    f"{source}: column '{column.key}' has unknown type '{column.type}'"
                )

        known = set(keys)
        for view in config.views:
            for name in (*view.columns, *view.group_by, *(s.column for s in view.sorts)):
                if name not in known:
                    raise ValueError(
                        f"{source}: view '{view.id}' references unknown column '{name}'"
                    )
            for agg in view.aggregations:
                if agg.function not in AGGREGATE_FUNCTIONS:
                    raise ValueError(
                        f"{source}: view '{view.id}' uses unsupported aggregate "
                        f"'{agg.function}'"
                    )

        if config.default_view and config.get_view(config.default_view) is None:
            raise ValueError(
                f"{source}: defaultView '{config.default_view}' is not a declared view"
            )

    def get_config(self, entity_key: str) -> TableConfiguration | None:
        return self.configs.get(entity_key)

    def list_configs(self) -> list[TableConfiguration]:
        return list(self.configs.values())
