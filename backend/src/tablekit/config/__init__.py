"""Table configuration types, registry and YAML loader."""

from tablekit.config.loader import TableConfigLoader
from tablekit.config.store import TableConfigStore
from tablekit.config.types import (
    AGGREGATE_FUNCTIONS,
    AggregationSpec,
    ColumnValidation,
    FieldPermission,
    FilterPredicate,
    QueryOptions,
    RelationConfig,
    RowPermissions,
    SelectOption,
    SortSpec,
    TableAction,
    TableColumn,
    TableConfiguration,
    TableFeatures,
    TablePermissions,
    TableView,
)

__all__ = [
    "AGGREGATE_FUNCTIONS",
    "AggregationSpec",
    "ColumnValidation",
    "FieldPermission",
    "FilterPredicate",
    "QueryOptions",
    "RelationConfig",
    "RowPermissions",
    "SelectOption",
    "SortSpec",
    "TableAction",
    "TableColumn",
    "TableConfigLoader",
    "TableConfigStore",
    "TableConfiguration",
    "TableFeatures",
    "TablePermissions",
    "TableView",
]
