"""Table engine: query compilation, CRUD, statistics and transfer."""

from tablekit.engine.compiler import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    CompiledQuery,
    QueryCompiler,
    clamp_limit,
    translate_filter,
)
from tablekit.engine.registry import EntityRegistry
from tablekit.engine.service import TableService
from tablekit.engine.types import (
    BulkDeleteResult,
    BulkUpdateResult,
    DeleteResult,
    PaginationMeta,
    TableResponse,
    TableStats,
)

__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "BulkDeleteResult",
    "BulkUpdateResult",
    "CompiledQuery",
    "DeleteResult",
    "EntityRegistry",
    "PaginationMeta",
    "QueryCompiler",
    "TableResponse",
    "TableService",
    "TableStats",
    "clamp_limit",
    "translate_filter",
]
