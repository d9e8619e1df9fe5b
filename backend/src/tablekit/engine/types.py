"""Result types returned by the table service."""

import math
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PaginationMeta:
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "totalPages": self.total_pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


@dataclass
class TableResponse:
    """One page of a list read plus the metadata a table UI renders it with.

    Attributes:
        data: Records, or group rows when the read was grouped
        meta: Pagination metadata (pages count groups for grouped reads)
        config: Caller-scoped columns, views, actions, permissions and features
        aggregations: Column aggregation results keyed "{column}_{function}"
        grouped: True when data holds group rows
    """

    data: list[dict[str, Any]]
    meta: PaginationMeta
    config: dict[str, Any] = field(default_factory=dict)
    aggregations: dict[str, Any] | None = None
    grouped: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": True,
            "data": self.data,
            "meta": self.meta.to_dict(),
            "config": self.config,
            "grouped": self.grouped,
        }
        if self.aggregations is not None:
            result["aggregations"] = self.aggregations
        return result


@dataclass(frozen=True)
class DeleteResult:
    id: str
    deleted: bool
    permanent: bool

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "deleted": self.deleted, "permanent": self.permanent}


@dataclass(frozen=True)
class BulkUpdateResult:
    matched_count: int
    modified_count: int

    def to_dict(self) -> dict[str, Any]:
        return {"matchedCount": self.matched_count, "modifiedCount": self.modified_count}


@dataclass(frozen=True)
class BulkDeleteResult:
    deleted_count: int
    permanent: bool

    def to_dict(self) -> dict[str, Any]:
        return {"deletedCount": self.deleted_count, "permanent": self.permanent}


@dataclass
class TableStats:
    total: int
    deleted: int
    facets: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    recent_activity: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "deleted": self.deleted,
            "facets": self.facets,
            "recentActivity": self.recent_activity,
        }
