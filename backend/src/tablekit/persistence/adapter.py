"""RecordStore Protocol: shared interface for all record store adapters."""

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from tablekit.persistence.predicates import MergePatch, Predicate, SortKey, Stage


@dataclass(frozen=True)
class UpdateResult:
    matched_count: int
    modified_count: int


@runtime_checkable
class RecordStore(Protocol):
    """Backing-store primitives the engine executes against.

    Documents go in and come out as plain dicts; returned dicts are copies
    the caller may mutate freely. find_one_and_update and find_one_and_delete
    are atomic per document; nothing spans documents atomically.
    """

    name: str
    primary_key: str

    async def find(
        self,
        filter: Predicate,
        sort: list[SortKey] | None = None,
        skip: int = 0,
        limit: int | None = None,
        projection: list[str] | None = None,
    ) -> list[dict[str, Any]]: ...

    async def find_one(self, filter: Predicate) -> dict[str, Any] | None: ...

    async def count(self, filter: Predicate) -> int: ...

    async def insert(self, document: dict[str, Any]) -> dict[str, Any]: ...

    async def find_one_and_update(
        self, filter: Predicate, patch: MergePatch
    ) -> dict[str, Any] | None: ...

    async def update_many(self, filter: Predicate, patch: MergePatch) -> UpdateResult: ...

    async def find_one_and_delete(self, filter: Predicate) -> dict[str, Any] | None: ...

    async def delete_many(self, filter: Predicate) -> int: ...

    async def aggregate(self, pipeline: list[Stage]) -> list[dict[str, Any]]: ...
