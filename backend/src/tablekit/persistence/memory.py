"""In-memory record store."""

import copy
import uuid
from typing import Any

from tablekit.persistence.adapter import UpdateResult
from tablekit.persistence.evaluate import matches, project, run_pipeline, select
from tablekit.persistence.predicates import MergePatch, Predicate, SortKey, Stage


class InMemoryRecordStore:
    """Dict-backed document store.

    Method bodies never await, so each call runs atomically on the event loop.
    """

    def __init__(self, name: str = "records", primary_key: str = "id"):
        self.name = name
        self.primary_key = primary_key
        self._documents: dict[str, dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._documents)

    async def find(
        self,
        filter: Predicate,
        sort: list[SortKey] | None = None,
        skip: int = 0,
        limit: int | None = None,
        projection: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        rows = select(self._documents.values(), filter, sort, skip, limit)
        if projection:
            return [copy.deepcopy(project(r, projection)) for r in rows]
        return [copy.deepcopy(r) for r in rows]

    async def find_one(self, filter: Predicate) -> dict[str, Any] | None:
        doc = self._first(filter)
        return copy.deepcopy(doc) if doc else None

    async def count(self, filter: Predicate) -> int:
        return sum(1 for d in self._documents.values() if matches(filter, d))

    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        doc = copy.deepcopy(document)
        pk = self.primary_key
        if doc.get(pk) is None:
            doc[pk] = uuid.uuid4().hex
        if doc[pk] in self._documents:
            raise ValueError(f"Duplicate {pk} '{doc[pk]}' in {self.name}")
        self._documents[doc[pk]] = doc
        return copy.deepcopy(doc)

    async def find_one_and_update(
        self, filter: Predicate, patch: MergePatch
    ) -> dict[str, Any] | None:
        doc = self._first(filter)
        if doc is None:
            return None
        updated = patch.apply(doc)
        self._documents[doc[self.primary_key]] = updated
        return copy.deepcopy(updated)

    async def update_many(self, filter: Predicate, patch: MergePatch) -> UpdateResult:
        matched = modified = 0
        for key, doc in list(self._documents.items()):
            if not matches(filter, doc):
                continue
            matched += 1
            updated = patch.apply(doc)
            if updated != doc:
                modified += 1
                self._documents[key] = updated
        return UpdateResult(matched_count=matched, modified_count=modified)

    async def find_one_and_delete(self, filter: Predicate) -> dict[str, Any] | None:
        doc = self._first(filter)
        if doc is None:
            return None
        return self._documents.pop(doc[self.primary_key])

    async def delete_many(self, filter: Predicate) -> int:
        doomed = [k for k, d in self._documents.items() if matches(filter, d)]
        for key in doomed:
            del self._documents[key]
        return len(doomed)

    async def aggregate(self, pipeline: list[Stage]) -> list[dict[str, Any]]:
        return copy.deepcopy(run_pipeline(self._documents.values(), pipeline))

    def _first(self, filter: Predicate) -> dict[str, Any] | None:
        for doc in self._documents.values():
            if matches(filter, doc):
                return doc
        return None
