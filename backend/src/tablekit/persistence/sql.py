"""SQL document store.

Each collection is a table of (id, document) rows where document holds the
record as JSON text. Dialect-neutral via SQLAlchemy Core: SQLite and
PostgreSQL both work.

Predicates are translated to a WHERE clause over the JSON document where the
dialect allows it (json_extract/json_each on SQLite, JSONB operators on
PostgreSQL). Rows are always re-checked in process with the same evaluator
the in-memory store uses, so a partial translation only narrows the scan.
When the whole predicate translates, counts use COUNT(*) and, on SQLite,
sort/skip/limit run in SQL as well. SQL ordering assumes each sorted field
holds values of one kind (numbers, strings or dates) across the collection.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import threading
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy import Engine, text

from tablekit.persistence.adapter import UpdateResult
from tablekit.persistence.evaluate import matches, project, run_pipeline, select
from tablekit.persistence.predicates import (
    And,
    Eq,
    Exists,
    In,
    Match,
    MatchAll,
    MergePatch,
    Or,
    Predicate,
    SortKey,
    Stage,
)

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r"[^A-Za-z0-9_]")

# Values json_each/JSONB comparisons handle the same way as the evaluator
_SCALARS = (str, int, float)


def _table_name(collection: str) -> str:
    return "tk_" + _SAFE_NAME.sub("_", collection).lower()


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"$date": value.isoformat()}
    if isinstance(value, date):
        return {"$day": value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode(obj: dict[str, Any]) -> Any:
    if len(obj) == 1:
        if "$date" in obj:
            return datetime.fromisoformat(obj["$date"])
        if "$day" in obj:
            return date.fromisoformat(obj["$day"])
    return obj


def dumps(document: dict[str, Any]) -> str:
    return json.dumps(document, default=_encode)


def loads(payload: str) -> dict[str, Any]:
    return json.loads(payload, object_hook=_decode)


# =============================================================================
# Predicate -> WHERE translation
# =============================================================================


@dataclass
class Clause:
    """A WHERE fragment. exact means it selects precisely the matching rows."""

    sql: str
    exact: bool


class WhereBuilder:
    """Translates predicates to SQL over the document column.

    build() returns None when nothing could be translated. Untranslatable
    parts of an AND are dropped, which keeps the clause a superset of the
    matching rows but marks it inexact.
    """

    def __init__(self, dialect: str, primary_key: str):
        self.dialect = dialect
        self.primary_key = primary_key
        self.params: dict[str, Any] = {}

    def bind(self, value: Any) -> str:
        name = f"p{len(self.params)}"
        self.params[name] = value
        return f":{name}"

    def build(self, predicate: Predicate) -> Clause | None:
        if isinstance(predicate, MatchAll):
            return Clause("", exact=True)
        if isinstance(predicate, And):
            parts = [self.build(p) for p in predicate.items]
            kept = [c for c in parts if c is not None and c.sql]
            exact = all(c is not None and c.exact for c in parts)
            if not kept:
                return Clause("", exact=exact) if exact else None
            return Clause(" AND ".join(f"({c.sql})" for c in kept), exact=exact)
        if isinstance(predicate, Or):
            parts = [self.build(p) for p in predicate.items]
            if any(c is None or not c.sql for c in parts):
                return None
            return Clause(
                " OR ".join(f"({c.sql})" for c in parts),
                exact=all(c.exact for c in parts),
            )
        if isinstance(predicate, (Eq, In)) and predicate.field == self.primary_key:
            return self._primary_key(predicate)
        if isinstance(predicate, Eq):
            return self._contains(predicate.field, (predicate.value,))
        if isinstance(predicate, In):
            return self._contains(predicate.field, tuple(predicate.values))
        if isinstance(predicate, Exists):
            return self._exists(predicate.field, predicate.exists)
        return None

    # -- helpers --------------------------------------------------------

    def _path(self, field: str) -> str | None:
        parts = field.split(".")
        if any(not p or '"' in p for p in parts):
            return None
        if self.dialect == "sqlite":
            return "$" + "".join(f'."{p}"' for p in parts)
        if self.dialect == "postgresql" and len(parts) == 1:
            return parts[0]
        return None

    def _value_type(self, path: str) -> str:
        if self.dialect == "sqlite":
            return f"json_type(document, {self.bind(path)})"
        return f"jsonb_typeof(CAST(document AS JSONB) -> CAST({self.bind(path)} AS TEXT))"

    def _primary_key(self, predicate: Eq | In) -> Clause:
        values = (predicate.value,) if isinstance(predicate, Eq) else tuple(predicate.values)
        if not values:
            return Clause("1 = 0", exact=True)
        exact = all(isinstance(v, str) for v in values)
        placeholders = ", ".join(self.bind(str(v)) for v in values)
        return Clause(f"id IN ({placeholders})", exact=exact)

    def _contains(self, field: str, values: tuple) -> Clause | None:
        """field equals one of values, or (list field) contains one of them."""
        if not values:
            return Clause("1 = 0", exact=True)
        path = self._path(field)
        if path is None:
            return None

        if self.dialect == "sqlite":
            if not all(isinstance(v, _SCALARS) for v in values):
                return None
            placeholders = ", ".join(self.bind(v) for v in values)
            element = f"SELECT 1 FROM json_each(document, {self.bind(path)})"
            return Clause(
                f"{self._value_type(path)} != 'object' AND EXISTS "
                f"({element} WHERE value IN ({placeholders}))",
                exact=True,
            )

        # JSONB containment matches a scalar equal to, or an array holding, the value
        if not all(isinstance(v, str) for v in values):
            return None
        column = f"(CAST(document AS JSONB) -> CAST({self.bind(path)} AS TEXT))"
        return Clause(
            " OR ".join(
                f"{column} @> to_jsonb(CAST({self.bind(v)} AS TEXT))" for v in values
            ),
            exact=True,
        )

    def _exists(self, field: str, exists: bool) -> Clause | None:
        path = self._path(field)
        if path is None:
            return None
        op = "!=" if exists else "="
        return Clause(f"COALESCE({self._value_type(path)}, 'null') {op} 'null'", exact=True)

    def order_by(self, sort: list[SortKey]) -> str | None:
        """ORDER BY matching the evaluator's ordering, or None (SQLite only).

        json_extract yields NULL, numbers, then text, and dates are stored as
        {"$date": ...} text that sorts after plain strings. rowid keeps ties
        in insertion order, as the evaluator's stable sort does.
        """
        if self.dialect != "sqlite":
            return None
        parts = []
        for key in sort:
            path = self._path(key.field)
            if path is None:
                return None
            direction = "DESC" if key.descending else "ASC"
            parts.append(f"json_extract(document, {self.bind(path)}) {direction}")
        parts.append("rowid ASC")
        return ", ".join(parts)


class SQLRecordStore:
    """RecordStore over one SQL table holding JSON documents."""

    def __init__(self, engine: Engine, collection: str, primary_key: str = "id"):
        self.name = collection
        self.primary_key = primary_key
        self._engine = engine
        self._dialect = engine.dialect.name
        self._table = _table_name(collection)
        # Read-modify-write operations are serialized per store.
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Create the backing table if it doesn't exist."""
        with self._engine.connect() as conn:
            conn.execute(text(f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    id          VARCHAR(64) PRIMARY KEY,
                    document    TEXT NOT NULL
                )
            """))
            conn.commit()
        logger.debug("Initialized SQL store table %s", self._table)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _where(self, filter: Predicate) -> tuple[WhereBuilder, Clause | None]:
        builder = WhereBuilder(self._dialect, self.primary_key)
        return builder, builder.build(filter)

    def _load(self, conn: Any, filter: Predicate) -> list[dict[str, Any]]:
        builder, clause = self._where(filter)
        sql = f"SELECT document FROM {self._table}"
        if clause is not None and clause.sql:
            sql += f" WHERE {clause.sql}"
        if self._dialect == "sqlite":
            # Insertion order, even when the id index drives the scan
            sql += " ORDER BY rowid"
        rows = conn.execute(text(sql), builder.params).all()
        docs = [loads(r[0]) for r in rows]
        return [d for d in docs if matches(filter, d)]

    def _write(self, conn: Any, document: dict[str, Any]) -> None:
        conn.execute(
            text(f"UPDATE {self._table} SET document = :document WHERE id = :id"),
            {"id": str(document[self.primary_key]), "document": dumps(document)},
        )

    def _delete(self, conn: Any, ids: list[Any]) -> None:
        for record_id in ids:
            conn.execute(
                text(f"DELETE FROM {self._table} WHERE id = :id"), {"id": str(record_id)}
            )

    # ------------------------------------------------------------------
    # Sync implementations
    # ------------------------------------------------------------------

    def _find(self, filter, sort, skip, limit, projection) -> list[dict[str, Any]]:
        builder, clause = self._where(filter)
        order = builder.order_by(sort or []) if clause is not None and clause.exact else None

        with self._engine.connect() as conn:
            if order is None:
                rows = select(self._load(conn, filter), filter, sort, skip, limit)
            else:
                sql = f"SELECT document FROM {self._table}"
                if clause.sql:
                    sql += f" WHERE {clause.sql}"
                sql += f" ORDER BY {order}"
                if limit is not None:
                    sql += f" LIMIT {int(limit)} OFFSET {int(skip)}"
                elif skip:
                    sql += f" LIMIT -1 OFFSET {int(skip)}"
                result = conn.execute(text(sql), builder.params).all()
                rows = [loads(r[0]) for r in result]

        if projection:
            return [project(r, projection) for r in rows]
        return rows

    def _count(self, filter: Predicate) -> int:
        builder, clause = self._where(filter)
        with self._engine.connect() as conn:
            if clause is None or not clause.exact:
                return len(self._load(conn, filter))
            sql = f"SELECT COUNT(*) FROM {self._table}"
            if clause.sql:
                sql += f" WHERE {clause.sql}"
            return int(conn.execute(text(sql), builder.params).scalar_one())

    def _insert(self, document: dict[str, Any]) -> dict[str, Any]:
        doc = dict(document)
        if doc.get(self.primary_key) is None:
            doc[self.primary_key] = uuid.uuid4().hex
        with self._lock, self._engine.connect() as conn:
            conn.execute(
                text(f"INSERT INTO {self._table} (id, document) VALUES (:id, :document)"),
                {"id": str(doc[self.primary_key]), "document": dumps(doc)},
            )
            conn.commit()
        return loads(dumps(doc))

    def _find_one_and_update(self, filter, patch: MergePatch) -> dict[str, Any] | None:
        with self._lock, self._engine.connect() as conn:
            found = self._load(conn, filter)
            if not found:
                return None
            updated = patch.apply(found[0])
            self._write(conn, updated)
            conn.commit()
        return loads(dumps(updated))

    def _update_many(self, filter, patch: MergePatch) -> UpdateResult:
        modified = 0
        with self._lock, self._engine.connect() as conn:
            found = self._load(conn, filter)
            for doc in found:
                updated = patch.apply(doc)
                if updated != doc:
                    modified += 1
                    self._write(conn, updated)
            conn.commit()
        return UpdateResult(matched_count=len(found), modified_count=modified)

    def _find_one_and_delete(self, filter) -> dict[str, Any] | None:
        with self._lock, self._engine.connect() as conn:
            found = self._load(conn, filter)
            if not found:
                return None
            self._delete(conn, [found[0][self.primary_key]])
            conn.commit()
        return found[0]

    def _delete_many(self, filter) -> int:
        with self._lock, self._engine.connect() as conn:
            found = self._load(conn, filter)
            self._delete(conn, [d[self.primary_key] for d in found])
            conn.commit()
        return len(found)

    def _aggregate(self, pipeline: list[Stage]) -> list[dict[str, Any]]:
        # A leading Match narrows the rows loaded; the pipeline still runs in full
        leading: Predicate = MatchAll()
        if pipeline and isinstance(pipeline[0], Match):
            leading = pipeline[0].predicate
        with self._engine.connect() as conn:
            documents = self._load(conn, leading)
        return run_pipeline(documents, pipeline)

    # ------------------------------------------------------------------
    # RecordStore API
    # ------------------------------------------------------------------

    async def find(
        self,
        filter: Predicate,
        sort: list[SortKey] | None = None,
        skip: int = 0,
        limit: int | None = None,
        projection: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._find, filter, sort, skip, limit, projection)

    async def find_one(self, filter: Predicate) -> dict[str, Any] | None:
        rows = await asyncio.to_thread(self._find, filter, None, 0, 1, None)
        return rows[0] if rows else None

    async def count(self, filter: Predicate) -> int:
        return await asyncio.to_thread(self._count, filter)

    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        return await asyncio.to_thread(self._insert, document)

    async def find_one_and_update(
        self, filter: Predicate, patch: MergePatch
    ) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._find_one_and_update, filter, patch)

    async def update_many(self, filter: Predicate, patch: MergePatch) -> UpdateResult:
        return await asyncio.to_thread(self._update_many, filter, patch)

    async def find_one_and_delete(self, filter: Predicate) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._find_one_and_delete, filter)

    async def delete_many(self, filter: Predicate) -> int:
        return await asyncio.to_thread(self._delete_many, filter)

    async def aggregate(self, pipeline: list[Stage]) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._aggregate, pipeline)
