"""Table service: list, read, write and statistics for any configured table.

Every operation resolves the caller-scoped configuration first (so an unknown
entity key fails before any store is touched), then checks the capability
flag, then scopes rows to the caller.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from tablekit.auth.permissions import (
    SOFT_DELETE_FIELDS,
    SYSTEM_FIELDS,
    apply_column_write_policy,
    apply_field_read_policy,
    apply_field_write_policy,
    assert_capability,
    has_capability,
    owner_filter,
    protected_fields,
    scope_to_owner,
)
from tablekit.auth.types import Caller
from tablekit.config.store import TableConfigStore
from tablekit.config.types import QueryOptions, TableConfiguration
from tablekit.core.types import get_column_type, is_list
from tablekit.engine.compiler import CompiledQuery, QueryCompiler, describe
from tablekit.engine.registry import EntityRegistry
from tablekit.engine.statistics import calculate_aggregations, facet_counts
from tablekit.engine.types import (
    BulkDeleteResult,
    BulkUpdateResult,
    DeleteResult,
    PaginationMeta,
    TableResponse,
    TableStats,
)
from tablekit.errors import NotFoundError
from tablekit.hooks.service import HookRunner
from tablekit.persistence.adapter import RecordStore
from tablekit.persistence.predicates import (
    Eq,
    Exists,
    In,
    MergePatch,
    Predicate,
    SortKey,
    and_,
)
from tablekit.validation import Operation, ensure_valid

logger = logging.getLogger(__name__)

RECENT_ACTIVITY_LIMIT = 5

_NOT_DELETED = Exists("deletedAt", exists=False)


def _now() -> datetime:
    return datetime.now(UTC)


def _caller_id(caller: Caller | None) -> str | None:
    return caller.id if caller else None


class TableService:
    """Runs table operations against registered configurations and stores."""

    def __init__(
        self,
        configs: TableConfigStore,
        entities: EntityRegistry,
        hooks: HookRunner | None = None,
    ):
        self.configs = configs
        self.entities = entities
        self._hooks = hooks or HookRunner()
        self._compiler = QueryCompiler(self._hooks)

    def _open(
        self, entity_key: str, operation: str, caller: Caller | None
    ) -> tuple[TableConfiguration, RecordStore]:
        config = self.configs.require_for_user(entity_key, caller)
        assert_capability(config, operation, caller)
        return config, self.entities.get(entity_key)

    def _record_filter(
        self,
        config: TableConfiguration,
        record_id: str,
        caller: Caller | None,
        scope: str,
        include_deleted: bool = False,
    ) -> Predicate:
        return and_(
            Eq(config.primary_key, record_id),
            None if include_deleted else _NOT_DELETED,
            owner_filter(config, caller, scope),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list(
        self,
        entity_key: str,
        options: QueryOptions | None = None,
        caller: Caller | None = None,
    ) -> TableResponse:
        """Read one page of records (or groups) with table metadata."""
        options = options or QueryOptions()
        config, store = self._open(entity_key, "view", caller)

        compiled = await self._compiler.compile(config, options, caller)
        logger.debug("List %s: %s", entity_key, describe(compiled))

        if compiled.grouped:
            data = await store.aggregate(compiled.pipeline)
            counted = await store.aggregate(compiled.count_pipeline)
            total = counted[0]["total"] if counted else 0
        else:
            data = await store.find(
                compiled.filter, list(compiled.sort), compiled.skip, compiled.limit
            )
            total = await store.count(compiled.filter)
            if options.populate:
                data = await self._populate(config, data, options.populate, caller)

        data = [apply_field_read_policy(r, config) for r in data]
        data = await self._hooks.transform(
            "afterQuery", config.hooks, entity_key, data, caller
        )

        aggregations = None
        if compiled.aggregations:
            aggregations = await calculate_aggregations(
                store, compiled.filter, compiled.aggregations
            )

        return TableResponse(
            data=data,
            meta=PaginationMeta(total=total, page=compiled.page, limit=compiled.limit),
            config=self._response_config(config, compiled),
            aggregations=aggregations,
            grouped=compiled.grouped,
        )

    async def get_one(
        self, entity_key: str, record_id: str, caller: Caller | None = None
    ) -> dict[str, Any]:
        config, store = self._open(entity_key, "view", caller)
        record = await store.find_one(self._record_filter(config, record_id, caller, "view"))
        if record is None:
            raise NotFoundError(f"Record not found: {record_id}")
        return apply_field_read_policy(record, config)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self, entity_key: str, payload: dict[str, Any], caller: Caller | None = None
    ) -> dict[str, Any]:
        config, store = self._open(entity_key, "create", caller)
        schema = self.configs.require(entity_key)

        data = self._writable(schema, payload, caller)
        for name in (config.primary_key, *SYSTEM_FIELDS, *SOFT_DELETE_FIELDS):
            data.pop(name, None)

        data = await self._hooks.transform(
            "beforeCreate", config.hooks, entity_key, data, caller
        )
        ensure_valid(schema, data, Operation.CREATE)

        now = _now()
        user_id = _caller_id(caller)
        data.update(createdAt=now, updatedAt=now, createdBy=user_id, updatedBy=user_id)
        if config.owner_field:
            data[config.owner_field] = user_id
        if data.get(config.primary_key) is None:
            data[config.primary_key] = uuid.uuid4().hex

        record = await store.insert(data)
        logger.debug("Created %s %s", entity_key, record[config.primary_key])
        await self._hooks.notify("afterCreate", config.hooks, entity_key, record, caller)
        return apply_field_read_policy(record, config)

    def _writable(
        self, schema: TableConfiguration, payload: dict[str, Any], caller: Caller | None
    ) -> dict[str, Any]:
        """Drop fields the caller may not write.

        schema is the unscoped configuration, so columns hidden from the
        caller's roles are still recognised and stripped.
        """
        data = apply_column_write_policy(dict(payload), schema, caller)
        return apply_field_write_policy(data, schema)

    def _prepare_update(
        self, schema: TableConfiguration, payload: dict[str, Any], caller: Caller | None
    ) -> dict[str, Any]:
        blocked = protected_fields(schema) | {"updatedAt", "updatedBy"}
        data = {k: v for k, v in payload.items() if k not in blocked}
        return self._writable(schema, data, caller)

    async def update(
        self,
        entity_key: str,
        record_id: str,
        payload: dict[str, Any],
        caller: Caller | None = None,
    ) -> dict[str, Any]:
        config, store = self._open(entity_key, "edit", caller)

        record_filter = self._record_filter(config, record_id, caller, "edit")
        if await store.find_one(record_filter) is None:
            raise NotFoundError(f"Record not found: {record_id}")

        schema = self.configs.require(entity_key)
        data = self._prepare_update(schema, payload, caller)
        data = await self._hooks.transform(
            "beforeUpdate", config.hooks, entity_key, data, caller
        )
        ensure_valid(schema, data, Operation.UPDATE)
        data.update(updatedAt=_now(), updatedBy=_caller_id(caller))

        updated = await store.find_one_and_update(record_filter, MergePatch(set=data))
        if updated is None:
            # Deleted or reassigned between the check and the write
            raise NotFoundError(f"Record not found: {record_id}")

        await self._hooks.notify("afterUpdate", config.hooks, entity_key, updated, caller)
        return apply_field_read_policy(updated, config)

    async def delete(
        self,
        entity_key: str,
        record_id: str,
        permanent: bool = False,
        caller: Caller | None = None,
    ) -> DeleteResult:
        """Soft delete a record, or remove it when permanent.

        The permanent path may target records that are already soft-deleted.
        """
        config, store = self._open(entity_key, "delete", caller)

        record_filter = self._record_filter(
            config, record_id, caller, "delete", include_deleted=permanent
        )
        if await store.find_one(record_filter) is None:
            raise NotFoundError(f"Record not found: {record_id}")

        await self._hooks.before_delete(config.hooks, entity_key, record_id, caller)

        if permanent:
            removed = await store.find_one_and_delete(record_filter)
        else:
            removed = await store.find_one_and_update(
                record_filter,
                MergePatch(set={"deletedAt": _now(), "deletedBy": _caller_id(caller)}),
            )
        if removed is None:
            raise NotFoundError(f"Record not found: {record_id}")

        logger.debug("Deleted %s %s (permanent=%s)", entity_key, record_id, permanent)
        await self._hooks.notify("afterDelete", config.hooks, entity_key, record_id, caller)
        return DeleteResult(id=record_id, deleted=True, permanent=permanent)

    async def bulk_update(
        self,
        entity_key: str,
        ids: list[str],
        payload: dict[str, Any],
        caller: Caller | None = None,
    ) -> BulkUpdateResult:
        """Apply one payload to every listed record the caller may edit.

        Ids that don't match (missing, deleted or owned by someone else) are
        silently excluded from the counts.
        """
        config, store = self._open(entity_key, "bulkEdit", caller)

        schema = self.configs.require(entity_key)
        data = self._prepare_update(schema, payload, caller)
        data = await self._hooks.transform(
            "beforeUpdate", config.hooks, entity_key, data, caller
        )
        ensure_valid(schema, data, Operation.UPDATE)
        data.update(updatedAt=_now(), updatedBy=_caller_id(caller))

        bulk_filter = scope_to_owner(
            config, and_(In(config.primary_key, tuple(ids)), _NOT_DELETED), caller, "edit"
        )
        result = await store.update_many(bulk_filter, MergePatch(set=data))
        logger.debug(
            "Bulk update %s: %d matched of %d ids", entity_key, result.matched_count, len(ids)
        )
        return BulkUpdateResult(
            matched_count=result.matched_count, modified_count=result.modified_count
        )

    async def bulk_delete(
        self,
        entity_key: str,
        ids: list[str],
        permanent: bool = False,
        caller: Caller | None = None,
    ) -> BulkDeleteResult:
        """Delete every listed record the caller may delete. No per-record hooks run."""
        config, store = self._open(entity_key, "delete", caller)

        bulk_filter = scope_to_owner(
            config,
            and_(In(config.primary_key, tuple(ids)), None if permanent else _NOT_DELETED),
            caller,
            "delete",
        )
        if permanent:
            count = await store.delete_many(bulk_filter)
        else:
            result = await store.update_many(
                bulk_filter,
                MergePatch(set={"deletedAt": _now(), "deletedBy": _caller_id(caller)}),
            )
            count = result.modified_count
        return BulkDeleteResult(deleted_count=count, permanent=permanent)

    # ------------------------------------------------------------------
    # Statistics and metadata
    # ------------------------------------------------------------------

    async def stats(self, entity_key: str, caller: Caller | None = None) -> TableStats:
        config, store = self._open(entity_key, "view", caller)

        active = scope_to_owner(config, _NOT_DELETED, caller, "view")
        deleted = scope_to_owner(config, Exists("deletedAt"), caller, "view")

        facets = {}
        for column in config.columns:
            if get_column_type(column.type).faceted:
                facets[column.key] = await facet_counts(
                    store, active, column.key, multi=is_list(column.type)
                )

        recent = await store.find(
            active,
            sort=[SortKey("updatedAt", descending=True)],
            limit=RECENT_ACTIVITY_LIMIT,
            projection=[config.primary_key, "updatedAt"],
        )
        return TableStats(
            total=await store.count(active),
            deleted=await store.count(deleted),
            facets=facets,
            recent_activity=[
                {"id": r.get(config.primary_key), "updatedAt": r.get("updatedAt")}
                for r in recent
            ],
        )

    def list_tables(self, caller: Caller | None = None) -> list[dict[str, Any]]:
        """Summaries of every table the caller can view."""
        result = []
        for config in self.configs.list_configs():
            if not has_capability(config, "view"):
                continue
            result.append({
                "entityKey": config.entity_key,
                "displayName": config.display_name,
                "displayNamePlural": config.display_name_plural,
                "description": config.description,
                "icon": config.icon,
            })
        return result

    def get_config(self, entity_key: str, caller: Caller | None = None) -> dict[str, Any]:
        config = self.configs.require_for_user(entity_key, caller)
        assert_capability(config, "view", caller)
        return config.to_dict()

    def get_actions(
        self,
        entity_key: str,
        caller: Caller | None = None,
        action_type: str | None = None,
    ) -> list[dict[str, Any]]:
        config = self.configs.require_for_user(entity_key, caller)
        assert_capability(config, "view", caller)
        return [
            a.to_dict()
            for a in config.actions
            if action_type is None or a.type == action_type
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _response_config(
        self, config: TableConfiguration, compiled: CompiledQuery
    ) -> dict[str, Any]:
        visible = set(compiled.visible_columns)
        return {
            "columns": [c.to_dict() for c in config.columns if c.key in visible],
            "views": [v.to_dict() for v in config.views],
            "view": compiled.view.to_dict() if compiled.view else None,
            "defaultView": config.default_view,
            "actions": [a.to_dict() for a in config.actions],
            "permissions": config.permissions.to_dict(),
            "features": config.features.to_dict(),
        }

    async def _populate(
        self,
        config: TableConfiguration,
        records: list[dict[str, Any]],
        keys: list[str],
        caller: Caller | None,
    ) -> list[dict[str, Any]]:
        """Attach "{key}_display" values for relation columns.

        Related rows are read with the related table's own view capability,
        soft-delete exclusion and owner scope.
        """
        for key in keys:
            column = config.get_column(key)
            if column is None or column.relation is None:
                logger.debug("Ignoring populate hint %r on %s", key, config.entity_key)
                continue

            related = self.configs.get(column.relation.entity)
            if (
                related is None
                or not self.entities.has(related.entity_key)
                or not has_capability(related, "view")
            ):
                continue
            display_field = column.relation.display_field
            policy = related.permissions.field_permissions.get(display_field)
            if policy is not None and not policy.view:
                continue

            ids: set[Any] = set()
            for record in records:
                value = record.get(key)
                if isinstance(value, list):
                    ids.update(v for v in value if v is not None)
                elif value is not None:
                    ids.add(value)
            if not ids:
                continue

            related_filter = scope_to_owner(
                related,
                and_(In(related.primary_key, tuple(ids)), _NOT_DELETED),
                caller,
                "view",
            )
            rows = await self.entities.get(related.entity_key).find(
                related_filter, projection=[related.primary_key, display_field]
            )
            labels = {r[related.primary_key]: r.get(display_field) for r in rows}

            for record in records:
                value = record.get(key)
                if isinstance(value, list):
                    record[f"{key}_display"] = [labels.get(v) for v in value]
                elif value is not None:
                    record[f"{key}_display"] = labels.get(value)
        return records
