"""Tests for TableService: CRUD, ownership, soft delete, paging and grouping."""

import copy
from datetime import UTC, datetime, timedelta

import pytest

from tablekit.config.types import AggregationSpec, FilterPredicate, QueryOptions, SortSpec
from tablekit.engine.compiler import MAX_LIMIT
from tablekit.errors import ForbiddenError, NotFoundError, ValidationFailedError
from tablekit.persistence.predicates import MatchAll

from conftest import TASKS_TABLE


class ExplodingStore:
    """A store that fails the test if the engine touches it."""

    name = "exploding"
    primary_key = "id"

    def __getattr__(self, item):
        raise AssertionError(f"store touched: {item}")


async def seed(service, caller, *rows):
    return [await service.create("tasks", row, caller) for row in rows]


# =============================================================================
# Resolution and capabilities
# =============================================================================


class TestResolution:
    @pytest.mark.asyncio
    async def test_unregistered_key_fails_before_store_access(self, service, alice):
        service.entities.register("ghost", ExplodingStore())

        with pytest.raises(NotFoundError, match="Table configuration not found"):
            await service.list("ghost", QueryOptions(), alice)
        with pytest.raises(NotFoundError):
            await service.get_one("ghost", "x", alice)
        with pytest.raises(NotFoundError):
            await service.create("ghost", {"title": "x"}, alice)
        with pytest.raises(NotFoundError):
            await service.bulk_delete("ghost", ["x"], caller=alice)

    @pytest.mark.asyncio
    async def test_configured_table_without_store_is_not_found(self, service, alice):
        service.entities._stores.pop("tasks")
        with pytest.raises(NotFoundError, match="No store registered"):
            await service.list("tasks", QueryOptions(), alice)


class TestCapabilities:
    @pytest.mark.asyncio
    async def test_create_disabled_is_forbidden_without_side_effects(self, make_service, alice):
        service = make_service(permissions={"create": False})
        store = service.entities.get("tasks")

        with pytest.raises(ForbiddenError):
            await service.create("tasks", {"title": "Nope"}, alice)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_delete_disabled_keeps_record(self, make_service, alice):
        service = make_service(permissions={"delete": False})
        [task] = await seed(service, alice, {"title": "Keep me"})

        with pytest.raises(ForbiddenError):
            await service.delete("tasks", task["id"], caller=alice)
        with pytest.raises(ForbiddenError):
            await service.bulk_delete("tasks", [task["id"]], caller=alice)

        fetched = await service.get_one("tasks", task["id"], alice)
        assert "deletedAt" not in fetched

    @pytest.mark.asyncio
    async def test_bulk_edit_disabled(self, make_service, alice):
        service = make_service(permissions={"bulkEdit": False})
        [task] = await seed(service, alice, {"title": "A", "status": "todo"})

        with pytest.raises(ForbiddenError):
            await service.bulk_update("tasks", [task["id"]], {"status": "done"}, alice)
        assert (await service.get_one("tasks", task["id"], alice))["status"] == "todo"

    @pytest.mark.asyncio
    async def test_view_disabled(self, make_service, alice):
        service = make_service(permissions={"view": False})
        with pytest.raises(ForbiddenError):
            await service.list("tasks", QueryOptions(), alice)
        with pytest.raises(ForbiddenError):
            await service.stats("tasks", alice)
        with pytest.raises(ForbiddenError):
            service.get_actions("tasks", alice)


# =============================================================================
# Create / update / delete
# =============================================================================


class TestCreate:
    @pytest.mark.asyncio
    async def test_stamps_system_fields_and_owner(self, service, alice):
        record = await service.create(
            "tasks", {"title": "Write tests", "userId": "mallory"}, alice
        )

        assert record["userId"] == "alice"
        assert record["createdBy"] == "alice"
        assert record["updatedBy"] == "alice"
        assert record["createdAt"] == record["updatedAt"]
        assert record["createdAt"].tzinfo is not None
        assert len(record["id"]) == 32

    @pytest.mark.asyncio
    async def test_client_id_and_soft_delete_fields_are_ignored(self, service, alice):
        record = await service.create(
            "tasks",
            {"id": "chosen", "title": "A", "deletedAt": "2024-01-01", "createdBy": "x"},
            alice,
        )

        assert record["id"] != "chosen"
        assert "deletedAt" not in record
        assert record["createdBy"] == "alice"

    @pytest.mark.asyncio
    async def test_validation_failure_lists_every_issue(self, service, store, alice):
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create("tasks", {"points": 500, "status": "bogus"}, alice)

        codes = {(i.field, i.code) for i in exc_info.value.issues}
        assert codes == {
            ("title", "REQUIRED"),
            ("points", "MAX_VALUE"),
            ("status", "INVALID_OPTION"),
        }
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_unhashable_option_values_fail_validation(self, service, store, alice):
        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create("tasks", {"title": "A", "tags": [{"x": 1}], "status": {"v": 1}}, alice)

        codes = {(i.field, i.code) for i in exc_info.value.issues}
        assert codes == {("tags", "INVALID_OPTION"), ("status", "INVALID_OPTION")}
        assert len(store) == 0


class TestUpdate:
    @pytest.mark.asyncio
    async def test_merges_fields(self, service, alice):
        [task] = await seed(service, alice, {"title": "A", "status": "todo", "points": 3})

        updated = await service.update("tasks", task["id"], {"status": "done"}, alice)

        assert updated["status"] == "done"
        assert updated["title"] == "A"
        assert updated["points"] == 3
        assert updated["updatedAt"] >= task["updatedAt"]

    @pytest.mark.asyncio
    async def test_protected_fields_are_dropped(self, service, alice):
        [task] = await seed(service, alice, {"title": "A"})

        updated = await service.update(
            "tasks",
            task["id"],
            {
                "id": "other",
                "userId": "bob",
                "createdAt": "1999-01-01",
                "createdBy": "bob",
                "deletedAt": "1999-01-01",
                "title": "B",
            },
            alice,
        )

        assert updated["id"] == task["id"]
        assert updated["userId"] == "alice"
        assert updated["createdAt"] == task["createdAt"]
        assert updated["createdBy"] == "alice"
        assert "deletedAt" not in updated
        assert updated["title"] == "B"

    @pytest.mark.asyncio
    async def test_partial_update_skips_untouched_required_fields(self, service, alice):
        [task] = await seed(service, alice, {"title": "A"})
        updated = await service.update("tasks", task["id"], {"points": 5}, alice)
        assert updated["points"] == 5

    @pytest.mark.asyncio
    async def test_required_field_cannot_be_cleared(self, service, alice):
        [task] = await seed(service, alice, {"title": "A"})
        with pytest.raises(ValidationFailedError):
            await service.update("tasks", task["id"], {"title": ""}, alice)

    @pytest.mark.asyncio
    async def test_update_by_non_owner_is_not_found(self, service, alice, bob):
        [task] = await seed(service, alice, {"title": "Mine"})

        with pytest.raises(NotFoundError):
            await service.update("tasks", task["id"], {"title": "Theirs"}, bob)
        assert (await service.get_one("tasks", task["id"], alice))["title"] == "Mine"

    @pytest.mark.asyncio
    async def test_update_missing_record(self, service, alice):
        with pytest.raises(NotFoundError):
            await service.update("tasks", "nope", {"title": "x"}, alice)


def columns_with_roles(key: str, **roles) -> list[dict]:
    columns = copy.deepcopy(TASKS_TABLE["columns"])
    for column in columns:
        if column["key"] == key:
            column.update(roles)
    return columns


class TestRoleRestrictedColumns:
    @pytest.mark.asyncio
    async def test_hidden_column_is_not_writable(self, make_service, alice):
        service = make_service(
            columns=columns_with_roles("points", permissions={"view": ["admin"], "edit": ["admin"]})
        )

        record = await service.create("tasks", {"title": "t", "points": 5000}, alice)

        [stored] = await service.entities.get("tasks").find(MatchAll())
        assert "points" not in record
        assert "points" not in stored

    @pytest.mark.asyncio
    async def test_hidden_column_rules_apply_to_every_caller(self, make_service, admin):
        service = make_service(
            columns=columns_with_roles("points", permissions={"view": ["admin"], "edit": ["admin"]})
        )

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create("tasks", {"title": "t", "points": 5000}, admin)
        assert [(i.field, i.code) for i in exc_info.value.issues] == [("points", "MAX_VALUE")]

    @pytest.mark.asyncio
    async def test_required_hidden_column_is_checked_on_create(self, make_service, alice):
        service = make_service(
            columns=columns_with_roles(
                "points", required=True, permissions={"view": ["admin"]}
            )
        )

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.create("tasks", {"title": "t"}, alice)
        assert [(i.field, i.code) for i in exc_info.value.issues] == [("points", "REQUIRED")]

    @pytest.mark.asyncio
    async def test_edit_roles_limit_writes(self, make_service, alice, admin):
        service = make_service(
            columns=columns_with_roles("points", permissions={"edit": ["admin"]})
        )
        [mine] = await seed(service, alice, {"title": "A", "points": 5})
        [theirs] = await seed(service, admin, {"title": "B", "points": 5})

        assert "points" not in mine
        assert theirs["points"] == 5

        updated = await service.update("tasks", mine["id"], {"title": "A2", "points": 9}, alice)
        assert updated["title"] == "A2"
        assert "points" not in updated

        result = await service.bulk_update("tasks", [mine["id"]], {"points": 9}, alice)
        assert result.matched_count == 1
        assert "points" not in await service.get_one("tasks", mine["id"], alice)

        updated = await service.update("tasks", theirs["id"], {"points": 7}, admin)
        assert updated["points"] == 7

    def test_column_roles_are_serialized(self, make_service, alice):
        service = make_service(
            columns=columns_with_roles("points", permissions={"edit": ["admin"]})
        )
        columns = {c["key"]: c for c in service.get_config("tasks", alice)["columns"]}
        assert columns["points"]["permissions"] == {"view": None, "edit": ["admin"]}
        assert columns["title"]["permissions"] == {"view": None, "edit": None}


class TestDelete:
    @pytest.mark.asyncio
    async def test_soft_delete_hides_record(self, service, store, alice):
        [task] = await seed(service, alice, {"title": "A"})

        result = await service.delete("tasks", task["id"], caller=alice)

        assert result.to_dict() == {"id": task["id"], "deleted": True, "permanent": False}
        assert len(store) == 1
        with pytest.raises(NotFoundError):
            await service.get_one("tasks", task["id"], alice)

    @pytest.mark.asyncio
    async def test_second_soft_delete_is_not_found(self, service, alice):
        [task] = await seed(service, alice, {"title": "A"})
        await service.delete("tasks", task["id"], caller=alice)

        with pytest.raises(NotFoundError):
            await service.delete("tasks", task["id"], caller=alice)

    @pytest.mark.asyncio
    async def test_permanent_delete_reaches_soft_deleted_records(self, service, store, alice):
        [task] = await seed(service, alice, {"title": "A"})
        await service.delete("tasks", task["id"], caller=alice)

        result = await service.delete("tasks", task["id"], permanent=True, caller=alice)

        assert result.permanent is True
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_delete_by_non_owner_is_not_found(self, service, alice, bob):
        [task] = await seed(service, alice, {"title": "A"})
        with pytest.raises(NotFoundError):
            await service.delete("tasks", task["id"], permanent=True, caller=bob)

    @pytest.mark.asyncio
    async def test_soft_deleted_records_are_not_updatable(self, service, alice):
        [task] = await seed(service, alice, {"title": "A"})
        await service.delete("tasks", task["id"], caller=alice)
        with pytest.raises(NotFoundError):
            await service.update("tasks", task["id"], {"title": "B"}, alice)


# =============================================================================
# Ownership
# =============================================================================


class TestOwnership:
    @pytest.mark.asyncio
    async def test_reads_are_isolated(self, service, alice, bob):
        [task] = await seed(service, alice, {"title": "Alice's"})
        await seed(service, bob, {"title": "Bob's"})

        with pytest.raises(NotFoundError):
            await service.get_one("tasks", task["id"], bob)

        result = await service.list("tasks", QueryOptions(), bob)
        assert [r["title"] for r in result.data] == ["Bob's"]
        assert result.meta.total == 1

    @pytest.mark.asyncio
    async def test_bulk_update_skips_foreign_ids(self, service, alice, bob):
        mine = await seed(service, alice, *({"title": f"A{i}", "status": "todo"} for i in range(3)))
        theirs = await seed(service, bob, *({"title": f"B{i}", "status": "todo"} for i in range(2)))
        ids = [r["id"] for r in mine + theirs]

        result = await service.bulk_update("tasks", ids, {"status": "done"}, alice)

        assert result.matched_count == 3
        assert result.to_dict()["matchedCount"] == 3
        for record in theirs:
            assert (await service.get_one("tasks", record["id"], bob))["status"] == "todo"

    @pytest.mark.asyncio
    async def test_bulk_delete_skips_foreign_ids(self, service, alice, bob):
        mine = await seed(service, alice, {"title": "A"})
        theirs = await seed(service, bob, {"title": "B"})

        result = await service.bulk_delete(
            "tasks", [mine[0]["id"], theirs[0]["id"]], caller=alice
        )

        assert result.deleted_count == 1
        assert await service.get_one("tasks", theirs[0]["id"], bob)

    @pytest.mark.asyncio
    async def test_can_view_all_lifts_read_scope_only(self, make_service, alice, bob):
        service = make_service(
            permissions={"rowPermissions": {"ownerField": "userId", "canViewAll": True}}
        )
        [task] = await seed(service, alice, {"title": "Shared"})

        assert (await service.get_one("tasks", task["id"], bob))["title"] == "Shared"
        with pytest.raises(NotFoundError):
            await service.update("tasks", task["id"], {"title": "x"}, bob)

    @pytest.mark.asyncio
    async def test_anonymous_caller_never_matches_owned_rows(self, service, alice):
        await seed(service, alice, {"title": "A"})
        result = await service.list("tasks", QueryOptions(), None)
        assert result.meta.total == 0

    @pytest.mark.asyncio
    async def test_unowned_table_is_shared(self, make_service, alice, bob):
        service = make_service(permissions={"rowPermissions": None})
        [task] = await seed(service, alice, {"title": "A"})
        assert "userId" not in task
        assert await service.get_one("tasks", task["id"], bob)


# =============================================================================
# Bulk soft delete
# =============================================================================


class TestBulkDelete:
    @pytest.mark.asyncio
    async def test_soft_bulk_delete_excludes_already_deleted(self, service, alice):
        tasks = await seed(service, alice, {"title": "A"}, {"title": "B"})
        await service.delete("tasks", tasks[0]["id"], caller=alice)

        result = await service.bulk_delete("tasks", [t["id"] for t in tasks], caller=alice)

        assert result.to_dict() == {"deletedCount": 1, "permanent": False}

    @pytest.mark.asyncio
    async def test_permanent_bulk_delete(self, service, store, alice):
        tasks = await seed(service, alice, {"title": "A"}, {"title": "B"}, {"title": "C"})

        result = await service.bulk_delete(
            "tasks", [t["id"] for t in tasks[:2]], permanent=True, caller=alice
        )

        assert result.deleted_count == 2
        assert len(store) == 1


# =============================================================================
# Listing
# =============================================================================


class TestList:
    @pytest.mark.asyncio
    async def test_pagination_metadata(self, service, store, alice):
        for i in range(137):
            await store.insert({"id": f"t{i:03d}", "title": f"Task {i}", "userId": "alice"})

        first = await service.list("tasks", QueryOptions(page=1, limit=50), alice)
        second = await service.list("tasks", QueryOptions(page=2, limit=50), alice)
        third = await service.list("tasks", QueryOptions(page=3, limit=50), alice)

        assert first.meta.total == 137
        assert first.meta.total_pages == 3
        assert (first.meta.has_next, first.meta.has_prev) == (True, False)
        assert (second.meta.has_next, second.meta.has_prev) == (True, True)
        assert (third.meta.has_next, third.meta.has_prev) == (False, True)
        assert len(third.data) == 37

    @pytest.mark.asyncio
    async def test_limit_is_clamped(self, service, alice):
        result = await service.list("tasks", QueryOptions(limit=5000), alice)
        assert result.meta.limit == MAX_LIMIT == 1000

    @pytest.mark.asyncio
    async def test_default_sort_is_newest_first(self, service, store, alice):
        base = datetime(2024, 1, 1, tzinfo=UTC)
        for i in range(3):
            await store.insert({
                "id": f"t{i}",
                "title": f"T{i}",
                "userId": "alice",
                "createdAt": base + timedelta(days=i),
            })

        result = await service.list("tasks", QueryOptions(), alice)
        assert [r["id"] for r in result.data] == ["t2", "t1", "t0"]

    @pytest.mark.asyncio
    async def test_filters_and_sorts(self, service, alice):
        await seed(
            service,
            alice,
            {"title": "A", "points": 1},
            {"title": "B", "points": 5},
            {"title": "C", "points": 8},
        )
        options = QueryOptions(
            filters=[FilterPredicate("points", "greater_than", 2)],
            sorts=[SortSpec("points", "desc")],
        )

        result = await service.list("tasks", options, alice)

        assert [r["title"] for r in result.data] == ["C", "B"]

    @pytest.mark.asyncio
    async def test_search_over_searchable_columns(self, service, alice):
        await seed(service, alice, {"title": "Buy milk"}, {"title": "Call mom"})
        result = await service.list("tasks", QueryOptions(search="MILK"), alice)
        assert [r["title"] for r in result.data] == ["Buy milk"]

    @pytest.mark.asyncio
    async def test_view_filters_sorts_and_columns(self, service, alice):
        await seed(
            service,
            alice,
            {"title": "A", "status": "todo", "points": 1},
            {"title": "B", "status": "done", "points": 9},
            {"title": "C", "status": "in_progress", "points": 4},
        )

        result = await service.list("tasks", QueryOptions(view="open"), alice)

        assert [r["title"] for r in result.data] == ["C", "A"]
        assert [c["key"] for c in result.config["columns"]] == ["title", "status"]
        assert result.config["view"]["id"] == "open"

    @pytest.mark.asyncio
    async def test_include_deleted(self, service, alice):
        tasks = await seed(service, alice, {"title": "A"}, {"title": "B"})
        await service.delete("tasks", tasks[0]["id"], caller=alice)

        default = await service.list("tasks", QueryOptions(), alice)
        everything = await service.list("tasks", QueryOptions(include_deleted=True), alice)

        assert default.meta.total == 1
        assert everything.meta.total == 2

    @pytest.mark.asyncio
    async def test_flat_aggregations(self, service, alice):
        await seed(
            service,
            alice,
            {"title": "A", "points": 2, "status": "todo"},
            {"title": "B", "points": 4, "status": "todo"},
        )
        options = QueryOptions(aggregations=[
            AggregationSpec("points", "sum"),
            AggregationSpec("points", "avg"),
            AggregationSpec("status", "distinct_count"),
        ])

        result = await service.list("tasks", options, alice)

        assert result.aggregations == {
            "points_sum": 6,
            "points_avg": 3,
            "status_distinct_count": 1,
        }

    @pytest.mark.asyncio
    async def test_hidden_fields_are_not_aggregated(self, make_service, alice):
        service = make_service(permissions={"fieldPermissions": {"points": {"view": False}}})
        await seed(service, alice, {"title": "A", "points": 2}, {"title": "B", "points": 4})
        options = QueryOptions(
            aggregations=[AggregationSpec("points", "sum")],
            sorts=[SortSpec("points", "desc")],
        )

        result = await service.list("tasks", options, alice)

        assert result.aggregations is None
        assert sorted(r["title"] for r in result.data) == ["A", "B"]
        assert all("points" not in r for r in result.data)

    @pytest.mark.asyncio
    async def test_response_envelope(self, service, alice):
        await seed(service, alice, {"title": "A"})
        body = (await service.list("tasks", QueryOptions(), alice)).to_dict()

        assert body["success"] is True
        assert body["meta"]["totalPages"] == 1
        assert {"columns", "views", "actions", "permissions", "features"} <= set(body["config"])
        assert "aggregations" not in body


class TestGrouping:
    @pytest.mark.asyncio
    async def test_group_by_status_with_sum(self, service, alice):
        await seed(
            service,
            alice,
            {"title": "A", "status": "todo", "points": 1},
            {"title": "B", "status": "todo", "points": 2},
            {"title": "C", "status": "done", "points": 3},
        )
        options = QueryOptions(
            group_by=["status"], aggregations=[AggregationSpec("points", "sum")]
        )

        result = await service.list("tasks", options, alice)

        assert result.grouped is True
        sums = {row["status"]: row["points_sum"] for row in result.data}
        assert sums == {"todo": 3, "done": 3}
        assert result.meta.total == 2

    @pytest.mark.asyncio
    async def test_grouping_from_view(self, service, alice):
        await seed(
            service,
            alice,
            {"title": "A", "status": "todo", "points": 1},
            {"title": "C", "status": "done", "points": 3},
        )

        result = await service.list("tasks", QueryOptions(view="by-status"), alice)

        assert result.data == [
            {"status": "done", "points_sum": 3},
            {"status": "todo", "points_sum": 1},
        ]

    @pytest.mark.asyncio
    async def test_grouping_is_owner_scoped(self, service, alice, bob):
        await seed(service, alice, {"title": "A", "status": "todo", "points": 1})
        await seed(service, bob, {"title": "B", "status": "todo", "points": 50})
        options = QueryOptions(
            group_by=["status"], aggregations=[AggregationSpec("points", "sum")]
        )

        result = await service.list("tasks", options, alice)

        assert result.data == [{"status": "todo", "points_sum": 1}]

    @pytest.mark.asyncio
    async def test_group_sort_by_derived_field(self, service, alice):
        await seed(
            service,
            alice,
            {"title": "A", "status": "todo", "points": 1},
            {"title": "B", "status": "done", "points": 9},
            {"title": "C", "status": "in_progress", "points": 5},
        )
        options = QueryOptions(
            group_by=["status"],
            aggregations=[AggregationSpec("points", "sum")],
            sorts=[SortSpec("points_sum", "desc")],
        )

        result = await service.list("tasks", options, alice)

        assert [r["status"] for r in result.data] == ["done", "in_progress", "todo"]

    @pytest.mark.asyncio
    async def test_group_distinct_count(self, service, alice):
        await seed(
            service,
            alice,
            {"title": "A", "status": "todo", "points": 1},
            {"title": "B", "status": "todo", "points": 1},
            {"title": "C", "status": "todo", "points": 2},
        )
        options = QueryOptions(
            group_by=["status"], aggregations=[AggregationSpec("points", "distinct_count")]
        )

        result = await service.list("tasks", options, alice)

        assert result.data == [{"status": "todo", "points_distinct_count": 2}]


# =============================================================================
# Statistics and metadata
# =============================================================================


class TestStats:
    @pytest.mark.asyncio
    async def test_stats(self, service, alice, bob):
        tasks = await seed(
            service,
            alice,
            {"title": "A", "status": "todo", "tags": ["home", "work"]},
            {"title": "B", "status": "todo", "tags": ["work"]},
            {"title": "C", "status": "done"},
            {"title": "D", "status": "in_progress"},
        )
        await seed(service, bob, {"title": "X", "status": "done"})
        await service.delete("tasks", tasks[3]["id"], caller=alice)

        stats = await service.stats("tasks", alice)

        assert stats.total == 3
        assert stats.deleted == 1
        assert stats.facets["status"] == [
            {"value": "todo", "count": 2},
            {"value": "done", "count": 1},
        ]
        assert stats.facets["tags"] == [
            {"value": "work", "count": 2},
            {"value": "home", "count": 1},
        ]
        assert len(stats.recent_activity) == 3
        assert set(stats.recent_activity[0]) == {"id", "updatedAt"}
        assert "recentActivity" in stats.to_dict()


class TestMetadata:
    def test_list_tables(self, service, alice):
        tables = service.list_tables(alice)
        assert [t["entityKey"] for t in tables] == ["tasks"]

    def test_actions_are_filtered_by_role(self, service, alice, admin):
        assert [a["id"] for a in service.get_actions("tasks", alice)] == ["complete"]
        assert [a["id"] for a in service.get_actions("tasks", admin)] == ["complete", "archive"]
        assert [a["id"] for a in service.get_actions("tasks", admin, "single")] == ["archive"]

    def test_get_config_never_exposes_hooks(self, service, alice):
        config = service.get_config("tasks", alice)
        assert config["entityKey"] == "tasks"
        assert "hooks" not in config

    def test_get_config_unknown(self, service, alice):
        with pytest.raises(NotFoundError):
            service.get_config("nope", alice)


class TestPopulate:
    @pytest.mark.asyncio
    async def test_relation_display_values(self, make_service, alice, bob):
        service = make_service(with_people=True)
        ada = await service.create("people", {"name": "Ada"}, alice)
        hidden = await service.create("people", {"name": "Bob's friend"}, bob)
        await seed(
            service,
            alice,
            {"title": "A", "assignee": ada["id"]},
            {"title": "B", "assignee": hidden["id"]},
        )
        options = QueryOptions(populate=["assignee"], sorts=[SortSpec("title")])

        result = await service.list("tasks", options, alice)

        assert [r["assignee_display"] for r in result.data] == ["Ada", None]
