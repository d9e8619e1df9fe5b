"""Tests for table export and import."""

import csv
import io
import json

import pytest

from tablekit.config.types import FilterPredicate, QueryOptions, SortSpec
from tablekit.engine import transfer
from tablekit.engine.transfer import export_table, import_records
from tablekit.errors import ForbiddenError, NotFoundError


async def seed(service, caller, count):
    for i in range(count):
        await service.create("tasks", {"title": f"Task {i}", "points": i}, caller)


class TestExport:
    @pytest.mark.asyncio
    async def test_json_envelope(self, service, alice):
        await seed(service, alice, 3)

        result = await export_table(service, "tasks", alice)
        payload = json.loads(result.content)

        assert result.media_type == "application/json"
        assert result.filename == "tasks-export.json"
        assert set(payload) == {"entityKey", "exportedAt", "totalRecords", "config", "data"}
        assert payload["totalRecords"] == 3
        assert isinstance(payload["data"][0]["createdAt"], str)

    @pytest.mark.asyncio
    async def test_csv_uses_visible_column_labels(self, service, alice):
        await service.create("tasks", {"title": "A", "status": "todo"}, alice)

        result = await export_table(
            service, "tasks", alice, format="csv", options=QueryOptions(view="open")
        )
        rows = list(csv.reader(io.StringIO(result.content)))

        assert rows == [["Title", "Status"], ["A", "todo"]]
        assert result.filename == "tasks-export.csv"

    @pytest.mark.asyncio
    async def test_filters_and_owner_scope_apply(self, service, alice, bob):
        await seed(service, alice, 5)
        await seed(service, bob, 2)
        options = QueryOptions(
            filters=[FilterPredicate("points", "greater_than_or_equal", 3)],
            sorts=[SortSpec("points")],
        )

        result = await export_table(service, "tasks", alice, options=options)

        assert [r["points"] for r in json.loads(result.content)["data"]] == [3, 4]

    @pytest.mark.asyncio
    async def test_pages_through_everything(self, service, alice, monkeypatch):
        monkeypatch.setattr(transfer, "EXPORT_PAGE_SIZE", 2)
        await seed(service, alice, 5)

        result = await export_table(service, "tasks", alice)

        assert result.total == 5

    @pytest.mark.asyncio
    async def test_row_cap(self, service, alice, monkeypatch):
        monkeypatch.setattr(transfer, "EXPORT_PAGE_SIZE", 2)
        monkeypatch.setattr(transfer, "MAX_EXPORT_ROWS", 3)
        await seed(service, alice, 6)

        result = await export_table(service, "tasks", alice)

        assert result.total == 3

    @pytest.mark.asyncio
    async def test_grouping_is_not_exported(self, service, alice):
        await seed(service, alice, 2)
        result = await export_table(service, "tasks", alice, options=QueryOptions(view="by-status"))
        assert all("title" in r for r in json.loads(result.content)["data"])

    @pytest.mark.asyncio
    async def test_export_disabled(self, make_service, alice):
        service = make_service(permissions={"export": False})
        with pytest.raises(ForbiddenError):
            await export_table(service, "tasks", alice)

    @pytest.mark.asyncio
    async def test_unknown_format(self, service, alice):
        with pytest.raises(ValueError):
            await export_table(service, "tasks", alice, format="xml")

    @pytest.mark.asyncio
    async def test_unknown_table(self, service, alice):
        with pytest.raises(NotFoundError):
            await export_table(service, "nope", alice)


class TestImport:
    @pytest.mark.asyncio
    async def test_create_collects_errors(self, service, alice):
        result = await import_records(
            service,
            "tasks",
            [{"title": "A"}, {"title": "B", "points": 500}, {"title": "C"}],
            alice,
        )

        assert (result.total, result.created, result.updated) == (3, 2, 0)
        assert result.errors == [
            {"index": 1, "error": "Validation failed for tasks", "kind": "Validation"}
        ]

    @pytest.mark.asyncio
    async def test_update_mode(self, service, alice):
        existing = await service.create("tasks", {"title": "Old"}, alice)

        result = await import_records(
            service,
            "tasks",
            [{"id": existing["id"], "title": "New"}, {"id": "missing", "title": "X"}, {"title": "Fresh"}],
            alice,
            mode="update",
        )

        assert (result.created, result.updated) == (1, 1)
        assert result.errors[0]["index"] == 1
        assert result.errors[0]["kind"] == "NotFound"
        assert (await service.get_one("tasks", existing["id"], alice))["title"] == "New"

    @pytest.mark.asyncio
    async def test_upsert_creates_missing(self, service, alice):
        result = await import_records(
            service, "tasks", [{"id": "missing", "title": "X"}], alice, mode="upsert"
        )
        assert (result.created, result.updated, result.errors) == (1, 0, [])

    @pytest.mark.asyncio
    async def test_update_cannot_touch_other_owners(self, service, alice, bob):
        theirs = await service.create("tasks", {"title": "Bob's"}, bob)

        result = await import_records(
            service, "tasks", [{"id": theirs["id"], "title": "Hijacked"}], alice, mode="update"
        )

        assert result.errors[0]["kind"] == "NotFound"
        assert (await service.get_one("tasks", theirs["id"], bob))["title"] == "Bob's"

    @pytest.mark.asyncio
    async def test_import_disabled(self, make_service, alice):
        service = make_service(permissions={"import": False})
        with pytest.raises(ForbiddenError):
            await import_records(service, "tasks", [{"title": "A"}], alice)

    @pytest.mark.asyncio
    async def test_unknown_mode(self, service, alice):
        with pytest.raises(ValueError):
            await import_records(service, "tasks", [], alice, mode="merge")

    def test_result_dict(self):
        result = transfer.ImportResult(total=2, created=1, errors=[{"index": 1}])
        assert result.to_dict() == {
            "total": 2, "created": 1, "updated": 0, "errors": [{"index": 1}],
        }
