"""Shared fixtures: a tasks table on in-memory stores and a few callers."""

import copy

import pytest

from tablekit.auth.types import Caller
from tablekit.config.store import TableConfigStore
from tablekit.config.types import TableConfiguration
from tablekit.engine.registry import EntityRegistry
from tablekit.engine.service import TableService
from tablekit.hooks.types import TableHooks
from tablekit.persistence.memory import InMemoryRecordStore

TASKS_TABLE = {
    "entityKey": "tasks",
    "displayName": "Task",
    "displayNamePlural": "Tasks",
    "columns": [
        {
            "key": "title",
            "label": "Title",
            "type": "text",
            "searchable": True,
            "required": True,
            "validation": {"maxLength": 50},
        },
        {
            "key": "status",
            "label": "Status",
            "type": "select",
            "selectOptions": [
                {"value": "todo", "label": "To do"},
                {"value": "in_progress", "label": "In progress"},
                {"value": "done", "label": "Done"},
            ],
        },
        {
            "key": "points",
            "label": "Points",
            "type": "number",
            "validation": {"min": 0, "max": 100},
        },
        {
            "key": "tags",
            "label": "Tags",
            "type": "multi-select",
            "selectOptions": [
                {"value": "home"},
                {"value": "work"},
                {"value": "errand"},
            ],
        },
        {
            "key": "notes",
            "label": "Notes",
            "type": "text",
            "sortable": False,
            "filterable": False,
        },
        {
            "key": "assignee",
            "label": "Assignee",
            "type": "relation",
            "relation": {"entity": "people", "displayField": "name"},
        },
    ],
    "views": [
        {
            "id": "open",
            "name": "Open",
            "filters": [{"column": "status", "operator": "not_equals", "value": "done"}],
            "sorts": [{"column": "points", "direction": "desc"}],
            "columns": ["title", "status"],
        },
        {
            "id": "by-status",
            "name": "By status",
            "groupBy": ["status"],
            "aggregations": [{"column": "points", "function": "sum"}],
        },
    ],
    "actions": [
        {"id": "complete", "label": "Complete", "type": "bulk"},
        {"id": "archive", "label": "Archive", "type": "single", "permissions": ["admin"]},
    ],
    "permissions": {"rowPermissions": {"ownerField": "userId"}},
}

PEOPLE_TABLE = {
    "entityKey": "people",
    "displayName": "Person",
    "columns": [
        {"key": "name", "label": "Name", "type": "text", "searchable": True},
        {"key": "email", "label": "Email", "type": "email"},
    ],
    "permissions": {"rowPermissions": {"ownerField": "userId"}},
}


def tasks_data(**overrides) -> dict:
    data = copy.deepcopy(TASKS_TABLE)
    for key, value in overrides.items():
        if key == "permissions":
            data["permissions"] = {**data["permissions"], **value}
        else:
            data[key] = value
    return data


@pytest.fixture
def alice():
    return Caller(id="alice", roles=("user",))


@pytest.fixture
def bob():
    return Caller(id="bob", roles=("user",))


@pytest.fixture
def admin():
    return Caller(id="root", roles=("admin",))


@pytest.fixture
def make_service():
    """Factory: build a TableService over in-memory stores.

    Keyword overrides are merged into the tasks table definition; pass
    hooks=TableHooks(...) to attach hooks.
    """

    def _make(hooks: TableHooks | None = None, with_people: bool = False, **overrides):
        configs = TableConfigStore()
        entities = EntityRegistry()
        configs.register(TableConfiguration.from_dict(tasks_data(**overrides), hooks=hooks))
        entities.register("tasks", InMemoryRecordStore("tasks"))
        if with_people:
            configs.register(TableConfiguration.from_dict(copy.deepcopy(PEOPLE_TABLE)))
            entities.register("people", InMemoryRecordStore("people"))
        return TableService(configs, entities)

    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def store(service):
    return service.entities.get("tasks")
