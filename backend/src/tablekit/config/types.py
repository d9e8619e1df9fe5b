"""Table configuration types.

A TableConfiguration is registered once per entity at startup and never
mutated afterwards; every type here is a frozen dataclass. QueryOptions is
the per-request counterpart.
"""

from dataclasses import dataclass, field
from typing import Any

from tablekit.core.types import get_column_type
from tablekit.hooks.types import TableHooks

AGGREGATE_FUNCTIONS = ("count", "sum", "avg", "min", "max", "distinct_count")


def _tuple(value: Any) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def _roles(value: Any) -> tuple[str, ...] | None:
    if value is None:
        return None
    return _tuple(value)


@dataclass(frozen=True)
class SelectOption:
    value: str
    label: str
    color: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SelectOption":
        return cls(
            value=data["value"],
            label=data.get("label", str(data["value"])),
            color=data.get("color"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "label": self.label, "color": self.color}


@dataclass(frozen=True)
class ColumnValidation:
    required: bool = False
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ColumnValidation":
        data = data or {}
        return cls(
            required=data.get("required", False),
            min=data.get("min"),
            max=data.get("max"),
            min_length=data.get("minLength"),
            max_length=data.get("maxLength"),
            pattern=data.get("pattern"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "required": self.required,
            "min": self.min,
            "max": self.max,
            "minLength": self.min_length,
            "maxLength": self.max_length,
            "pattern": self.pattern,
        }


@dataclass(frozen=True)
class RelationConfig:
    """Target of a relation column, used for populate hydration."""

    entity: str
    display_field: str = "name"


@dataclass(frozen=True)
class TableColumn:
    key: str
    label: str
    type: str = "text"
    width: int | None = None
    min_width: int | None = None
    max_width: int | None = None
    alignment: str | None = None
    sortable: bool = True
    filterable: bool = True
    searchable: bool = False
    required: bool = False
    editable: bool = True
    visible: bool = True
    frozen: bool = False
    order: int | None = None
    select_options: tuple[SelectOption, ...] = ()
    format: str | None = None
    precision: int | None = None
    currency: str | None = None
    validation: ColumnValidation = field(default_factory=ColumnValidation)
    view_roles: tuple[str, ...] | None = None  # None: every role
    edit_roles: tuple[str, ...] | None = None
    relation: RelationConfig | None = None

    @property
    def is_required(self) -> bool:
        return self.required or self.validation.required

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableColumn":
        key = data["key"]
        perms = data.get("permissions") or {}
        relation_data = data.get("relation")
        relation = None
        if relation_data:
            relation = RelationConfig(
                entity=relation_data["entity"],
                display_field=relation_data.get("displayField", "name"),
            )
        return cls(
            key=key,
            label=data.get("label", key),
            type=data.get("type", "text"),
            width=data.get("width"),
            min_width=data.get("minWidth"),
            max_width=data.get("maxWidth"),
            alignment=data.get("alignment"),
            sortable=data.get("sortable", True),
            filterable=data.get("filterable", True),
            searchable=data.get("searchable", False),
            required=data.get("required", False),
            editable=data.get("editable", True),
            visible=data.get("visible", True),
            frozen=data.get("frozen", False),
            order=data.get("order"),
            select_options=tuple(
                SelectOption.from_dict(o) for o in data.get("selectOptions", [])
            ),
            format=data.get("format"),
            precision=data.get("precision"),
            currency=data.get("currency"),
            validation=ColumnValidation.from_dict(data.get("validation")),
            view_roles=_roles(perms.get("view")),
            edit_roles=_roles(perms.get("edit")),
            relation=relation,
        )

    def to_dict(self) -> dict[str, Any]:
        """Client-facing column metadata, with type defaults filled in."""
        ui = get_column_type(self.type).ui
        return {
            "key": self.key,
            "label": self.label,
            "type": self.type,
            "width": self.width,
            "minWidth": self.min_width,
            "maxWidth": self.max_width,
            "alignment": self.alignment or ui.alignment,
            "sortable": self.sortable,
            "filterable": self.filterable,
            "searchable": self.searchable,
            "required": self.is_required,
            "editable": self.editable,
            "visible": self.visible,
            "frozen": self.frozen,
            "order": self.order,
            "selectOptions": [o.to_dict() for o in self.select_options],
            "format": self.format or ui.format,
            "displayComponent": ui.display_component,
            "editComponent": ui.edit_component,
            "filterComponent": ui.filter_component,
            "precision": self.precision,
            "currency": self.currency,
            "validation": self.validation.to_dict(),
            "relation": {
                "entity": self.relation.entity,
                "displayField": self.relation.display_field,
            } if self.relation else None,
            "permissions": {
                "view": list(self.view_roles) if self.view_roles is not None else None,
                "edit": list(self.edit_roles) if self.edit_roles is not None else None,
            },
        }


@dataclass(frozen=True)
class FilterPredicate:
    """One {column, operator, value|values} predicate from a view or a request."""

    column: str
    operator: str
    value: Any = None
    values: tuple | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FilterPredicate":
        values = data.get("values")
        return cls(
            column=data["column"],
            operator=data.get("operator", "equals"),
            value=data.get("value"),
            values=tuple(values) if values is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "column": self.column,
            "operator": self.operator,
            "value": self.value,
        }
        if self.values is not None:
            result["values"] = list(self.values)
        return result


@dataclass(frozen=True)
class SortSpec:
    column: str
    direction: str = "asc"

    @property
    def descending(self) -> bool:
        return self.direction == "desc"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SortSpec":
        return cls(
            column=data["column"],
            direction="desc" if data.get("direction") == "desc" else "asc",
        )

    def to_dict(self) -> dict[str, Any]:
        return {"column": self.column, "direction": self.direction}


@dataclass(frozen=True)
class AggregationSpec:
    column: str
    function: str

    @property
    def output_name(self) -> str:
        return f"{self.column}_{self.function}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AggregationSpec":
        return cls(column=data["column"], function=data["function"])

    def to_dict(self) -> dict[str, Any]:
        return {"column": self.column, "function": self.function}


@dataclass(frozen=True)
class TableView:
    id: str
    name: str
    description: str | None = None
    is_default: bool = False
    is_public: bool = False
    created_by: str | None = None
    columns: tuple[str, ...] = ()
    hidden_columns: tuple[str, ...] = ()
    filters: tuple[FilterPredicate, ...] = ()
    sorts: tuple[SortSpec, ...] = ()
    group_by: tuple[str, ...] = ()
    aggregations: tuple[AggregationSpec, ...] = ()
    page_size: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableView":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description"),
            is_default=data.get("isDefault", False),
            is_public=data.get("isPublic", False),
            created_by=data.get("createdBy"),
            columns=_tuple(data.get("columns")),
            hidden_columns=_tuple(data.get("hiddenColumns")),
            filters=tuple(FilterPredicate.from_dict(f) for f in data.get("filters", [])),
            sorts=tuple(SortSpec.from_dict(s) for s in data.get("sorts", [])),
            group_by=_tuple(data.get("groupBy")),
            aggregations=tuple(
                AggregationSpec.from_dict(a) for a in data.get("aggregations", [])
            ),
            page_size=data.get("pageSize"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "isDefault": self.is_default,
            "isPublic": self.is_public,
            "createdBy": self.created_by,
            "columns": list(self.columns),
            "hiddenColumns": list(self.hidden_columns),
            "filters": [f.to_dict() for f in self.filters],
            "sorts": [s.to_dict() for s in self.sorts],
            "groupBy": list(self.group_by),
            "aggregations": [a.to_dict() for a in self.aggregations],
            "pageSize": self.page_size,
        }


@dataclass(frozen=True)
class TableAction:
    """UI action metadata. Never executed by the engine."""

    id: str
    label: str
    type: str = "single"  # "single" | "bulk" | "global"
    icon: str | None = None
    variant: str = "default"
    roles: tuple[str, ...] | None = None
    requires_confirmation: bool = False
    confirmation_message: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableAction":
        return cls(
            id=data["id"],
            label=data.get("label", data["id"]),
            type=data.get("type", "single"),
            icon=data.get("icon"),
            variant=data.get("variant", "default"),
            roles=_roles(data.get("permissions")),
            requires_confirmation=data.get("requiresConfirmation", False),
            confirmation_message=data.get("confirmationMessage"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "icon": self.icon,
            "variant": self.variant,
            "requiresConfirmation": self.requires_confirmation,
            "confirmationMessage": self.confirmation_message,
        }


@dataclass(frozen=True)
class RowPermissions:
    owner_field: str | None = None
    can_view_all: bool = False
    can_edit_all: bool = False
    can_delete_all: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RowPermissions":
        return cls(
            owner_field=data.get("ownerField"),
            can_view_all=data.get("canViewAll", False),
            can_edit_all=data.get("canEditAll", False),
            can_delete_all=data.get("canDeleteAll", False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "ownerField": self.owner_field,
            "canViewAll": self.can_view_all,
            "canEditAll": self.can_edit_all,
            "canDeleteAll": self.can_delete_all,
        }


@dataclass(frozen=True)
class FieldPermission:
    view: bool = True
    edit: bool = True


@dataclass(frozen=True)
class TablePermissions:
    view: bool = True
    create: bool = True
    edit: bool = True
    delete: bool = True
    bulk_edit: bool = True
    export: bool = True
    import_: bool = True
    manage_views: bool = False
    field_permissions: dict[str, FieldPermission] = field(default_factory=dict)
    row_permissions: RowPermissions | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TablePermissions":
        data = data or {}
        row_data = data.get("rowPermissions")
        return cls(
            view=data.get("view", True),
            create=data.get("create", True),
            edit=data.get("edit", True),
            delete=data.get("delete", True),
            bulk_edit=data.get("bulkEdit", True),
            export=data.get("export", True),
            import_=data.get("import", True),
            manage_views=data.get("manageViews", False),
            field_permissions={
                name: FieldPermission(
                    view=perm.get("view", True),
                    edit=perm.get("edit", True),
                )
                for name, perm in (data.get("fieldPermissions") or {}).items()
            },
            row_permissions=RowPermissions.from_dict(row_data) if row_data else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "view": self.view,
            "create": self.create,
            "edit": self.edit,
            "delete": self.delete,
            "bulkEdit": self.bulk_edit,
            "export": self.export,
            "import": self.import_,
            "manageViews": self.manage_views,
            "fieldPermissions": {
                name: {"view": p.view, "edit": p.edit}
                for name, p in self.field_permissions.items()
            },
            "rowPermissions": (
                self.row_permissions.to_dict() if self.row_permissions else None
            ),
        }


@dataclass(frozen=True)
class TableFeatures:
    search: bool = True
    filters: bool = True
    sorting: bool = True
    pagination: bool = True
    export: bool = False
    import_: bool = False
    bulk_actions: bool = False
    charts: bool = False
    custom_views: bool = False
    realtime: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TableFeatures":
        data = data or {}
        return cls(
            search=data.get("search", True),
            filters=data.get("filters", True),
            sorting=data.get("sorting", True),
            pagination=data.get("pagination", True),
            export=data.get("export", False),
            import_=data.get("import", False),
            bulk_actions=data.get("bulkActions", False),
            charts=data.get("charts", False),
            custom_views=data.get("customViews", False),
            realtime=data.get("realtime", False),
        )

    def to_dict(self) -> dict[str, bool]:
        return {
            "search": self.search,
            "filters": self.filters,
            "sorting": self.sorting,
            "pagination": self.pagination,
            "export": self.export,
            "import": self.import_,
            "bulkActions": self.bulk_actions,
            "charts": self.charts,
            "customViews": self.custom_views,
            "realtime": self.realtime,
        }


@dataclass(frozen=True)
class TableConfiguration:
    entity_key: str
    display_name: str = ""
    display_name_plural: str = ""
    description: str | None = None
    icon: str | None = None
    collection: str | None = None
    primary_key: str = "id"
    columns: tuple[TableColumn, ...] = ()
    default_columns: tuple[str, ...] = ()
    views: tuple[TableView, ...] = ()
    default_view: str | None = None
    actions: tuple[TableAction, ...] = ()
    permissions: TablePermissions = field(default_factory=TablePermissions)
    features: TableFeatures = field(default_factory=TableFeatures)
    hooks: TableHooks = field(default_factory=TableHooks)

    @property
    def collection_name(self) -> str:
        return self.collection or self.entity_key

    @property
    def owner_field(self) -> str | None:
        row = self.permissions.row_permissions
        return row.owner_field if row else None

    def get_column(self, key: str) -> TableColumn | None:
        for column in self.columns:
            if column.key == key:
                return column
        return None

    def get_view(self, view_id: str | None) -> TableView | None:
        if not view_id:
            return None
        for view in self.views:
            if view.id == view_id:
                return view
        return None

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], hooks: TableHooks | None = None
    ) -> "TableConfiguration":
        """Build a configuration from a camelCase dict (YAML/JSON shape)."""
        entity_key = data["entityKey"]
        columns = tuple(TableColumn.from_dict(c) for c in data.get("columns", []))
        default_columns = _tuple(data.get("defaultColumns")) or tuple(
            c.key for c in columns if c.visible
        )
        return cls(
            entity_key=entity_key,
            display_name=data.get("displayName", entity_key),
            display_name_plural=data.get(
                "displayNamePlural", data.get("displayName", entity_key) + "s"
            ),
            description=data.get("description"),
            icon=data.get("icon"),
            collection=data.get("collection"),
            primary_key=data.get("primaryKey", "id"),
            columns=columns,
            default_columns=default_columns,
            views=tuple(TableView.from_dict(v) for v in data.get("views", [])),
            default_view=data.get("defaultView"),
            actions=tuple(TableAction.from_dict(a) for a in data.get("actions", [])),
            permissions=TablePermissions.from_dict(data.get("permissions")),
            features=TableFeatures.from_dict(data.get("features")),
            hooks=hooks or TableHooks(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Client-facing metadata. Hooks are never exposed."""
        return {
            "entityKey": self.entity_key,
            "displayName": self.display_name,
            "displayNamePlural": self.display_name_plural,
            "description": self.description,
            "icon": self.icon,
            "primaryKey": self.primary_key,
            "columns": [c.to_dict() for c in self.columns],
            "defaultColumns": list(self.default_columns),
            "views": [v.to_dict() for v in self.views],
            "defaultView": self.default_view,
            "actions": [a.to_dict() for a in self.actions],
            "permissions": self.permissions.to_dict(),
            "features": self.features.to_dict(),
        }


@dataclass
class QueryOptions:
    """Runtime query parameters for one list request."""

    page: int = 1
    limit: int | None = None
    search: str | None = None
    search_columns: list[str] | None = None
    filters: list[FilterPredicate] = field(default_factory=list)
    sorts: list[SortSpec] = field(default_factory=list)
    view: str | None = None
    columns: list[str] | None = None
    group_by: list[str] = field(default_factory=list)
    aggregations: list[AggregationSpec] = field(default_factory=list)
    include_deleted: bool = False
    populate: list[str] = field(default_factory=list)
    # Ignore groupBy from both the request and the view
    flat: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueryOptions":
        return cls(
            page=data.get("page") or 1,
            limit=data.get("limit"),
            search=data.get("search"),
            search_columns=data.get("searchColumns"),
            filters=[FilterPredicate.from_dict(f) for f in data.get("filters") or []],
            sorts=[SortSpec.from_dict(s) for s in data.get("sorts") or []],
            view=data.get("view"),
            columns=data.get("columns"),
            group_by=list(data.get("groupBy") or []),
            aggregations=[
                AggregationSpec.from_dict(a) for a in data.get("aggregations") or []
            ],
            include_deleted=bool(data.get("includeDeleted", False)),
            populate=list(data.get("populate") or []),
        )
