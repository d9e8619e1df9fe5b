"""Permission checking for table access.

Capability flags gate whole operations, the owner scope restricts rows, and
field permissions strip individual fields on the way in and out.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from tablekit.errors import ForbiddenError
from tablekit.persistence.predicates import Eq, Predicate, and_

if TYPE_CHECKING:
    from tablekit.auth.types import Caller
    from tablekit.config.types import TableAction, TableColumn, TableConfiguration


# Operation name -> TablePermissions attribute
CAPABILITIES = {
    "view": "view",
    "create": "create",
    "edit": "edit",
    "delete": "delete",
    "bulkEdit": "bulk_edit",
    "export": "export",
    "import": "import_",
    "manageViews": "manage_views",
}

# Row scope -> RowPermissions override attribute
ROW_OVERRIDES = {
    "view": "can_view_all",
    "edit": "can_edit_all",
    "delete": "can_delete_all",
}

SYSTEM_FIELDS = ("createdAt", "createdBy", "updatedAt", "updatedBy")
SOFT_DELETE_FIELDS = ("deletedAt", "deletedBy")

# Owner value used when the caller has no id, so owned rows never match
_NO_OWNER = "__no_owner__"


def has_capability(config: TableConfiguration, operation: str) -> bool:
    attr = CAPABILITIES.get(operation)
    if attr is None:
        raise ValueError(f"Unknown operation: {operation}")
    return bool(getattr(config.permissions, attr))


def assert_capability(
    config: TableConfiguration, operation: str, caller: Caller | None = None
) -> None:
    """Raise ForbiddenError if the table's permissions disable the operation."""
    if not has_capability(config, operation):
        raise ForbiddenError(
            f"Operation '{operation}' is not permitted on {config.entity_key}",
            details={"entityKey": config.entity_key, "operation": operation},
        )


def owner_filter(
    config: TableConfiguration, caller: Caller | None, scope: str
) -> Predicate | None:
    """Return the row-ownership predicate for a scope, or None if unrestricted.

    Args:
        config: The table configuration
        caller: The caller the operation runs as
        scope: "view", "edit" or "delete"
    """
    rows = config.permissions.row_permissions
    if rows is None or not rows.owner_field:
        return None
    if getattr(rows, ROW_OVERRIDES[scope]):
        return None
    owner_id = caller.id if caller and caller.id else _NO_OWNER
    return Eq(rows.owner_field, owner_id)


def scope_to_owner(
    config: TableConfiguration,
    base_filter: Predicate | None,
    caller: Caller | None,
    scope: str,
) -> Predicate:
    """AND the owner predicate for the scope onto base_filter."""
    return and_(base_filter, owner_filter(config, caller, scope))


def protected_fields(config: TableConfiguration) -> set[str]:
    """Fields an update payload may never change."""
    fields = {config.primary_key, "createdAt", "createdBy", *SOFT_DELETE_FIELDS}
    if config.owner_field:
        fields.add(config.owner_field)
    return fields


def apply_field_read_policy(
    record: dict[str, Any], config: TableConfiguration
) -> dict[str, Any]:
    """Strip fields the table hides from readers.

    Returns:
        A copy of the record with restricted fields removed
    """
    policies = config.permissions.field_permissions
    if not policies:
        return record

    result = dict(record)
    for field_name, policy in policies.items():
        if not policy.view:
            result.pop(field_name, None)
            # Also strip any hydrated display value
            result.pop(f"{field_name}_display", None)
    return result


def apply_field_write_policy(
    data: dict[str, Any], config: TableConfiguration
) -> dict[str, Any]:
    """Strip fields the table forbids writing from an incoming payload."""
    policies = config.permissions.field_permissions
    if not policies:
        return data

    result = dict(data)
    for field_name, policy in policies.items():
        if not policy.edit or not policy.view:
            result.pop(field_name, None)
    return result


def _role_allowed(roles: tuple[str, ...] | None, caller: Caller | None) -> bool:
    if roles is None:
        return True
    if caller is None:
        return False
    return any(r in roles for r in caller.roles)


def can_view_column(column: TableColumn, caller: Caller | None) -> bool:
    return _role_allowed(column.view_roles, caller)


def can_use_action(action: TableAction, caller: Caller | None) -> bool:
    return _role_allowed(action.roles, caller)


def can_edit_column(column: TableColumn, caller: Caller | None) -> bool:
    """A column is writable when the caller may both see and edit it."""
    return _role_allowed(column.view_roles, caller) and _role_allowed(
        column.edit_roles, caller
    )


def can_read_field(config: TableConfiguration, field_name: str) -> bool:
    """False when fieldPermissions hide the field from every reader."""
    policy = config.permissions.field_permissions.get(field_name)
    return policy is None or policy.view


def apply_column_write_policy(
    data: dict[str, Any], config: TableConfiguration, caller: Caller | None
) -> dict[str, Any]:
    """Strip columns whose view or edit roles exclude the caller.

    config must be the unscoped configuration, so role-hidden columns are
    still known here.
    """
    blocked = [c.key for c in config.columns if not can_edit_column(c, caller)]
    if not blocked:
        return data
    return {k: v for k, v in data.items() if k not in blocked}
