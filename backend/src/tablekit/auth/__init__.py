"""Caller identity, tokens and table permission checks."""

from tablekit.auth.jwt_service import JWTService
from tablekit.auth.permissions import (
    apply_column_write_policy,
    apply_field_read_policy,
    apply_field_write_policy,
    assert_capability,
    can_edit_column,
    can_read_field,
    owner_filter,
    scope_to_owner,
)
from tablekit.auth.types import Caller, TokenClaims

__all__ = [
    "Caller",
    "TokenClaims",
    "JWTService",
    "assert_capability",
    "owner_filter",
    "scope_to_owner",
    "apply_field_read_policy",
    "apply_field_write_policy",
    "apply_column_write_policy",
    "can_edit_column",
    "can_read_field",
]
