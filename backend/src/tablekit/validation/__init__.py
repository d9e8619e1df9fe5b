"""Column validation for table writes."""

from tablekit.validation.constraints import (
    ColumnConstraintValidator,
    ensure_valid,
    generate_column_validators,
    validate_payload,
)
from tablekit.validation.types import Operation, ValidationIssue

__all__ = [
    "ColumnConstraintValidator",
    "Operation",
    "ValidationIssue",
    "ensure_valid",
    "generate_column_validators",
    "validate_payload",
]
