"""Column-level constraint validators.

Generated from column metadata to enforce:
- required: Column must have a non-empty value
- min/max: Numeric bounds
- minLength/maxLength: String length bounds
- pattern: Regex pattern matching
- select options: Value must be a declared option
- Type-specific formats: email, url
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from tablekit.config.types import TableColumn, TableConfiguration
from tablekit.core.types import is_numeric
from tablekit.errors import ValidationFailedError
from tablekit.validation.types import Operation, ValidationIssue

logger = logging.getLogger(__name__)


# =============================================================================
# Type-Specific Format Patterns
# =============================================================================

# Email: Basic RFC 5322 compliant pattern
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

# URL: Basic URL pattern
URL_PATTERN = re.compile(
    r"^https?://[^\s/$.?#].[^\s]*$",
    re.IGNORECASE
)

SELECT_TYPES = ("select", "multi-select")


# =============================================================================
# Column Constraint Validator
# =============================================================================


@dataclass
class ColumnConstraintValidator:
    """Validates one column's value against its metadata constraints."""

    column: TableColumn

    def validate(self, value: Any) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        column = self.column
        rules = column.validation

        if column.is_required and self._is_empty(value):
            issues.append(ValidationIssue(
                field=column.key,
                code="REQUIRED",
                message=f"{column.label} is required",
            ))
            return issues

        # Optional and empty: nothing else to check
        if self._is_empty(value):
            return issues

        format_error = self._validate_format(value)
        if format_error:
            issues.append(ValidationIssue(
                field=column.key,
                code=f"INVALID_{column.type.upper().replace('-', '_')}",
                message=format_error,
            ))
            return issues

        if is_numeric(column.type):
            issues.extend(self._validate_numeric_bounds(value))

        if isinstance(value, str):
            issues.extend(self._validate_string_length(value))
            if rules.pattern:
                pattern_issue = self._validate_pattern(value, rules.pattern)
                if pattern_issue:
                    issues.append(pattern_issue)

        if column.type in SELECT_TYPES:
            issues.extend(self._validate_options(value))

        return issues

    def _is_empty(self, value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, str) and value.strip() == "":
            return True
        if isinstance(value, (list, dict)) and len(value) == 0:
            return True
        return False

    def _validate_format(self, value: Any) -> str | None:
        """Return an error message if value doesn't fit the column type."""
        column = self.column
        if column.type == "email":
            if isinstance(value, str) and not EMAIL_PATTERN.match(value):
                return f"{column.label} must be a valid email address"
        elif column.type == "url":
            if isinstance(value, str) and not URL_PATTERN.match(value):
                return f"{column.label} must be a valid URL"
        elif is_numeric(column.type):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                return f"{column.label} must be a number"
        return None

    def _validate_numeric_bounds(self, value: float) -> list[ValidationIssue]:
        issues = []
        rules = self.column.validation

        if rules.min is not None and value < rules.min:
            issues.append(ValidationIssue(
                field=self.column.key,
                code="MIN_VALUE",
                message=f"{self.column.label} must be at least {rules.min}",
            ))

        if rules.max is not None and value > rules.max:
            issues.append(ValidationIssue(
                field=self.column.key,
                code="MAX_VALUE",
                message=f"{self.column.label} must be at most {rules.max}",
            ))

        return issues

    def _validate_string_length(self, value: str) -> list[ValidationIssue]:
        issues = []
        rules = self.column.validation
        length = len(value)

        if rules.min_length is not None and length < rules.min_length:
            issues.append(ValidationIssue(
                field=self.column.key,
                code="MIN_LENGTH",
                message=f"{self.column.label} must be at least {rules.min_length} characters",
            ))

        if rules.max_length is not None and length > rules.max_length:
            issues.append(ValidationIssue(
                field=self.column.key,
                code="MAX_LENGTH",
                message=f"{self.column.label} must be at most {rules.max_length} characters",
            ))

        return issues

    def _validate_pattern(self, value: str, pattern: str) -> ValidationIssue | None:
        try:
            if not re.match(pattern, value):
                return ValidationIssue(
                    field=self.column.key,
                    code="PATTERN_MISMATCH",
                    message=f"{self.column.label} format is invalid",
                )
        except re.error:
            # Invalid regex in table metadata
            logger.warning("Invalid pattern on column %s: %r", self.column.key, pattern)
        return None

    def _validate_options(self, value: Any) -> list[ValidationIssue]:
        if not self.column.select_options:
            return []

        valid_values = {opt.value for opt in self.column.select_options}
        candidates = value if isinstance(value, list) else [value]
        return [
            ValidationIssue(
                field=self.column.key,
                code="INVALID_OPTION",
                message=f"'{v}' is not a valid option for {self.column.label}",
            )
            for v in candidates
            # Nested lists/dicts are never options and aren't hashable
            if isinstance(v, (list, dict)) or v not in valid_values
        ]


# =============================================================================
# Payload validation
# =============================================================================


def needs_validation(column: TableColumn) -> bool:
    rules = column.validation
    return (
        column.is_required
        or rules.min is not None
        or rules.max is not None
        or rules.min_length is not None
        or rules.max_length is not None
        or rules.pattern is not None
        or column.type in ("email", "url", *SELECT_TYPES)
        or is_numeric(column.type)
    )


def generate_column_validators(
    columns: tuple[TableColumn, ...] | list[TableColumn],
) -> list[ColumnConstraintValidator]:
    """Create a validator for each column that has any constraints."""
    return [ColumnConstraintValidator(column=c) for c in columns if needs_validation(c)]


def validate_payload(
    config: TableConfiguration,
    payload: dict[str, Any],
    operation: Operation,
) -> list[ValidationIssue]:
    """Validate a write payload against the table's column rules.

    On CREATE every constrained column is checked. On UPDATE only the
    columns present in the payload are checked, so a partial update never
    trips required checks for fields it doesn't touch.
    """
    issues: list[ValidationIssue] = []
    for validator in generate_column_validators(config.columns):
        key = validator.column.key
        if operation == Operation.UPDATE and key not in payload:
            continue
        issues.extend(validator.validate(payload.get(key)))
    return issues


def ensure_valid(
    config: TableConfiguration,
    payload: dict[str, Any],
    operation: Operation,
) -> None:
    """Raise ValidationFailedError listing every issue, if there are any."""
    issues = validate_payload(config, payload, operation)
    if issues:
        raise ValidationFailedError(
            f"Validation failed for {config.entity_key}", issues=issues
        )
