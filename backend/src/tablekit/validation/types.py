"""Core types for column validation."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Operation(Enum):
    """The type of write being validated."""

    CREATE = "create"
    UPDATE = "update"


@dataclass(frozen=True)
class ValidationIssue:
    """A single rule violation.

    Attributes:
        field: Column key the issue relates to
        code: Machine-readable code (e.g., "REQUIRED", "MAX_LENGTH")
        message: Human-readable message
    """

    field: str
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "code": self.code, "message": self.message}
