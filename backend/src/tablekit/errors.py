"""Error taxonomy shared by the engine, stores and transport."""

from typing import Any


class TableError(Exception):
    """Base class for every error the engine raises.

    Attributes:
        kind: Machine-readable error kind ("NotFound", "Forbidden", ...)
        message: Human-readable message
        details: Optional structured payload (validation issues, etc.)
    """

    kind = "TableError"

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.details is not None:
            result["details"] = self.details
        return result


class NotFoundError(TableError):
    """Missing configuration, or a record that is missing or not owned by the caller."""

    kind = "NotFound"


class ForbiddenError(TableError):
    """The capability flag for the requested operation is false."""

    kind = "Forbidden"


class ValidationFailedError(TableError):
    """A payload violates one or more column rules."""

    kind = "Validation"

    def __init__(self, message: str, issues: list[Any] | None = None):
        self.issues = list(issues or [])
        super().__init__(message, details=[i.to_dict() for i in self.issues] or None)


class HookError(TableError):
    """A before/query hook raised; the enclosing operation was aborted."""

    kind = "HookFailed"

    def __init__(self, hook_point: str, entity_key: str, cause: Exception):
        super().__init__(f"Hook '{hook_point}' failed for {entity_key}: {cause}")
        self.hook_point = hook_point
        self.entity_key = entity_key
