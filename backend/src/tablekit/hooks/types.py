"""Hook slot types for tablekit.

A table configuration carries at most one callable per hook point:
- beforeQuery(filter, caller) -> filter
- afterQuery(records, caller) -> records (pure transform)
- beforeCreate / beforeUpdate(payload, caller) -> payload | None
- beforeDelete(id, caller)
- afterCreate / afterUpdate(record, caller), afterDelete(id, caller)
  (fire-and-forget notifications)

Callables may be plain functions or coroutine functions.
"""

from collections.abc import Callable
from dataclasses import dataclass, fields
from typing import Any

HOOK_POINTS = (
    "beforeQuery",
    "afterQuery",
    "beforeCreate",
    "afterCreate",
    "beforeUpdate",
    "afterUpdate",
    "beforeDelete",
    "afterDelete",
)

# Lifecycle notifications whose failure never undoes a completed mutation
NOTIFY_POINTS = ("afterCreate", "afterUpdate", "afterDelete")

HookCallable = Callable[..., Any]


def _attr_name(hook_point: str) -> str:
    """beforeQuery -> before_query."""
    result = []
    for char in hook_point:
        if char.isupper():
            result.append("_")
        result.append(char.lower())
    return "".join(result)


@dataclass(frozen=True)
class TableHooks:
    """The hook set of one table configuration."""

    before_query: HookCallable | None = None
    after_query: HookCallable | None = None
    before_create: HookCallable | None = None
    after_create: HookCallable | None = None
    before_update: HookCallable | None = None
    after_update: HookCallable | None = None
    before_delete: HookCallable | None = None
    after_delete: HookCallable | None = None

    def get(self, hook_point: str) -> HookCallable | None:
        """Look up a hook by its camelCase hook point name."""
        if hook_point not in HOOK_POINTS:
            raise ValueError(f"Unknown hook point '{hook_point}'")
        return getattr(self, _attr_name(hook_point))

    def configured(self) -> list[str]:
        """Hook points that have a callable attached."""
        return [p for p in HOOK_POINTS if self.get(p) is not None]

    @classmethod
    def from_mapping(cls, data: dict[str, HookCallable]) -> "TableHooks":
        """Build from a {hookPoint: callable} mapping."""
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, HookCallable] = {}
        for point, fn in data.items():
            if point not in HOOK_POINTS:
                raise ValueError(
                    f"Unknown hook point '{point}'. Valid: {', '.join(HOOK_POINTS)}"
                )
            name = _attr_name(point)
            if name in known and fn is not None:
                kwargs[name] = fn
        return cls(**kwargs)
