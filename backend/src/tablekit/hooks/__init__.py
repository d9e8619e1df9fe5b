"""tablekit hook system.

Extension points run inside table operations:
- beforeQuery / afterQuery: transform the filter / the returned rows
- beforeCreate / beforeUpdate: mutate-and-return the write payload
- beforeDelete: may abort a delete by raising
- afterCreate / afterUpdate / afterDelete: fire-and-forget notifications

Usage:
    from tablekit.hooks import HookRegistry

    hooks = HookRegistry()

    @hooks.hook("defaultPriority")
    def default_priority(payload, caller):
        payload.setdefault("priority", "medium")
        return payload
"""

from tablekit.hooks.registry import HookRegistry
from tablekit.hooks.service import HookRunner
from tablekit.hooks.types import HOOK_POINTS, NOTIFY_POINTS, TableHooks

__all__ = [
    "HOOK_POINTS",
    "NOTIFY_POINTS",
    "HookRegistry",
    "HookRunner",
    "TableHooks",
]
