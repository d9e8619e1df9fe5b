"""Hook execution for table operations.

Enforces each hook point's contract: transforms and before-hooks abort the
operation on failure, lifecycle notifications are logged and swallowed.
"""

import inspect
import logging
from typing import Any

from tablekit.errors import HookError
from tablekit.hooks.types import NOTIFY_POINTS, TableHooks

logger = logging.getLogger(__name__)


async def _invoke(fn: Any, *args: Any) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class HookRunner:
    """Runs the hooks of a table configuration."""

    async def transform(
        self,
        hook_point: str,
        hooks: TableHooks,
        entity_key: str,
        subject: Any,
        caller: Any,
    ) -> Any:
        """Run a transforming hook (beforeQuery, afterQuery, beforeCreate, beforeUpdate).

        A hook returning None keeps the (possibly mutated in place) subject.
        """
        fn = hooks.get(hook_point)
        if fn is None:
            return subject
        try:
            result = await _invoke(fn, subject, caller)
        except Exception as e:
            raise HookError(hook_point, entity_key, e) from e
        return subject if result is None else result

    async def before_delete(
        self,
        hooks: TableHooks,
        entity_key: str,
        record_id: str,
        caller: Any,
    ) -> None:
        fn = hooks.get("beforeDelete")
        if fn is None:
            return
        try:
            await _invoke(fn, record_id, caller)
        except Exception as e:
            raise HookError("beforeDelete", entity_key, e) from e

    async def notify(
        self,
        hook_point: str,
        hooks: TableHooks,
        entity_key: str,
        subject: Any,
        caller: Any,
    ) -> None:
        """Run an after-lifecycle hook. Failures are logged, never raised."""
        if hook_point not in NOTIFY_POINTS:
            raise ValueError(f"'{hook_point}' is not a notification hook point")
        fn = hooks.get(hook_point)
        if fn is None:
            return
        try:
            await _invoke(fn, subject, caller)
        except Exception:
            logger.exception("%s hook failed for %s", hook_point, entity_key)
