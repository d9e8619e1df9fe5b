"""Named hook registry.

YAML table definitions reference hooks by name; the names resolve to
callables registered here at application startup.
"""

from collections.abc import Callable

from tablekit.hooks.types import HookCallable


class HookRegistry:
    """Registry of named hook implementations.

    One instance is built at startup and handed to the table config loader.

    Example:
        hooks = HookRegistry()

        @hooks.hook("stampCompletedAt")
        def stamp_completed_at(payload, caller):
            ...
    """

    def __init__(self) -> None:
        self._hooks: dict[str, HookCallable] = {}

    def register(self, name: str, hook_fn: HookCallable) -> None:
        """Register a hook function by name.

        Idempotent: re-registering the same name is a no-op.
        """
        if name in self._hooks:
            return
        self._hooks[name] = hook_fn

    def get(self, name: str) -> HookCallable:
        """Get a registered hook function by name.

        Raises:
            ValueError: If hook is not registered
        """
        if name not in self._hooks:
            raise ValueError(
                f"Hook '{name}' is not registered. "
                "Hooks must be explicitly registered at application startup."
            )
        return self._hooks[name]

    def is_registered(self, name: str) -> bool:
        return name in self._hooks

    def list_registered(self) -> list[str]:
        return sorted(self._hooks.keys())

    def clear(self) -> None:
        self._hooks.clear()

    def hook(self, name: str) -> Callable[[HookCallable], HookCallable]:
        """Decorator form of register()."""

        def decorator(fn: HookCallable) -> HookCallable:
            self.register(name, fn)
            return fn

        return decorator
