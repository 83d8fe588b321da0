"""Async action/filter hooks around the video asset lifecycle.

Actions run callbacks for their side effects; filters thread a value
through each callback and return the result.

Usage:
    from chunkvault.lib.hooks import action, filter, AFTER_VIDEO_SAVE, VIDEO_RECORD

    @action(AFTER_VIDEO_SAVE)
    async def announce(saved):
        print(f"stored {saved.id} as {saved.layout.value}")

    @filter(VIDEO_RECORD, priority=5)
    def tag_source(record, video_id):
        record["source"] = "admin"
        return record

    await hooks.do_action(AFTER_VIDEO_SAVE, saved)
    record = await hooks.apply_filters(VIDEO_RECORD, record, video_id)
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

T = TypeVar("T")


@dataclass(order=True)
class HookHandler:
    """A registered callback ordered by priority."""

    priority: int
    callback: Callable = field(compare=False)

    async def call(self, *args: Any, **kwargs: Any) -> Any:
        result = self.callback(*args, **kwargs)
        if asyncio.iscoroutine(result):
            return await result
        return result


class HookRegistry:
    """Holds the action and filter handlers keyed by hook name."""

    def __init__(self) -> None:
        self._actions: dict[str, list[HookHandler]] = defaultdict(list)
        self._filters: dict[str, list[HookHandler]] = defaultdict(list)

    def add_action(self, hook_name: str, callback: Callable[..., Any], priority: int = 10) -> None:
        """Register an action callback. Lower priorities run first."""
        self._register(self._actions, hook_name, callback, priority)

    def add_filter(self, hook_name: str, callback: Callable[..., T], priority: int = 10) -> None:
        """Register a filter callback. Lower priorities run first."""
        self._register(self._filters, hook_name, callback, priority)

    def remove_action(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove an action callback, returning whether it was registered."""
        return self._unregister(self._actions, hook_name, callback)

    def remove_filter(self, hook_name: str, callback: Callable[..., Any]) -> bool:
        """Remove a filter callback, returning whether it was registered."""
        return self._unregister(self._filters, hook_name, callback)

    def has_action(self, hook_name: str) -> bool:
        return bool(self._actions.get(hook_name))

    def has_filter(self, hook_name: str) -> bool:
        return bool(self._filters.get(hook_name))

    async def do_action(self, hook_name: str, *args: Any, **kwargs: Any) -> None:
        """Run every action registered for ``hook_name``."""
        from chunkvault.lib.observability import span

        with span(f"hook.action:{hook_name}", hook_name=hook_name):
            for handler in self._actions.get(hook_name, []):
                await handler.call(*args, **kwargs)

    async def apply_filters(self, hook_name: str, value: T, *args: Any, **kwargs: Any) -> T:
        """Pass ``value`` through every filter registered for ``hook_name``.

        Extra positional and keyword arguments are forwarded to each filter
        after the value being filtered.
        """
        from chunkvault.lib.observability import span

        with span(f"hook.filter:{hook_name}", hook_name=hook_name):
            for handler in self._filters.get(hook_name, []):
                value = await handler.call(value, *args, **kwargs)
            return value

    def clear(self) -> None:
        self._actions.clear()
        self._filters.clear()

    @staticmethod
    def _register(table: dict[str, list[HookHandler]], hook_name: str, callback: Callable, priority: int) -> None:
        table[hook_name].append(HookHandler(priority=priority, callback=callback))
        table[hook_name].sort()

    @staticmethod
    def _unregister(table: dict[str, list[HookHandler]], hook_name: str, callback: Callable) -> bool:
        handlers = table.get(hook_name, [])
        for i, handler in enumerate(handlers):
            if handler.callback is callback:
                handlers.pop(i)
                return True
        return False


# Global singleton registry
hooks = HookRegistry()


def add_action(hook_name: str, callback: Callable[..., Any], priority: int = 10) -> None:
    hooks.add_action(hook_name, callback, priority)


def add_filter(hook_name: str, callback: Callable[..., T], priority: int = 10) -> None:
    hooks.add_filter(hook_name, callback, priority)


async def do_action(hook_name: str, *args: Any, **kwargs: Any) -> None:
    await hooks.do_action(hook_name, *args, **kwargs)


async def apply_filters(hook_name: str, value: T, *args: Any, **kwargs: Any) -> T:
    return await hooks.apply_filters(hook_name, value, *args, **kwargs)


def action(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator registering the function as an action on the global registry."""

    def decorator(func: Callable) -> Callable:
        hooks.add_action(hook_name, func, priority)
        return func

    return decorator


def filter(hook_name: str, priority: int = 10) -> Callable[[Callable], Callable]:
    """Decorator registering the function as a filter on the global registry."""

    def decorator(func: Callable) -> Callable:
        hooks.add_filter(hook_name, func, priority)
        return func

    return decorator


# Actions
BEFORE_VIDEO_SAVE = "before_video_save"
AFTER_VIDEO_SAVE = "after_video_save"
BEFORE_VIDEO_DELETE = "before_video_delete"
AFTER_VIDEO_DELETE = "after_video_delete"

# Filters
VIDEO_PAYLOAD = "video_payload"
VIDEO_RECORD = "video_record"

# Observability hooks
LOGFIRE_CONFIGURED = "logfire_configured"
