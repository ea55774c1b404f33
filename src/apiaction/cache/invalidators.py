"""Simple cache invalidator adapters."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from apiaction.ports.invalidation import CacheInvalidator


class NoopInvalidator(CacheInvalidator):
    """Invalidator that ignores every tag."""

    def invalidate(self, tag: str) -> None:
        return None


class CallbackInvalidator(CacheInvalidator):
    """Adapt a plain ``tag -> None`` callable, sync or async.

    Example:
        >>> invalidator = CallbackInvalidator(redis_pubsub.publish_stale)
    """

    def __init__(self, callback: Callable[[str], Awaitable[Any] | Any]) -> None:
        if not callable(callback):
            raise TypeError("callback must be callable")
        self.callback = callback

    def invalidate(self, tag: str) -> Awaitable[Any] | Any:
        return self.callback(tag)

    def __repr__(self) -> str:
        return f"CallbackInvalidator({self.callback!r})"


def as_invalidator(value: CacheInvalidator | Callable[[str], Any] | None) -> CacheInvalidator:
    """Coerce ``None``, a callable or an invalidator into an invalidator."""
    if value is None:
        return NoopInvalidator()
    if isinstance(value, CacheInvalidator):
        return value
    return CallbackInvalidator(value)
