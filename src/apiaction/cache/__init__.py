"""Cache invalidation backends."""

from apiaction.cache.invalidators import CallbackInvalidator, NoopInvalidator, as_invalidator
from apiaction.cache.tag_cache import CacheEntry, CacheKeyError, TagCache

__all__ = [
    "CacheEntry",
    "CacheKeyError",
    "CallbackInvalidator",
    "NoopInvalidator",
    "TagCache",
    "as_invalidator",
]
