"""In-memory tag-indexed cache.

TagCache stores values under keys and indexes them by cache tags. It is a
CacheInvalidator: invalidating a tag drops every entry carrying it, so the
next read misses and the data is fetched again.

Example:
    >>> cache = TagCache()
    >>> cache.set("users:list", users, tags=["users"])
    >>> factory = ActionFactory(settings, invalidator=cache)
    >>> create_user = factory.action("/users", tags="users")
    >>> await create_user({"name": "x"})
    >>> cache.get("users:list") is None
    True
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from apiaction.ports.invalidation import CacheInvalidator, CacheStats

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 250


class CacheKeyError(Exception):
    """Raised when cache key validation fails."""

    pass


@dataclass
class CacheEntry:
    """A cache entry with value, expiry and tags.

    Attributes:
        value: The cached value.
        expiry: Unix timestamp when the entry expires (None = no expiry).
        tags: Tags the entry is indexed under.
        created_at: Unix timestamp when the entry was created.
    """

    value: Any
    expiry: float | None = None
    tags: frozenset[str] = field(default_factory=frozenset)
    created_at: float = field(default_factory=time.time)

    def is_expired(self, now: float | None = None) -> bool:
        if self.expiry is None:
            return False
        return (now or time.time()) > self.expiry


class TagCache(CacheInvalidator):
    """Thread-safe in-memory cache with tag-based invalidation."""

    def __init__(self, default_ttl: int | None = None) -> None:
        """Initialize the cache.

        Args:
            default_ttl: Time-to-live in seconds applied when ``set`` gets no
                ttl. None means entries never expire.

        Raises:
            ValueError: If default_ttl is negative.
        """
        if default_ttl is not None and default_ttl < 0:
            raise ValueError("default_ttl must be non-negative")

        self.default_ttl = default_ttl
        self._entries: dict[str, CacheEntry] = {}
        self._tag_index: dict[str, set[str]] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def _validate_key(self, key: str) -> None:
        if not key:
            raise CacheKeyError("Cache key cannot be empty")
        if len(key) > MAX_KEY_LENGTH:
            raise CacheKeyError(f"Cache key cannot exceed {MAX_KEY_LENGTH} characters")

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._tag_index[tag]
        return True

    def get(self, key: str) -> Any | None:
        """Get a value, or None if missing or expired."""
        self._validate_key(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired():
                if entry is not None:
                    self._remove(key)
                self._misses += 1
                return None
            self._hits += 1
            return entry.value

    def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Iterable[str] = (),
    ) -> bool:
        """Store a value under ``key``, indexed by ``tags``.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Time-to-live in seconds; falls back to ``default_ttl``.
                0 means no expiry.
            tags: Tags to index the entry under.

        Returns:
            True once stored.
        """
        self._validate_key(key)
        if isinstance(tags, str):
            tags = (tags,)
        ttl = self.default_ttl if ttl is None else ttl
        expiry = time.time() + ttl if ttl else None

        with self._lock:
            self._remove(key)
            entry = CacheEntry(value=value, expiry=expiry, tags=frozenset(tags))
            self._entries[key] = entry
            for tag in entry.tags:
                self._tag_index.setdefault(tag, set()).add(key)
        return True

    def delete(self, key: str) -> bool:
        self._validate_key(key)
        with self._lock:
            return self._remove(key)

    def exists(self, key: str) -> bool:
        self._validate_key(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired():
                self._remove(key)
                return False
            return True

    def keys_for_tag(self, tag: str) -> set[str]:
        with self._lock:
            return set(self._tag_index.get(tag, ()))

    def invalidate(self, tag: str) -> int:
        """Drop every entry tagged with ``tag``.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            keys = list(self._tag_index.get(tag, ()))
            for key in keys:
                self._remove(key)
            self._invalidations += 1
        logger.debug("Invalidated tag %r (%d entries)", tag, len(keys))
        return len(keys)

    def clear(self) -> bool:
        """Remove all entries and reset statistics."""
        with self._lock:
            self._entries.clear()
            self._tag_index.clear()
            self._hits = 0
            self._misses = 0
            self._invalidations = 0
        return True

    def get_stats(self) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / total if total > 0 else 0.0,
                keys_count=len(self._entries),
                tags_count=len(self._tag_index),
                invalidations=self._invalidations,
            )

    def health_check(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._entries)
