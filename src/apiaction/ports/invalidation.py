"""Cache invalidation port for apiaction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheStats:
    """Statistics for a tag-aware cache."""

    hits: int = 0
    misses: int = 0
    hit_rate: float = 0.0
    keys_count: int = 0
    tags_count: int = 0
    invalidations: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
            "keys_count": self.keys_count,
            "tags_count": self.tags_count,
            "invalidations": self.invalidations,
        }


class CacheInvalidator(ABC):
    """Abstract port for tag-based cache invalidation.

    An action function signals every tag of its descriptor through this
    port after a successful round trip. Implementations decide what
    "stale" means: dropping in-memory entries, publishing a message, or
    nothing at all.
    """

    @abstractmethod
    def invalidate(self, tag: str) -> Awaitable[Any] | Any:
        """Mark all cached data associated with ``tag`` as stale.

        Args:
            tag: Opaque cache tag.

        Returns:
            Anything; an awaitable result is awaited by the caller.
        """
        ...
