"""Ports: the collaborators an action factory talks to."""

from apiaction.ports.invalidation import CacheInvalidator, CacheStats
from apiaction.ports.transport import OutboundRequest, Transport

__all__ = [
    "CacheInvalidator",
    "CacheStats",
    "OutboundRequest",
    "Transport",
]
