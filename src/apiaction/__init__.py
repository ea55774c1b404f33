"""apiaction - declarative async API actions with tag-based cache invalidation.

Example:
    >>> from apiaction import ActionFactory, ActionSettings, TagCache
    >>> cache = TagCache()
    >>> factory = ActionFactory(ActionSettings(base_url="https://api.example.com"), invalidator=cache)
    >>> create_user = factory.action("/users", method="POST", tags=["users"])
    >>> user = await create_user({"name": "x"})
"""

from apiaction.cache import CallbackInvalidator, NoopInvalidator, TagCache
from apiaction.config import ActionSettings, load_config
from apiaction.errors import (
    ActionError,
    ConfigurationError,
    ErrorCode,
    ErrorContext,
    ErrorKind,
    HttpError,
    InvalidationError,
    NetworkError,
    ParseError,
    TransformError,
)
from apiaction.factory import (
    DEFAULT_HEADERS,
    ActionDescriptor,
    ActionFactory,
    ActionFunction,
    HttpMethod,
)
from apiaction.http import FormData, HttpxTransport
from apiaction.observability import configure_logging, log_context
from apiaction.ports import CacheInvalidator, OutboundRequest, Transport

__version__ = "0.1.0"

__all__ = [
    # Factory
    "ActionDescriptor",
    "ActionFactory",
    "ActionFunction",
    "HttpMethod",
    "DEFAULT_HEADERS",
    # Configuration
    "ActionSettings",
    "load_config",
    # HTTP
    "FormData",
    "HttpxTransport",
    "OutboundRequest",
    "Transport",
    # Cache
    "CacheInvalidator",
    "CallbackInvalidator",
    "NoopInvalidator",
    "TagCache",
    # Errors
    "ActionError",
    "ErrorCode",
    "ErrorContext",
    "ErrorKind",
    "ConfigurationError",
    "TransformError",
    "HttpError",
    "NetworkError",
    "ParseError",
    "InvalidationError",
    # Logging
    "configure_logging",
    "log_context",
]
