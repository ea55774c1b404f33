"""apiaction error handling module.

All failures raised across an action function boundary are ActionError
subclasses carrying a kind, an error code, request context and the
original cause.
"""

from apiaction.errors.base import (
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

__all__ = [
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
]
