"""Exception hierarchy for apiaction.

Every failure raised by an action function is an ActionError. The concrete
subclass tells what went wrong, and every error carries:

- kind: the ErrorKind category (configuration, transform, http, ...)
- error_code: a stable ErrorCode for log aggregation and alerting
- context: ErrorContext with the action, method, url and status
- cause: the underlying exception, if any

Example:
    try:
        user = await create_user({"name": "x"})
    except HttpError as e:
        print(e.status)
    except ActionError as e:
        print(f"[{e.error_code.value}] {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Category of an action failure."""

    CONFIGURATION = "configuration"
    TRANSFORM = "transform"
    HTTP = "http"
    NETWORK = "network"
    PARSE = "parse"
    INVALIDATION = "invalidation"
    UNKNOWN = "unknown"


class ErrorCode(Enum):
    """Standardized error codes for apiaction.

    Error codes are organized by category:
    - E0xx: Configuration errors
    - E1xx: Network errors
    - E2xx: HTTP status errors
    - E3xx: Transform errors
    - E4xx: Parse errors
    - E5xx: Cache invalidation errors
    - E9xx: Unknown/internal errors
    """

    # Configuration errors (E0xx)
    INVALID_CONFIG = "E001"
    MISSING_BASE_URL = "E002"
    INVALID_DESCRIPTOR = "E003"

    # Network errors (E1xx)
    NETWORK_FAILED = "E101"
    NETWORK_TIMEOUT = "E102"

    # HTTP errors (E2xx)
    HTTP_STATUS = "E201"

    # Transform errors (E3xx)
    REQUEST_TRANSFORM_FAILED = "E301"
    RESPONSE_TRANSFORM_FAILED = "E302"
    SERIALIZATION_FAILED = "E303"

    # Parse errors (E4xx)
    PARSE_FAILED = "E401"

    # Invalidation errors (E5xx)
    INVALIDATION_FAILED = "E501"

    # Unknown/internal errors (E9xx)
    UNKNOWN = "E999"

    @property
    def kind(self) -> ErrorKind:
        """Get the error kind for this code."""
        code_num = int(self.value[1:])
        if code_num < 100:
            return ErrorKind.CONFIGURATION
        elif code_num < 200:
            return ErrorKind.NETWORK
        elif code_num < 300:
            return ErrorKind.HTTP
        elif code_num < 400:
            return ErrorKind.TRANSFORM
        elif code_num < 500:
            return ErrorKind.PARSE
        elif code_num < 600:
            return ErrorKind.INVALIDATION
        else:
            return ErrorKind.UNKNOWN


@dataclass
class ErrorContext:
    """Request details captured when an action fails.

    Attributes:
        action: Endpoint of the action that failed.
        method: HTTP method of the action.
        url: Fully constructed request URL (None if the failure happened earlier).
        status: HTTP status code, when a response was received.
        extra: Additional error-specific information.
        timestamp: When the error occurred.
    """

    action: str | None = None
    method: str | None = None
    url: str | None = None
    status: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for serialization."""
        result = {
            "action": self.action,
            "method": self.method,
            "url": self.url,
            "status": self.status,
            "extra": self.extra or None,
            "timestamp": self.timestamp.isoformat(),
        }
        return {k: v for k, v in result.items() if v is not None}

    def format_location(self) -> str:
        """Format the request location as a readable string."""
        if self.method and self.url:
            return f"{self.method} {self.url}"
        if self.method and self.action:
            return f"{self.method} {self.action}"
        return self.action or "unknown action"


class ActionError(Exception):
    """Base exception for every failure surfaced by an action function.

    Attributes:
        message: Human-readable error description.
        error_code: Unique ErrorCode for this error.
        kind: ErrorKind derived from the error code.
        context: ErrorContext with request details.
        cause: The underlying exception (if any).
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "Action failed"

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
        **extra_context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.context = context or ErrorContext()
        self.cause = cause

        if extra_context:
            self.context.extra.update(extra_context)

        super().__init__(self.message)

    @property
    def kind(self) -> ErrorKind:
        return self.error_code.kind

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "kind": self.kind.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context.to_dict(),
        }
        if self.cause is not None:
            result["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        return result


class ConfigurationError(ActionError):
    """Base URL or action descriptor is missing or malformed."""

    error_code = ErrorCode.INVALID_CONFIG
    default_message = "Invalid action configuration"

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        self.field = field
        self.value = value
        super().__init__(message, **kwargs)


class TransformError(ActionError):
    """A request or response transform raised, or a payload could not be encoded."""

    error_code = ErrorCode.REQUEST_TRANSFORM_FAILED
    default_message = "Transform failed"

    def __init__(
        self,
        message: str | None = None,
        stage: str = "request",
        **kwargs: Any,
    ) -> None:
        self.stage = stage
        if "error_code" not in kwargs and stage == "response":
            kwargs["error_code"] = ErrorCode.RESPONSE_TRANSFORM_FAILED
        super().__init__(message, **kwargs)


class HttpError(ActionError):
    """The server answered with a status outside the 2xx range."""

    error_code = ErrorCode.HTTP_STATUS
    default_message = "HTTP request failed"

    def __init__(self, status: int, message: str | None = None, **kwargs: Any) -> None:
        self.status = status
        super().__init__(message or f"HTTP error! status: {status}", **kwargs)
        self.context.status = status


class NetworkError(ActionError):
    """The transport failed before a response was produced."""

    error_code = ErrorCode.NETWORK_FAILED
    default_message = "Network request failed"


class ParseError(ActionError):
    """The response body could not be decoded."""

    error_code = ErrorCode.PARSE_FAILED
    default_message = "Could not parse response body"


class InvalidationError(ActionError):
    """One or more cache tags could not be invalidated after a successful call.

    The parsed result of the call is kept on the error so callers can still
    use it.
    """

    error_code = ErrorCode.INVALIDATION_FAILED
    default_message = "Cache invalidation failed"

    def __init__(
        self,
        message: str | None = None,
        result: Any = None,
        failed_tags: list[str] | None = None,
        **kwargs: Any,
    ) -> None:
        self.result = result
        self.failed_tags = failed_tags or []
        super().__init__(message, **kwargs)
