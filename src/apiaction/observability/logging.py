"""Structured logging for apiaction.

Library modules log through ``logging.getLogger(__name__)`` under the
``apiaction`` namespace. Applications opt in to output with
:func:`configure_logging`, choosing JSON lines for production or a
colored, human-readable layout for development.

Example:
    Basic usage::

        from apiaction.observability.logging import configure_logging, get_logger

        configure_logging(level="DEBUG")
        logger = get_logger("apiaction.app")
        logger.info("Action registered", endpoint="/users")

    With context::

        with log_context(request_id="abc-123"):
            await create_user({"name": "x"})  # every log line carries request_id

    Child logger::

        request_logger = logger.bind(request_id="abc-123")
        request_logger.info("Processing")
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from apiaction.config import ActionSettings

ROOT_LOGGER_NAME = "apiaction"

_context_fields: ContextVar[dict[str, Any] | None] = ContextVar("apiaction_log_context", default=None)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for log aggregation.

    Each record becomes one JSON object with ``timestamp``, ``level``,
    ``message`` and ``logger``, plus ``context`` (from :func:`log_context`),
    ``data`` (structured fields) and ``exception`` when present.
    """

    def __init__(self, extra_fields: dict[str, Any] | None = None) -> None:
        super().__init__()
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "message": record.getMessage(),
            "logger": record.name,
        }

        context = _context_fields.get()
        if context:
            log_data["context"] = dict(context)

        structured_data = getattr(record, "structured_data", None)
        if structured_data:
            log_data["data"] = dict(structured_data)

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in self.extra_fields.items():
            log_data.setdefault(key, value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """Colored single-line formatter for development consoles."""

    COLORS = {
        "DEBUG": "\033[34m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and self._supports_color()

    @staticmethod
    def _supports_color() -> bool:
        if os.environ.get("NO_COLOR"):
            return False
        if sys.platform == "win32":
            return os.environ.get("ANSICON") is not None or "WT_SESSION" in os.environ
        return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            level = f"{color}{record.levelname:8}{self.RESET}"
        else:
            level = f"{record.levelname:8}"

        line = f"{timestamp} {level} [{record.name}] {record.getMessage()}"

        meta: dict[str, Any] = {}
        context = _context_fields.get()
        if context:
            meta.update(context)
        structured_data = getattr(record, "structured_data", None)
        if structured_data:
            meta.update(structured_data)
        if meta:
            line += f" {json.dumps(meta, default=str)}"

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


class StructuredLogger:
    """Thin wrapper over a standard logger that accepts keyword fields.

    Keyword arguments are attached to the record as ``structured_data`` and
    rendered by both formatters.

    Example:
        >>> logger = get_logger("apiaction.app")
        >>> logger.info("Request sent", method="GET", url="/users")
    """

    def __init__(self, name: str, fields: dict[str, Any] | None = None) -> None:
        self.name = name
        self._logger = logging.getLogger(name)
        self._fields = fields or {}

    def _log(self, level: int, message: str, exc_info: Any = None, **kwargs: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        data = {**self._fields, **kwargs}
        self._logger.log(level, message, exc_info=exc_info, extra={"structured_data": data}, stacklevel=3)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at error level with the active exception's traceback."""
        self._log(logging.ERROR, message, exc_info=True, **kwargs)

    def bind(self, **kwargs: Any) -> StructuredLogger:
        """Create a child logger that includes ``kwargs`` in every record."""
        return StructuredLogger(self.name, {**self._fields, **kwargs})


def get_logger(name: str = ROOT_LOGGER_NAME, **fields: Any) -> StructuredLogger:
    """Get a structured logger, optionally with default fields bound."""
    return StructuredLogger(name, fields)


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any | None = None,
    extra_fields: dict[str, Any] | None = None,
) -> logging.Logger:
    """Install a single stream handler on the ``apiaction`` logger.

    Calling it again replaces the previous handler.

    Args:
        level: Minimum log level (int or name such as ``"DEBUG"``).
        json_format: JSON lines when True, human-readable otherwise.
        stream: Output stream (defaults to sys.stderr).
        extra_fields: Static fields added to every JSON record.

    Returns:
        The configured ``apiaction`` logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.handlers.clear()
    root_logger.propagate = False

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(StructuredFormatter(extra_fields=extra_fields))
    else:
        handler.setFormatter(HumanReadableFormatter())

    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return root_logger


def configure_from_settings(settings: ActionSettings, stream: Any | None = None) -> logging.Logger:
    """Configure logging from ``log_level`` and ``json_logs`` settings."""
    return configure_logging(level=settings.log_level, json_format=settings.json_logs, stream=stream)


def log_error(logger: logging.Logger | StructuredLogger, error: BaseException, **context: Any) -> None:
    """Log an exception with its type, traceback and extra context."""
    data = {**context, "error": type(error).__name__}
    exc_info = (type(error), error, error.__traceback__)
    if isinstance(logger, StructuredLogger):
        logger._log(logging.ERROR, str(error) or type(error).__name__, exc_info=exc_info, **data)
    else:
        logger.error(str(error) or type(error).__name__, exc_info=exc_info, extra={"structured_data": data})


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Add fields to every log record emitted inside the block.

    Backed by a context variable, so concurrent asyncio tasks keep
    separate contexts.
    """
    current = dict(_context_fields.get() or {})
    current.update(kwargs)
    token = _context_fields.set(current)
    try:
        yield
    finally:
        _context_fields.reset(token)


def get_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    current = _context_fields.get()
    return dict(current) if current else {}


def add_context(**kwargs: Any) -> None:
    """Add fields to the current logging context."""
    current = dict(_context_fields.get() or {})
    current.update(kwargs)
    _context_fields.set(current)


def clear_context() -> None:
    """Clear the current logging context."""
    _context_fields.set({})
