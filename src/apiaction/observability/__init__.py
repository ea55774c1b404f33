"""Observability helpers for apiaction."""

from apiaction.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    StructuredLogger,
    add_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_context,
    get_logger,
    log_context,
    log_error,
)

__all__ = [
    "StructuredFormatter",
    "HumanReadableFormatter",
    "StructuredLogger",
    "get_logger",
    "configure_logging",
    "configure_from_settings",
    "log_context",
    "get_context",
    "add_context",
    "clear_context",
    "log_error",
]
