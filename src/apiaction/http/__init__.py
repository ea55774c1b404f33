"""HTTP transport and payload types."""

from apiaction.http.forms import FormData, FormField, FormFile
from apiaction.http.transport import HttpxTransport

__all__ = [
    "FormData",
    "FormField",
    "FormFile",
    "HttpxTransport",
]
