"""HTTP transport port for apiaction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from apiaction.http.forms import FormData


@dataclass(frozen=True)
class OutboundRequest:
    """A fully constructed request, ready to hand to a transport.

    Exactly one of ``content`` and ``form`` is set when a body is attached.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes | None = None
    form: FormData | None = None

    @property
    def has_body(self) -> bool:
        return self.content is not None or self.form is not None

    def __str__(self) -> str:
        return f"{self.method} {self.url}"


class Transport(ABC):
    """Abstract port for issuing one HTTP request."""

    @abstractmethod
    async def send(self, request: OutboundRequest) -> httpx.Response:
        """Send the request and return the response with its body read.

        Raises:
            httpx.TransportError: If no response could be produced.
        """
        ...

    async def aclose(self) -> None:
        """Release transport resources."""
        return None
