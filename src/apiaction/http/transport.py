"""httpx-backed transport."""

from __future__ import annotations

import logging
import secrets

import httpx

from apiaction.http.forms import empty_multipart_body
from apiaction.ports.transport import OutboundRequest, Transport

logger = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """Send requests through an ``httpx.AsyncClient``.

    Connection reuse is whatever the client does; this class adds no
    pooling, retries or streaming of its own.

    Attributes:
        timeout: Request timeout in seconds, or None for no timeout.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = 30.0,
    ) -> None:
        """Initialize the transport.

        Args:
            client: Client to send through. When omitted, one is created
                lazily and closed by :meth:`aclose`.
            timeout: Timeout for a created client. Ignored when ``client``
                is given.
        """
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            logger.debug("Created httpx client (timeout=%s)", self.timeout)
        return self._client

    async def send(self, request: OutboundRequest) -> httpx.Response:
        headers = dict(request.headers)
        if request.form is not None and not request.form:
            boundary = secrets.token_hex(16)
            headers["Content-Type"] = f"multipart/form-data; boundary={boundary}"
            return await self.client.request(
                request.method,
                request.url,
                headers=headers,
                content=empty_multipart_body(boundary),
            )
        if request.form is not None:
            return await self.client.request(
                request.method,
                request.url,
                headers=headers,
                files=request.form.to_httpx_files(),
            )
        return await self.client.request(
            request.method,
            request.url,
            headers=headers,
            content=request.content,
        )

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
