"""Action factory: declarative descriptors turned into async API calls.

An ActionDescriptor states once, usually at import time, how to call one
endpoint. ActionFactory.build() binds it to the injected settings,
transport and cache invalidator and returns an ActionFunction. Each call of
that function is one independent round trip:

1. apply the request transform
2. build the URL from the configured base URL and the endpoint
3. encode the payload (query string for GET, multipart for FormData,
   JSON otherwise)
4. send exactly one request
5. reject non-2xx statuses with HttpError
6. apply the response transform, or decode JSON/text by content type
7. invalidate the descriptor's cache tags
8. surface every failure as an ActionError subclass

Example:
    >>> factory = ActionFactory(ActionSettings(base_url="https://api.example.com"))
    >>> list_users = factory.action("/users", method="GET")
    >>> create_user = factory.action("/users", tags=["users"])
    >>> users = await list_users({"page": 1})
    >>> user = await create_user({"name": "x"})
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel

from apiaction.cache.invalidators import as_invalidator
from apiaction.config import ActionSettings, load_config
from apiaction.errors import (
    ActionError,
    ConfigurationError,
    ErrorCode,
    ErrorContext,
    HttpError,
    InvalidationError,
    NetworkError,
    ParseError,
    TransformError,
)
from apiaction.http.forms import FormData
from apiaction.http.transport import HttpxTransport
from apiaction.observability.logging import log_context, log_error
from apiaction.ports.invalidation import CacheInvalidator
from apiaction.ports.transport import OutboundRequest, Transport

logger = logging.getLogger(__name__)

In = TypeVar("In")
Out = TypeVar("Out")

RequestTransform = Callable[[Any], Any]
ResponseTransform = Callable[[httpx.Response], Any]


class HttpMethod(str, Enum):
    """HTTP methods an action may use."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


DEFAULT_HEADERS: Mapping[str, str] = MappingProxyType({"Content-Type": "application/json"})


@dataclass(frozen=True)
class ActionDescriptor(Generic[In, Out]):
    """Static configuration of one reusable request shape.

    Attributes:
        endpoint: Path appended to the configured base URL.
        method: HTTP method, POST by default. Strings are accepted in any case.
        headers: Request headers. Defaults to a JSON content type when omitted;
            an explicit empty mapping sends no extra headers.
        tags: Cache tags invalidated after a successful call. A single string
            is normalized to a one-element tuple.
        request_transform: Maps the caller's input to the request payload.
        response_transform: Maps the raw ``httpx.Response`` to the result;
            may be sync or async.

    Raises:
        ConfigurationError: If any field is malformed.
    """

    endpoint: str
    method: HttpMethod = HttpMethod.POST
    headers: Mapping[str, str] | None = None
    tags: tuple[str, ...] = ()
    request_transform: Callable[[In], Any] | None = None
    response_transform: Callable[[httpx.Response], Out | Awaitable[Out]] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.endpoint, str):
            raise ConfigurationError(
                "endpoint must be a string",
                field="endpoint",
                value=self.endpoint,
                error_code=ErrorCode.INVALID_DESCRIPTOR,
            )

        object.__setattr__(self, "method", _normalize_method(self.method))
        object.__setattr__(self, "headers", _normalize_headers(self.headers))
        object.__setattr__(self, "tags", _normalize_tags(self.tags))

        for name in ("request_transform", "response_transform"):
            transform = getattr(self, name)
            if transform is not None and not callable(transform):
                raise ConfigurationError(
                    f"{name} must be callable",
                    field=name,
                    value=transform,
                    error_code=ErrorCode.INVALID_DESCRIPTOR,
                )

    def __str__(self) -> str:
        return f"{self.method.value} {self.endpoint}"


def _normalize_method(method: HttpMethod | str) -> HttpMethod:
    if isinstance(method, HttpMethod):
        return method
    try:
        return HttpMethod(str(method).upper())
    except ValueError:
        raise ConfigurationError(
            f"Unsupported HTTP method: {method!r}. Valid: {[m.value for m in HttpMethod]}",
            field="method",
            value=method,
            error_code=ErrorCode.INVALID_DESCRIPTOR,
        ) from None


def _normalize_headers(headers: Mapping[str, str] | None) -> Mapping[str, str]:
    if headers is None:
        return DEFAULT_HEADERS
    if not isinstance(headers, Mapping):
        raise ConfigurationError(
            "headers must be a mapping of header name to value",
            field="headers",
            value=headers,
            error_code=ErrorCode.INVALID_DESCRIPTOR,
        )
    for name, value in headers.items():
        if not isinstance(name, str) or not isinstance(value, str):
            raise ConfigurationError(
                f"Header {name!r} must have a string name and value",
                field="headers",
                value=headers,
                error_code=ErrorCode.INVALID_DESCRIPTOR,
            )
    return MappingProxyType(dict(headers))


def _normalize_tags(tags: str | Iterable[str] | None) -> tuple[str, ...]:
    if tags is None:
        return ()
    if isinstance(tags, str):
        tags = (tags,)
    try:
        normalized = tuple(tags)
    except TypeError:
        raise ConfigurationError(
            "tags must be a string or a sequence of strings",
            field="tags",
            value=tags,
            error_code=ErrorCode.INVALID_DESCRIPTOR,
        ) from None
    for tag in normalized:
        if not isinstance(tag, str) or not tag:
            raise ConfigurationError(
                f"Invalid cache tag: {tag!r}",
                field="tags",
                value=tags,
                error_code=ErrorCode.INVALID_DESCRIPTOR,
            )
    return normalized


def _without_content_type(headers: Mapping[str, str]) -> dict[str, str]:
    return {name: value for name, value in headers.items() if name.lower() != "content-type"}


def _stringify(value: Any) -> str:
    """Convert a query value to text the way a browser URL builder would."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _stringify(value.value)
    if isinstance(value, (list, tuple)):
        return ",".join(_stringify(item) for item in value)
    return str(value)


def _as_query_mapping(payload: Any) -> Mapping[str, Any] | None:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    if isinstance(payload, Mapping):
        return payload
    return None


def _append_query(url: str, params: Mapping[str, Any]) -> str:
    pairs = [(str(key), _stringify(value)) for key, value in params.items() if value is not None]
    if not pairs:
        return url
    parsed = httpx.URL(url)
    merged = list(parsed.params.multi_items()) + pairs
    return str(parsed.copy_with(params=merged))


def _to_json(payload: Any) -> bytes:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _validate_base_url(base_url: str | None, context: ErrorContext | None = None) -> str:
    if not base_url:
        raise ConfigurationError(
            "Base URL is not configured. Set APIACTION_BASE_URL or pass ActionSettings(base_url=...)",
            field="base_url",
            value=base_url,
            error_code=ErrorCode.MISSING_BASE_URL,
            context=context,
        )
    if not base_url.lower().startswith(("http://", "https://")):
        raise ConfigurationError(
            "Base URL must start with http:// or https://",
            field="base_url",
            value=base_url,
            context=context,
        )
    return base_url


class ActionFunction(Generic[In, Out]):
    """Async callable bound to one ActionDescriptor.

    Calls share nothing but the factory's transport; concurrent calls are
    safe.
    """

    def __init__(self, descriptor: ActionDescriptor[In, Out], factory: ActionFactory) -> None:
        self.descriptor = descriptor
        self.factory = factory

    @property
    def endpoint(self) -> str:
        return self.descriptor.endpoint

    @property
    def method(self) -> HttpMethod:
        return self.descriptor.method

    @property
    def tags(self) -> tuple[str, ...]:
        return self.descriptor.tags

    def __repr__(self) -> str:
        return f"ActionFunction({self.descriptor})"

    async def __call__(self, data: In | None = None) -> Out:
        """Perform one round trip.

        Args:
            data: Optional input. ``None`` means no payload.

        Returns:
            The transformed or decoded response body.

        Raises:
            ConfigurationError: The base URL is unset or malformed.
            TransformError: A transform raised, or the payload is not JSON serializable.
            NetworkError: No response was produced.
            HttpError: The response status is outside 200-299.
            ParseError: The response body could not be decoded.
            InvalidationError: Tag invalidation failed and the factory's policy is ``raise``.
        """
        descriptor = self.descriptor
        context = ErrorContext(action=descriptor.endpoint, method=descriptor.method.value)

        with log_context(action=descriptor.endpoint, method=descriptor.method.value):
            try:
                result = await self._round_trip(data, context)
            except ActionError:
                raise
            except Exception as exc:
                raise ActionError(
                    f"Unexpected error in {descriptor}: {exc}",
                    context=context,
                    cause=exc,
                ) from exc

            await self._invalidate(result, context)
            return result

    async def _round_trip(self, data: In | None, context: ErrorContext) -> Out:
        payload = self._transform_request(data, context)
        url = self._build_url(context)
        request = self._encode(url, payload, context)
        context.url = request.url

        response = await self._send(request, context)
        if not response.is_success:
            logger.warning(f"{request} returned HTTP {response.status_code}")
            raise HttpError(response.status_code, context=context)

        return await self._parse(response, context)

    def _transform_request(self, data: In | None, context: ErrorContext) -> Any:
        transform = self.descriptor.request_transform
        if data is None or transform is None:
            return data
        try:
            return transform(data)
        except ActionError:
            raise
        except Exception as exc:
            raise TransformError(
                f"Request transform failed: {exc}",
                stage="request",
                context=context,
                cause=exc,
            ) from exc

    def _build_url(self, context: ErrorContext) -> str:
        base_url = _validate_base_url(self.factory.settings.base_url, context)
        endpoint = self.descriptor.endpoint
        if base_url.endswith("/") and endpoint.startswith("/"):
            base_url = base_url.rstrip("/")
        url = f"{base_url}{endpoint}"
        try:
            httpx.URL(url)
        except httpx.InvalidURL as exc:
            raise ConfigurationError(
                f"Invalid URL {url!r}: {exc}",
                field="endpoint",
                value=endpoint,
                context=context,
                cause=exc,
            ) from exc
        return url

    def _encode(self, url: str, payload: Any, context: ErrorContext) -> OutboundRequest:
        method = self.descriptor.method
        headers = self.factory.merge_headers(self.descriptor.headers)

        if payload is None:
            return OutboundRequest(method.value, url, headers)

        if method is HttpMethod.GET:
            params = _as_query_mapping(payload)
            if params is None:
                logger.debug(f"Ignoring non-mapping GET payload of type {type(payload).__name__}")
                return OutboundRequest(method.value, url, headers)
            return OutboundRequest(method.value, _append_query(url, params), headers)

        if isinstance(payload, FormData):
            return OutboundRequest(method.value, url, _without_content_type(headers), form=payload)

        try:
            content = _to_json(payload)
        except (TypeError, ValueError) as exc:
            raise TransformError(
                f"Request payload is not JSON serializable: {exc}",
                stage="serialize",
                error_code=ErrorCode.SERIALIZATION_FAILED,
                context=context,
                cause=exc,
            ) from exc
        return OutboundRequest(method.value, url, headers, content=content)

    async def _send(self, request: OutboundRequest, context: ErrorContext) -> httpx.Response:
        logger.debug(f"Sending {request}")
        try:
            response = await self.factory.transport.send(request)
        except httpx.TimeoutException as exc:
            raise NetworkError(
                f"Request to {request.url} timed out",
                error_code=ErrorCode.NETWORK_TIMEOUT,
                context=context,
                cause=exc,
            ) from exc
        except httpx.DecodingError as exc:
            raise ParseError(
                f"Could not decode response from {request.url}: {exc}",
                context=context,
                cause=exc,
            ) from exc
        except (httpx.RequestError, OSError) as exc:
            raise NetworkError(
                f"Request to {request.url} failed: {exc}",
                context=context,
                cause=exc,
            ) from exc
        logger.debug(f"Received HTTP {response.status_code} from {request}")
        return response

    async def _parse(self, response: httpx.Response, context: ErrorContext) -> Out:
        transform = self.descriptor.response_transform
        if transform is not None:
            try:
                result = transform(response)
                if inspect.isawaitable(result):
                    result = await result
            except ActionError:
                raise
            except Exception as exc:
                raise TransformError(
                    f"Response transform failed: {exc}",
                    stage="response",
                    context=context,
                    cause=exc,
                ) from exc
            return result

        content_type = response.headers.get("content-type", "")
        try:
            if "application/json" in content_type.lower():
                return response.json()
            return response.text  # type: ignore[return-value]
        except (ValueError, UnicodeDecodeError) as exc:
            raise ParseError(
                f"Could not decode response body as {content_type or 'text'}: {exc}",
                context=context,
                cause=exc,
                content_type=content_type,
            ) from exc

    async def _invalidate(self, result: Out, context: ErrorContext) -> None:
        tags = self.descriptor.tags
        if not tags:
            return

        invalidator = self.factory.invalidator
        policy = self.factory.settings.invalidation_errors
        failures: list[tuple[str, Exception]] = []

        for tag in tags:
            try:
                outcome = invalidator.invalidate(tag)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                failures.append((tag, exc))
                if policy == "log":
                    log_error(logger, exc, tag=tag, action=self.descriptor.endpoint)
                else:
                    logger.warning(f"Invalidation of tag {tag!r} failed: {exc}")

        if failures and policy == "raise":
            failed_tags = [tag for tag, _ in failures]
            cause = failures[0][1]
            raise InvalidationError(
                f"Failed to invalidate cache tags: {', '.join(failed_tags)}",
                result=result,
                failed_tags=failed_tags,
                context=context,
                cause=cause,
            ) from cause

        if not failures:
            logger.debug(f"Invalidated cache tags: {', '.join(tags)}")


class ActionFactory:
    """Builds ActionFunctions that share one configuration.

    Attributes:
        settings: Injected configuration; read at call time for the base URL.
        transport: Sends requests. An HttpxTransport is created when omitted.
        invalidator: Receives cache tags after successful calls.

    Example:
        >>> async with ActionFactory(settings, invalidator=cache) as factory:
        ...     create_user = factory.action("/users", tags="users")
        ...     await create_user({"name": "x"})
    """

    def __init__(
        self,
        settings: ActionSettings | None = None,
        transport: Transport | None = None,
        invalidator: CacheInvalidator | Callable[[str], Any] | None = None,
    ) -> None:
        """Initialize the factory.

        Args:
            settings: Configuration. Loaded from the environment when omitted.
            transport: Transport to send requests through.
            invalidator: A CacheInvalidator, a plain ``tag -> None`` callable
                (sync or async), or None for no invalidation.
        """
        self.settings = settings if settings is not None else load_config()
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else HttpxTransport(timeout=self.settings.timeout)
        self.invalidator = as_invalidator(invalidator)

    def build(self, descriptor: ActionDescriptor[In, Out]) -> ActionFunction[In, Out]:
        """Bind a descriptor to this factory.

        Raises:
            ConfigurationError: If ``descriptor`` is not an ActionDescriptor, or
                the configured base URL is set but malformed.
        """
        if not isinstance(descriptor, ActionDescriptor):
            raise ConfigurationError(
                f"build() expects an ActionDescriptor, got {type(descriptor).__name__}",
                field="descriptor",
                value=descriptor,
                error_code=ErrorCode.INVALID_DESCRIPTOR,
            )
        if self.settings.base_url:
            _validate_base_url(self.settings.base_url)
        logger.debug(f"Built action {descriptor}")
        return ActionFunction(descriptor, self)

    def action(
        self,
        endpoint: str,
        *,
        method: HttpMethod | str = HttpMethod.POST,
        headers: Mapping[str, str] | None = None,
        tags: str | Iterable[str] | None = None,
        request_transform: RequestTransform | None = None,
        response_transform: ResponseTransform | None = None,
    ) -> ActionFunction[Any, Any]:
        """Build an action from keyword arguments."""
        return self.build(
            ActionDescriptor(
                endpoint=endpoint,
                method=method,  # type: ignore[arg-type]
                headers=headers,
                tags=tags,  # type: ignore[arg-type]
                request_transform=request_transform,
                response_transform=response_transform,
            )
        )

    def merge_headers(self, headers: Mapping[str, str]) -> dict[str, str]:
        """Layer descriptor headers over the configured default headers.

        Names compare case-insensitively; the descriptor wins.
        """
        overridden = {name.lower() for name in headers}
        merged = {
            name: value
            for name, value in self.settings.default_headers.items()
            if name.lower() not in overridden
        }
        merged.update(headers)
        return merged

    async def aclose(self) -> None:
        """Close the transport if this factory created it."""
        if self._owns_transport:
            await self.transport.aclose()

    async def __aenter__(self) -> ActionFactory:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
