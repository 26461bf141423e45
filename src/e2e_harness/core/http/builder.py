"""
Fluent request builder.

A RequestBuilder assembles exactly one request and sends it once:

    envelope = await (
        factory.create()
        .with_method("POST")
        .with_resource("/auth/login")
        .with_payload({"user": "u1", "password": "secret"})
        .send(LoginResponse)
    )

Every completed exchange yields a ResponseEnvelope, whatever the HTTP
status. Only a failed exchange (timeout, DNS failure, refused connection)
raises, as TransportError.
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Mapping
from copy import deepcopy
from typing import Any, TypeVar, overload

import httpx
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from e2e_harness.core.common.exceptions import (
    RequestBuildError,
    SerializationError,
    TransportError,
)
from e2e_harness.core.config.app_config import EnvironmentConfig
from e2e_harness.core.http.exchange import ExchangeRecord, ExchangeRecorder, log_exchange
from e2e_harness.core.http.request_spec import (
    BODYLESS_METHODS,
    HeaderMap,
    HttpMethod,
    RequestSpec,
)
from e2e_harness.core.http.response import ResponseEnvelope

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BODY_LIMIT = 2048


@functools.lru_cache(maxsize=256)
def _cached_adapter(response_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_type)


def _type_adapter(response_type: Any) -> TypeAdapter[Any]:
    try:
        return _cached_adapter(response_type)
    except TypeError:
        # Unhashable type expressions are not cached
        return TypeAdapter(response_type)


def _shape_name(response_type: Any) -> str:
    return getattr(response_type, "__name__", None) or str(response_type)


def _parse_method(method: HttpMethod | str) -> HttpMethod:
    if isinstance(method, HttpMethod):
        return method
    if isinstance(method, str):
        try:
            return HttpMethod(method.strip().upper())
        except ValueError:
            pass
    raise RequestBuildError(
        f"Unsupported HTTP method: {method!r}",
        details={"supported": [m.value for m in HttpMethod]},
    )


def decode_body(
    response: httpx.Response, spec: RequestSpec, response_type: Any | None
) -> tuple[Any | None, SerializationError | None]:
    """Deserialize a response body into the declared shape.

    Returns (data, error). Non-2xx, empty and HEAD responses never carry
    data. Without a declared shape the decoded JSON value is returned, or
    None for non-JSON bodies.
    """
    raw = response.content
    if not raw or spec.method == HttpMethod.HEAD or not response.is_success:
        return None, None

    if response_type is None:
        try:
            return response.json(), None
        except ValueError:
            return None, None

    try:
        return _type_adapter(response_type).validate_json(raw), None
    except ValidationError as e:
        shape = _shape_name(response_type)
        return None, SerializationError(
            f"Could not parse {spec.method.value} {spec.url} response as {shape}: "
            f"{e.error_count()} validation error(s)",
            status_code=response.status_code,
            expected=shape,
            details={"errors": e.errors(include_url=False, include_context=False)},
        )


class RequestBuilder:
    """Builds and sends a single HTTP request."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        default_headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        verify: bool = True,
        recorder: ExchangeRecorder | None = None,
        body_limit: int = DEFAULT_BODY_LIMIT,
    ) -> None:
        self._base_url = base_url
        self._client = client
        self._verify = verify
        self._recorder = recorder
        self._body_limit = body_limit

        self._method: HttpMethod | None = None
        self._resource: str | None = None
        self._payload: Any | None = None
        self._headers = HeaderMap(default_headers)
        self._query: dict[str, Any] = {}
        self._timeout = timeout
        self._sent = False

    # Staged construction

    def with_method(self, method: HttpMethod | str) -> RequestBuilder:
        self._ensure_unsent()
        self._method = _parse_method(method)
        self._check_payload_policy()
        return self

    def with_resource(self, path: str) -> RequestBuilder:
        self._ensure_unsent()
        if not isinstance(path, str) or not path.strip():
            raise RequestBuildError("Resource path must be a non-empty string")
        self._resource = path.strip()
        return self

    def with_payload(self, body: Any) -> RequestBuilder:
        self._ensure_unsent()
        self._payload = body
        self._check_payload_policy()
        return self

    def with_header(self, name: str, value: Any) -> RequestBuilder:
        self._ensure_unsent()
        if not name:
            raise RequestBuildError("Header name must be non-empty")
        self._headers[name] = str(value)
        return self

    def with_headers(self, headers: Mapping[str, Any]) -> RequestBuilder:
        for name, value in headers.items():
            self.with_header(name, value)
        return self

    def with_query(self, params: Mapping[str, Any]) -> RequestBuilder:
        self._ensure_unsent()
        self._query.update(params)
        return self

    def with_timeout(self, seconds: float) -> RequestBuilder:
        self._ensure_unsent()
        if seconds <= 0:
            raise RequestBuildError("Timeout must be positive")
        self._timeout = seconds
        return self

    def with_base_url(self, base_url: str) -> RequestBuilder:
        self._ensure_unsent()
        if not base_url.startswith(("http://", "https://")):
            raise RequestBuildError("Base URL must start with http:// or https://")
        self._base_url = base_url
        return self

    @property
    def sent(self) -> bool:
        return self._sent

    def copy(self) -> RequestBuilder:
        """Return an unsent builder with the same configuration."""
        clone = RequestBuilder(
            self._base_url,
            client=self._client,
            default_headers=self._headers,
            timeout=self._timeout,
            verify=self._verify,
            recorder=self._recorder,
            body_limit=self._body_limit,
        )
        clone._method = self._method
        clone._resource = self._resource
        clone._payload = deepcopy(self._payload)
        clone._query = dict(self._query)
        return clone

    def build(self) -> RequestSpec:
        """Validate the staged state and freeze it into a RequestSpec."""
        if self._method is None:
            raise RequestBuildError("HTTP method was not set; call with_method()")
        if self._resource is None:
            raise RequestBuildError("Resource path was not set; call with_resource()")
        self._check_payload_policy()

        spec = RequestSpec(
            method=self._method,
            resource_path=self._resource,
            base_url=self._base_url,
            headers=dict(self._headers.items()),
            payload=deepcopy(self._payload),
            query=self._query,
            timeout=self._timeout,
        )
        try:
            spec.url
        except ValueError as e:
            raise RequestBuildError(str(e)) from e
        try:
            spec.body_kwargs()
        except PydanticSerializationError as e:
            raise RequestBuildError(
                f"Payload of {spec.method.value} {spec.resource_path} is not JSON serializable: {e}"
            ) from e
        return spec

    def _ensure_unsent(self) -> None:
        if self._sent:
            raise RequestBuildError(
                "Request was already sent; use copy() to build another one"
            )

    def _check_payload_policy(self) -> None:
        if (
            self._payload is not None
            and self._method is not None
            and self._method in BODYLESS_METHODS
        ):
            raise RequestBuildError(
                f"{self._method.value} requests cannot carry a payload"
            )

    # Dispatch

    @overload
    async def send(self, response_type: type[T]) -> ResponseEnvelope[T]: ...

    @overload
    async def send(self, response_type: None = None) -> ResponseEnvelope[Any]: ...

    async def send(self, response_type: Any | None = None) -> ResponseEnvelope[Any]:
        """Perform the call and wrap the outcome.

        Args:
            response_type: Declared shape of a 2xx body; any type accepted by
                pydantic.TypeAdapter (models, list[Model], TypedDict, dict...)

        Returns:
            The envelope of the completed exchange, for any status code

        Raises:
            TransportError: The exchange could not complete
            RequestBuildError: The request is incomplete or was already sent
        """
        self._ensure_unsent()
        spec = self.build()
        kwargs = spec.to_httpx_kwargs()
        self._sent = True

        started = time.perf_counter()
        try:
            if self._client is not None:
                response = await self._client.request(**kwargs)
            else:
                async with httpx.AsyncClient(verify=self._verify) as client:
                    response = await client.request(**kwargs)
        except httpx.RequestError as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            error = f"{e.__class__.__name__}: {e}"
            self._emit(
                ExchangeRecord.create(
                    spec.method.value,
                    spec.url,
                    elapsed_ms=elapsed_ms,
                    request_headers=dict(spec.headers),
                    request_body=kwargs.get("json", kwargs.get("content")),
                    error=error,
                    body_limit=self._body_limit,
                )
            )
            raise TransportError(
                f"{spec.method.value} {spec.url} failed: {error}",
                method=spec.method.value,
                url=spec.url,
                details={"error_type": e.__class__.__name__},
            ) from e

        elapsed_ms = (time.perf_counter() - started) * 1000
        data, serialization_error = decode_body(response, spec, response_type)
        if serialization_error is not None:
            logger.warning("%s", serialization_error.message)

        envelope: ResponseEnvelope[Any] = ResponseEnvelope(
            status_code=response.status_code,
            data=data,
            headers=dict(response.headers),
            raw_body=response.content,
            serialization_error=serialization_error,
            elapsed_ms=elapsed_ms,
            request=spec,
        )

        self._emit(
            ExchangeRecord.create(
                spec.method.value,
                str(response.request.url),
                status_code=response.status_code,
                elapsed_ms=elapsed_ms,
                request_headers=dict(spec.headers),
                response_headers=envelope.headers,
                request_body=kwargs.get("json", kwargs.get("content")),
                response_body=response.content,
                body_limit=self._body_limit,
            )
        )
        return envelope

    def _emit(self, record: ExchangeRecord) -> None:
        if self._recorder is not None:
            self._recorder.record(record)
        log_exchange(record)


class RequestBuilderFactory:
    """Creates builders bound to the active environment."""

    def __init__(
        self,
        environment: EnvironmentConfig,
        *,
        client: httpx.AsyncClient | None = None,
        recorder: ExchangeRecorder | None = None,
        body_limit: int = DEFAULT_BODY_LIMIT,
    ) -> None:
        self.environment = environment
        self._client = client
        self._recorder = recorder
        self._body_limit = body_limit

    def create(self) -> RequestBuilder:
        return RequestBuilder(
            self.environment.base_url,
            client=self._client,
            default_headers=self.environment.headers,
            timeout=self.environment.timeout,
            verify=self.environment.verify_tls,
            recorder=self._recorder,
            body_limit=self._body_limit,
        )

    def request(self, method: HttpMethod | str, resource: str) -> RequestBuilder:
        return self.create().with_method(method).with_resource(resource)
