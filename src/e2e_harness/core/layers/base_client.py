from __future__ import annotations

from e2e_harness.core.http.builder import RequestBuilder, RequestBuilderFactory
from e2e_harness.core.http.request_spec import HttpMethod
from e2e_harness.core.interfaces.di_interface import IServiceProvider


class BaseClient:
    """
    Base class for API clients.

    A client wraps one external resource or domain and exposes one async
    method per API operation. Each method issues exactly one request through
    `self.request(...)` and returns the ResponseEnvelope it produced.

    Subclasses may set `resource_prefix` so their paths are written relative
    to it, e.g. ``resource_prefix = "/users"`` and ``self.request("GET", "u1")``.
    """

    resource_prefix: str = ""

    def __init__(self, service_provider: IServiceProvider) -> None:
        self._builders: RequestBuilderFactory = service_provider.get_required_service(
            RequestBuilderFactory
        )

    @property
    def base_url(self) -> str:
        return self._builders.environment.base_url

    def path(self, resource: str = "") -> str:
        if not self.resource_prefix:
            return resource
        if not resource:
            return self.resource_prefix
        return f"{self.resource_prefix.rstrip('/')}/{resource.lstrip('/')}"

    def request(self, method: HttpMethod | str, resource: str = "") -> RequestBuilder:
        """Start a fresh builder for one call of this client."""
        return self._builders.request(method, self.path(resource))
