"""Scaffolding for end-to-end tests against HTTP APIs."""

from e2e_harness.core.common.exceptions import (
    CircularDependencyError,
    ConfigurationError,
    HarnessError,
    RequestBuildError,
    SerializationError,
    TransportError,
    UnregisteredTypeError,
)
from e2e_harness.core.di.container import ServiceContainer
from e2e_harness.core.di.services import (
    get_service_container,
    init_service_container,
    register_action,
    register_client,
    reset_service_container,
)
from e2e_harness.core.http.builder import RequestBuilder, RequestBuilderFactory
from e2e_harness.core.http.request_spec import HttpMethod, RequestSpec
from e2e_harness.core.http.response import ResponseEnvelope
from e2e_harness.core.interfaces.di_interface import IServiceProvider, ServiceLifetime
from e2e_harness.core.layers.base_action import BaseAction
from e2e_harness.core.layers.base_client import BaseClient

__version__ = "0.1.0"

__all__ = [
    "BaseAction",
    "BaseClient",
    "CircularDependencyError",
    "ConfigurationError",
    "HarnessError",
    "HttpMethod",
    "IServiceProvider",
    "RequestBuildError",
    "RequestBuilder",
    "RequestBuilderFactory",
    "RequestSpec",
    "ResponseEnvelope",
    "SerializationError",
    "ServiceContainer",
    "ServiceLifetime",
    "TransportError",
    "UnregisteredTypeError",
    "get_service_container",
    "init_service_container",
    "register_action",
    "register_client",
    "reset_service_container",
]
