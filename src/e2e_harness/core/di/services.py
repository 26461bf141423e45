"""
Services and DI container configuration.

This module registers the harness services into a container and holds the
process-wide container of a test run. Each worker process initializes its
own container at run start and resets it at teardown; nothing is shared
between workers.
"""

from __future__ import annotations

import logging

import httpx

from e2e_harness.core.common.exceptions import ConfigurationError
from e2e_harness.core.config.app_config import HarnessConfig
from e2e_harness.core.di.container import ServiceContainer
from e2e_harness.core.http.builder import RequestBuilderFactory
from e2e_harness.core.http.exchange import ExchangeRecorder
from e2e_harness.core.interfaces.di_interface import IServiceProvider, ServiceLifetime
from e2e_harness.core.layers.base_action import BaseAction
from e2e_harness.core.layers.base_client import BaseClient

logger = logging.getLogger(__name__)

# Process-wide container
_service_container: ServiceContainer | None = None


def _request_builder_factory(provider: IServiceProvider) -> RequestBuilderFactory:
    """Create the RequestBuilderFactory for the active environment."""
    config: HarnessConfig = provider.get_required_service(HarnessConfig)
    return RequestBuilderFactory(
        config.active_environment,
        client=provider.get_service(httpx.AsyncClient),
        recorder=provider.get_service(ExchangeRecorder),
        body_limit=config.logging.body_limit,
    )


def register_harness_services(
    container: ServiceContainer, config: HarnessConfig
) -> ServiceContainer:
    """Register the configuration and the request plumbing."""
    container.add_instance(HarnessConfig, config)
    container.add_singleton(ExchangeRecorder)
    container.add_singleton(
        RequestBuilderFactory, implementation_factory=_request_builder_factory
    )
    return container


def register_client(
    container: ServiceContainer,
    client_type: type[BaseClient],
    lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
) -> ServiceContainer:
    """Register an API client; clients are stateless and shared by default."""
    return container.register(client_type, lifetime=lifetime)


def register_action(
    container: ServiceContainer,
    action_type: type[BaseAction],
    lifetime: ServiceLifetime = ServiceLifetime.TRANSIENT,
) -> ServiceContainer:
    """Register an action; actions are built fresh per resolution by default."""
    return container.register(action_type, lifetime=lifetime)


def init_service_container(config: HarnessConfig) -> ServiceContainer:
    """Create this process's container and register the harness services."""
    global _service_container
    if _service_container is not None:
        logger.warning("Service container re-initialized; dropping cached services")
        _service_container.reset()
    _service_container = register_harness_services(ServiceContainer(), config)
    logger.debug(
        "Service container initialized for environment %s", config.environment.value
    )
    return _service_container


def get_service_container() -> ServiceContainer:
    """Return the process-wide container.

    Raises:
        ConfigurationError: init_service_container() was not called
    """
    if _service_container is None:
        raise ConfigurationError(
            "Service container is not initialized; call init_service_container() first"
        )
    return _service_container


def set_service_container(container: ServiceContainer | None) -> None:
    """Set the process-wide container (used for tests/late init)."""
    global _service_container
    _service_container = container


def reset_service_container() -> None:
    """Drop the process-wide container and its cached singletons."""
    global _service_container
    if _service_container is not None:
        _service_container.reset()
    _service_container = None


async def shutdown_service_container() -> None:
    """Close resource-owning singletons, then drop the container."""
    global _service_container
    container, _service_container = _service_container, None
    if container is not None:
        await container.aclose()
