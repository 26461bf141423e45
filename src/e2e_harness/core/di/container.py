from __future__ import annotations

import inspect
import logging
import os
import threading
import types
from typing import Any, Union, get_args, get_origin

from e2e_harness.core.common.exceptions import (
    CircularDependencyError,
    UnregisteredTypeError,
)
from e2e_harness.core.interfaces.di_interface import (
    IServiceProvider,
    IServiceRegistry,
    ServiceFactory,
    ServiceLifetime,
    ServiceToken,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def token_name(token: ServiceToken) -> str:
    """Return a readable name for a service token."""
    if isinstance(token, str):
        return token
    return getattr(token, "__name__", str(token))


class ServiceDescriptor:
    """Describes a service registration in the container."""

    def __init__(
        self,
        service_type: ServiceToken,
        lifetime: ServiceLifetime,
        implementation_type: type | None = None,
        implementation_factory: ServiceFactory | None = None,
        instance: Any | None = None,
    ):
        """Initialize a service descriptor.

        Args:
            service_type: The token the service is registered under
            lifetime: The lifetime of the service
            implementation_type: The implementation type (if different from service_type)
            implementation_factory: Factory function to create the service
            instance: An existing instance (for singleton services)
        """
        if (
            implementation_type is None
            and implementation_factory is None
            and instance is None
            and isinstance(service_type, type)
        ):
            implementation_type = service_type

        if implementation_type is None and implementation_factory is None and instance is None:
            raise ValueError(
                "Either implementation_type, implementation_factory, or instance must be provided"
            )

        self.service_type = service_type
        self.lifetime = lifetime
        self.implementation_type = implementation_type
        self.implementation_factory = implementation_factory
        self.instance = instance

    def __repr__(self) -> str:
        return (
            f"<ServiceDescriptor {token_name(self.service_type)} "
            f"lifetime={self.lifetime.name}>"
        )


def _annotation_accepts_service_provider(annotation: Any) -> bool:
    if annotation is inspect.Parameter.empty:
        return False

    if annotation == IServiceProvider:
        return True

    if isinstance(annotation, str):
        return "IServiceProvider" in annotation.replace(" ", "")

    if isinstance(annotation, type) and issubclass(annotation, IServiceProvider):
        return True

    origin = get_origin(annotation)
    if origin in (types.UnionType, Union):
        return any(
            _annotation_accepts_service_provider(arg) for arg in get_args(annotation)
        )

    if origin is not None:
        return any(
            _annotation_accepts_service_provider(arg) for arg in get_args(annotation)
        )

    return False


def _factory_takes_provider(factory: ServiceFactory) -> bool:
    """Return True if the factory expects the provider as its argument."""
    try:
        signature = inspect.signature(factory)
    except (ValueError, TypeError):
        return True

    for param in signature.parameters.values():
        if param.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        ):
            return True
    return False


class ServiceContainer(IServiceProvider, IServiceRegistry):
    """Registry of construction rules plus the singleton cache.

    Registration may happen at any time; re-registering a token drops the
    singleton cached for it so the next resolution uses the new rule.
    Resolution is recursive: factories resolve their own dependencies from
    the container they are handed, and a token that reappears on the current
    resolution path raises CircularDependencyError.
    """

    def __init__(self) -> None:
        self._descriptors: dict[ServiceToken, ServiceDescriptor] = {}
        self._singleton_instances: dict[ServiceToken, Any] = {}
        self._lock = threading.RLock()
        self._local = threading.local()
        self._diagnostics = os.getenv("E2E_DI_DIAGNOSTICS", "false").lower() in (
            "true",
            "1",
            "yes",
        )

    # Registration

    def register(
        self,
        service_type: ServiceToken,
        implementation_factory: ServiceFactory | None = None,
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
        *,
        implementation_type: type | None = None,
    ) -> ServiceContainer:
        """Add or replace the construction rule for a token."""
        descriptor = ServiceDescriptor(
            service_type=service_type,
            lifetime=lifetime,
            implementation_type=implementation_type,
            implementation_factory=implementation_factory,
        )
        self._store(descriptor)
        return self

    def add_singleton(
        self,
        service_type: ServiceToken,
        implementation_type: type | None = None,
        implementation_factory: ServiceFactory | None = None,
    ) -> ServiceContainer:
        """Register a singleton service."""
        return self.register(
            service_type,
            implementation_factory,
            ServiceLifetime.SINGLETON,
            implementation_type=implementation_type,
        )

    def add_transient(
        self,
        service_type: ServiceToken,
        implementation_type: type | None = None,
        implementation_factory: ServiceFactory | None = None,
    ) -> ServiceContainer:
        """Register a transient service."""
        return self.register(
            service_type,
            implementation_factory,
            ServiceLifetime.TRANSIENT,
            implementation_type=implementation_type,
        )

    def add_instance(self, service_type: ServiceToken, instance: Any) -> ServiceContainer:
        """Register an existing instance as a singleton."""
        self._store(
            ServiceDescriptor(
                service_type=service_type,
                lifetime=ServiceLifetime.SINGLETON,
                instance=instance,
            )
        )
        return self

    def unregister(self, service_type: ServiceToken) -> None:
        with self._lock:
            self._descriptors.pop(service_type, None)
            self._singleton_instances.pop(service_type, None)

    def is_registered(self, service_type: ServiceToken) -> bool:
        return service_type in self._descriptors

    def get_descriptor(self, service_type: ServiceToken) -> ServiceDescriptor | None:
        return self._descriptors.get(service_type)

    def _store(self, descriptor: ServiceDescriptor) -> None:
        with self._lock:
            replaced = descriptor.service_type in self._descriptors
            self._descriptors[descriptor.service_type] = descriptor
            self._singleton_instances.pop(descriptor.service_type, None)
        logger.debug(
            "DI: %s %s (%s)",
            "re-registered" if replaced else "registered",
            token_name(descriptor.service_type),
            descriptor.lifetime.name.lower(),
        )

    # Resolution

    def resolve(self, service_type: ServiceToken) -> Any:
        """Resolve an instance according to the registered lifetime."""
        return self.get_required_service(service_type)

    def get_service(self, service_type: ServiceToken) -> Any | None:
        """Get a service of the given type if registered."""
        return self._get_service(service_type, required=False)

    def get_required_service(self, service_type: ServiceToken) -> Any:
        """Get a service of the given type, raising if not registered."""
        return self._get_service(service_type, required=True)

    def _resolution_path(self) -> list[ServiceToken]:
        path = getattr(self._local, "path", None)
        if path is None:
            path = []
            self._local.path = path
        return path

    def _get_service(self, service_type: ServiceToken, *, required: bool) -> Any:
        descriptor = self._descriptors.get(service_type)
        if descriptor is None:
            if self._diagnostics:
                logger.warning(
                    "DI: no descriptor for %s; registered=%d",
                    token_name(service_type),
                    len(self._descriptors),
                )
            if required:
                raise UnregisteredTypeError(service_name=token_name(service_type))
            return None

        if descriptor.instance is not None:
            return descriptor.instance

        if descriptor.lifetime == ServiceLifetime.SINGLETON:
            cached = self._singleton_instances.get(service_type, _MISSING)
            if cached is not _MISSING:
                return cached

        path = self._resolution_path()
        if service_type in path:
            start = path.index(service_type)
            cycle = [token_name(t) for t in path[start:]] + [token_name(service_type)]
            raise CircularDependencyError(cycle)

        path.append(service_type)
        try:
            if descriptor.lifetime == ServiceLifetime.SINGLETON:
                with self._lock:
                    cached = self._singleton_instances.get(service_type, _MISSING)
                    if cached is not _MISSING:
                        return cached
                    instance = self._create_instance(descriptor)
                    # Only cache if the rule was not replaced while constructing.
                    if self._descriptors.get(service_type) is descriptor:
                        self._singleton_instances[service_type] = instance
                    return instance

            return self._create_instance(descriptor)
        finally:
            path.pop()

    def _create_instance(self, descriptor: ServiceDescriptor) -> Any:
        """Create an instance of a service."""
        factory = descriptor.implementation_factory
        if factory is not None:
            if _factory_takes_provider(factory):
                return factory(self)  # type: ignore[call-arg]
            return factory()  # type: ignore[call-arg]

        impl_type = descriptor.implementation_type
        if impl_type is None:
            raise RuntimeError("Implementation type is None and no factory provided")

        try:
            signature = inspect.signature(impl_type)
            has_provider_param = any(
                param.name == "service_provider"
                and (
                    param.annotation is inspect.Parameter.empty
                    or _annotation_accepts_service_provider(param.annotation)
                )
                for param in signature.parameters.values()
            )
        except (ValueError, TypeError):
            has_provider_param = False

        if has_provider_param:
            return impl_type(service_provider=self)
        return impl_type()

    # Lifecycle

    def reset(self) -> None:
        """Drop every cached singleton; registrations are kept."""
        with self._lock:
            self._singleton_instances.clear()

    async def aclose(self) -> None:
        """Close cached singletons that own resources, then drop the cache."""
        with self._lock:
            instances = list(self._singleton_instances.values())
            self._singleton_instances.clear()

        for instance in instances:
            closer = getattr(instance, "aclose", None) or getattr(instance, "close", None)
            if not callable(closer):
                continue
            result = closer()
            if inspect.isawaitable(result):
                await result
