from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum, auto
from typing import Any, TypeVar, Union

T = TypeVar("T")

# A class (usually an interface) or a plain string name.
ServiceToken = Union[type, str]

ServiceFactory = Union[Callable[[], Any], Callable[["IServiceProvider"], Any]]


class ServiceLifetime(Enum):
    """Defines the lifetime of a service in the container."""

    TRANSIENT = auto()
    SINGLETON = auto()


class IServiceProvider(ABC):
    @abstractmethod
    def get_service(self, service_type: ServiceToken) -> Any | None:
        pass

    @abstractmethod
    def get_required_service(self, service_type: ServiceToken) -> Any:
        pass

    def get_required_service_or_default(
        self, service_type: ServiceToken, default_factory: Callable[[], T]
    ) -> Any:
        """Get a service of the given type, using a default factory if not found.

        Args:
            service_type: The token of the service to get
            default_factory: Factory function to create a default instance if not registered

        Returns:
            The registered service or a default instance
        """
        service = self.get_service(service_type)
        if service is None:
            return default_factory()
        return service


class IServiceRegistry(ABC):
    @abstractmethod
    def register(
        self,
        service_type: ServiceToken,
        implementation_factory: ServiceFactory | None = None,
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
        *,
        implementation_type: type | None = None,
    ) -> IServiceRegistry:
        pass

    @abstractmethod
    def add_singleton(
        self,
        service_type: ServiceToken,
        implementation_type: type | None = None,
        implementation_factory: ServiceFactory | None = None,
    ) -> IServiceRegistry:
        pass

    @abstractmethod
    def add_transient(
        self,
        service_type: ServiceToken,
        implementation_type: type | None = None,
        implementation_factory: ServiceFactory | None = None,
    ) -> IServiceRegistry:
        pass

    @abstractmethod
    def add_instance(self, service_type: ServiceToken, instance: Any) -> IServiceRegistry:
        pass
