"""
Common exception classes for the e2e harness.

This module defines the error taxonomy shared by the request builder, the
service container and the run collaborators.
"""

from __future__ import annotations

from typing import Any


class HarnessError(Exception):
    """Base exception class for all harness errors."""

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        **kwargs: Any,
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        for key, value in (kwargs or {}).items():
            setattr(self, key, value)

    def to_dict(self) -> dict:
        error_dict = {
            "message": self.message,
            "type": self.__class__.__name__,
            "details": self.details,
        }

        for attr_name in dir(self):
            if (
                not attr_name.startswith("_")
                and attr_name not in ["message", "details", "args"]
                and not callable(getattr(self, attr_name))
            ):
                error_dict[attr_name] = getattr(self, attr_name)

        return {"error": error_dict}


class TransportError(HarnessError):
    """Raised when the network exchange itself cannot complete."""

    def __init__(
        self,
        message: str = "Transport failure",
        method: str | None = None,
        url: str | None = None,
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)
        self.method = method
        self.url = url


class SerializationError(HarnessError):
    """Raised when a response body cannot be parsed into the declared shape."""

    def __init__(
        self,
        message: str = "Response body does not match the declared shape",
        status_code: int | None = None,
        expected: str | None = None,
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)
        self.status_code = status_code
        self.expected = expected


class RequestBuildError(HarnessError):
    """Raised when a request is assembled or dispatched incorrectly."""

    def __init__(
        self, message: str = "Invalid request", details: dict | None = None, **kwargs
    ):
        super().__init__(message, details, **kwargs)


class ConfigurationError(HarnessError):
    """Raised when there's a configuration issue."""

    def __init__(
        self,
        message: str = "Configuration error",
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)


class ServiceResolutionError(HarnessError):
    """Raised when service resolution fails in the DI container."""

    def __init__(
        self,
        message: str = "Service resolution failed",
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)


class UnregisteredTypeError(ServiceResolutionError):
    """Raised when resolving a token that has no registration."""

    def __init__(
        self,
        message: str | None = None,
        service_name: str | None = None,
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(
            message or f"No service registered for {service_name}", details, **kwargs
        )
        self.service_name = service_name


class CircularDependencyError(ServiceResolutionError):
    """Raised when the resolution path revisits a token."""

    def __init__(
        self,
        cycle: list[str],
        message: str | None = None,
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(
            message or f"Circular dependency detected: {' -> '.join(cycle)}",
            details,
            **kwargs,
        )
        self.cycle = cycle


class NotificationError(HarnessError):
    """Raised when a post-run notification cannot be delivered."""

    def __init__(
        self,
        message: str = "Notification delivery failed",
        channel: str | None = None,
        details: dict | None = None,
        **kwargs: Any,
    ):
        super().__init__(message, details, **kwargs)
        self.channel = channel
