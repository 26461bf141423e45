from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic_core import to_jsonable_python

from e2e_harness.core.interfaces.model_bases import InternalDTO


class HttpMethod(str, Enum):
    """HTTP verbs the request builder can send."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


# Verbs that must not carry a request body
BODYLESS_METHODS = frozenset({HttpMethod.GET, HttpMethod.HEAD})


class HeaderMap(MutableMapping[str, str]):
    """Ordered header mapping with case-insensitive names.

    Setting an existing name replaces its value and keeps the casing the
    name was first written with.
    """

    def __init__(self, headers: Mapping[str, str] | None = None) -> None:
        self._items: dict[str, tuple[str, str]] = {}
        if headers:
            self.update(headers)

    def __setitem__(self, name: str, value: str) -> None:
        key = name.lower()
        existing = self._items.get(key)
        display = existing[0] if existing is not None else name
        self._items[key] = (display, str(value))

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __delitem__(self, name: str) -> None:
        del self._items[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return (display for display, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __repr__(self) -> str:
        return f"HeaderMap({dict(self.items())!r})"

    def copy(self) -> HeaderMap:
        return HeaderMap(self)


def join_url(base_url: str | None, resource_path: str) -> str:
    """Resolve a resource path against the environment base URL."""
    if resource_path.startswith(("http://", "https://")):
        return resource_path
    if not base_url:
        raise ValueError(f"No base URL to resolve '{resource_path}' against")
    return f"{base_url.rstrip('/')}/{resource_path.lstrip('/')}"


@dataclass(frozen=True)
class RequestSpec(InternalDTO):
    """An assembled request; immutable once built."""

    method: HttpMethod
    resource_path: str
    base_url: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    payload: Any | None = None
    query: Mapping[str, Any] = field(default_factory=dict)
    timeout: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "query", MappingProxyType(dict(self.query)))

    @property
    def url(self) -> str:
        return join_url(self.base_url, self.resource_path)

    def body_kwargs(self) -> dict[str, Any]:
        """Return the httpx keyword carrying the payload, if any."""
        if self.payload is None:
            return {}
        if isinstance(self.payload, (bytes, str)):
            return {"content": self.payload}
        return {"json": to_jsonable_python(self.payload, by_alias=True)}

    def to_httpx_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "method": self.method.value,
            "url": self.url,
            "headers": dict(self.headers),
        }
        if self.query:
            kwargs["params"] = dict(self.query)
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        kwargs.update(self.body_kwargs())
        return kwargs
