import json
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from e2e_harness.core.common.exceptions import SerializationError
from e2e_harness.core.http.request_spec import RequestSpec
from e2e_harness.core.interfaces.model_bases import InternalDTO

T = TypeVar("T")


@dataclass
class ResponseEnvelope(InternalDTO, Generic[T]):
    """Uniform result of a completed HTTP exchange.

    A completed exchange produces an envelope whatever the status code; a
    4xx/5xx is reported through status_code, not raised. `data` holds the
    body deserialized into the declared shape for 2xx responses and is None
    for error, empty, or unparseable bodies, in which case raw_body still
    carries the payload.
    """

    status_code: int
    data: T | None = None
    headers: dict[str, str] = field(default_factory=dict)
    raw_body: bytes | None = None
    serialization_error: SerializationError | None = None
    elapsed_ms: float = 0.0
    request: RequestSpec | None = None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        if not self.raw_body:
            return ""
        return self.raw_body.decode("utf-8", errors="replace")

    def header(self, name: str, default: str | None = None) -> str | None:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def json(self) -> Any:
        """Decode the raw body as JSON, whatever the status code."""
        if not self.raw_body:
            return None
        try:
            return json.loads(self.raw_body)
        except ValueError as e:
            raise SerializationError(
                f"Response body is not valid JSON: {e}",
                status_code=self.status_code,
                expected="json",
            ) from e

    def require_data(self) -> T:
        """Return `data` or raise the reason it is missing."""
        if self.serialization_error is not None:
            raise self.serialization_error
        if self.data is None:
            raise SerializationError(
                f"Response with status {self.status_code} carries no data",
                status_code=self.status_code,
            )
        return self.data
