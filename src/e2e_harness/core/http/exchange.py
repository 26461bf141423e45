"""
Exchange records.

One ExchangeRecord is produced for every request/response pair sent by the
request builder. Records are written to the ``e2e_harness.http`` logger and
kept by the ExchangeRecorder so the test runner can attach them to the
report of the test that issued them.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from e2e_harness.core.common.logging_utils import redact_dict, truncate
from e2e_harness.core.interfaces.model_bases import InternalDTO

exchange_logger = logging.getLogger("e2e_harness.http")


def _body_preview(body: Any, limit: int) -> str | None:
    if body is None:
        return None
    if isinstance(body, bytes):
        text = body.decode("utf-8", errors="replace")
    elif isinstance(body, str):
        text = body
    else:
        if isinstance(body, dict):
            body = redact_dict(body)
        try:
            text = json.dumps(body, default=str)
        except (TypeError, ValueError):
            text = repr(body)
    return truncate(text, limit)


@dataclass
class ExchangeRecord(InternalDTO):
    """Diagnostic summary of one HTTP exchange."""

    method: str
    url: str
    status_code: int | None = None
    elapsed_ms: float = 0.0
    request_headers: dict[str, str] = field(default_factory=dict)
    response_headers: dict[str, str] = field(default_factory=dict)
    request_body: str | None = None
    response_body: str | None = None
    error: str | None = None
    test_id: str | None = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    @classmethod
    def create(
        cls,
        method: str,
        url: str,
        *,
        status_code: int | None = None,
        elapsed_ms: float = 0.0,
        request_headers: dict[str, str] | None = None,
        response_headers: dict[str, str] | None = None,
        request_body: Any = None,
        response_body: Any = None,
        error: str | None = None,
        body_limit: int = 2048,
    ) -> ExchangeRecord:
        """Build a record with redacted headers and truncated bodies."""
        return cls(
            method=method,
            url=url,
            status_code=status_code,
            elapsed_ms=round(elapsed_ms, 2),
            request_headers=redact_dict(dict(request_headers or {})),
            response_headers=redact_dict(dict(response_headers or {})),
            request_body=_body_preview(request_body, body_limit),
            response_body=_body_preview(response_body, body_limit),
            error=error,
        )

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def summary(self) -> str:
        outcome = self.error if self.failed else str(self.status_code)
        return f"{self.method} {self.url} -> {outcome} ({self.elapsed_ms:.1f} ms)"

    def format(self) -> str:
        """Multi-line rendering used in test report sections."""
        lines = [self.summary()]
        if self.request_headers:
            lines.append(f"  request headers: {self.request_headers}")
        if self.request_body:
            lines.append(f"  request body: {self.request_body}")
        if self.response_headers:
            lines.append(f"  response headers: {self.response_headers}")
        if self.response_body:
            lines.append(f"  response body: {self.response_body}")
        return "\n".join(lines)


def log_exchange(record: ExchangeRecord) -> None:
    """Emit the record through the logging collaborator."""
    if record.failed:
        exchange_logger.error(record.summary(), extra={"exchange": record.to_dict()})
    else:
        exchange_logger.info(record.summary(), extra={"exchange": record.to_dict()})
        if exchange_logger.isEnabledFor(logging.DEBUG):
            exchange_logger.debug(record.format())


class ExchangeRecorder:
    """Collects exchange records per test for report attachment."""

    def __init__(self) -> None:
        self._records: list[ExchangeRecord] = []
        self._current_test: str | None = None
        self._lock = threading.Lock()

    @property
    def current_test(self) -> str | None:
        return self._current_test

    def begin_test(self, test_id: str | None) -> None:
        self._current_test = test_id

    def end_test(self) -> None:
        self._current_test = None

    def record(self, record: ExchangeRecord) -> None:
        if record.test_id is None:
            record.test_id = self._current_test
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> list[ExchangeRecord]:
        with self._lock:
            return list(self._records)

    def records_for(self, test_id: str) -> list[ExchangeRecord]:
        with self._lock:
            return [r for r in self._records if r.test_id == test_id]

    def pop_records_for(self, test_id: str) -> list[ExchangeRecord]:
        with self._lock:
            taken = [r for r in self._records if r.test_id == test_id]
            self._records = [r for r in self._records if r.test_id != test_id]
        return taken

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
