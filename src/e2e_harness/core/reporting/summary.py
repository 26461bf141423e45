from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from e2e_harness.core.interfaces.model_bases import InternalDTO

logger = logging.getLogger(__name__)

FAILED_OUTCOMES = frozenset({"failed", "error"})


@dataclass
class TestOutcome(InternalDTO):
    """Result of one executed test case."""

    __test__ = False  # not a pytest test class

    nodeid: str
    outcome: str
    duration: float = 0.0
    test_ids: list[str] = field(default_factory=list)
    message: str | None = None

    @property
    def failed(self) -> bool:
        return self.outcome in FAILED_OUTCOMES

    @property
    def label(self) -> str:
        if self.test_ids:
            return f"{', '.join(self.test_ids)} ({self.nodeid})"
        return self.nodeid


@dataclass
class RunSummary(InternalDTO):
    """Aggregated results of a test run, fed to reports and notifiers."""

    environment: str
    started_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    finished_at: str | None = None
    outcomes: list[TestOutcome] = field(default_factory=list)

    def record(self, outcome: TestOutcome) -> TestOutcome:
        """Add or merge the outcome of one phase of a test.

        A test keeps a single entry; a later failing phase (e.g. teardown
        after a passed call) turns it into an error.
        """
        for index, existing in enumerate(self.outcomes):
            if existing.nodeid != outcome.nodeid:
                continue
            merged = existing
            if outcome.failed and not existing.failed:
                merged = TestOutcome(
                    nodeid=existing.nodeid,
                    outcome=outcome.outcome,
                    duration=round(existing.duration + outcome.duration, 3),
                    test_ids=existing.test_ids or outcome.test_ids,
                    message=outcome.message,
                )
                self.outcomes[index] = merged
            return merged
        self.outcomes.append(outcome)
        return outcome

    def finish(self) -> None:
        self.finished_at = datetime.now(timezone.utc).isoformat()

    def count(self, outcome: str) -> int:
        return sum(1 for o in self.outcomes if o.outcome == outcome)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def failures(self) -> list[TestOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def passed(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["totals"] = {
            "total": self.total,
            "passed": self.count("passed"),
            "failed": self.count("failed"),
            "error": self.count("error"),
            "skipped": self.count("skipped"),
        }
        return data

    def render_text(self, max_failures: int = 10) -> str:
        """Plain-text summary used by the notifiers."""
        status = "PASSED" if self.passed else "FAILED"
        lines = [
            f"E2E run on {self.environment}: {status}",
            (
                f"{self.total} tests: {self.count('passed')} passed, "
                f"{self.count('failed')} failed, {self.count('error')} errors, "
                f"{self.count('skipped')} skipped"
            ),
        ]
        for failure in self.failures[:max_failures]:
            message = (failure.message or "").strip().splitlines()
            reason = message[-1] if message else failure.outcome
            lines.append(f"- {failure.label}: {reason}")
        hidden = len(self.failures) - max_failures
        if hidden > 0:
            lines.append(f"... and {hidden} more")
        return "\n".join(lines)

    def write_json(self, output_dir: str | Path, filename: str = "summary.json") -> Path:
        path = Path(output_dir)
        path.mkdir(parents=True, exist_ok=True)
        target = path / filename
        target.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        logger.info("Run summary written to %s", target)
        return target
