"""
In-memory recovery evaluator.

Keeps a bounded log of test records with their phase events and timing.
Used when no external evaluator backend is configured, and in tests.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from recovery_harness.errors import EvaluatorError
from recovery_harness.evaluator.client import Phase, RecoveryEvaluatorClient
from recovery_harness.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PhaseEvent:
    """Timestamped phase notification."""

    phase: Phase
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TestRecord:
    """One evaluator test record."""

    __test__ = False  # not a pytest test class

    handle: str
    label: str
    driver_class: str
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    events: list[PhaseEvent] = field(default_factory=list)
    ended_at: datetime | None = None
    success: bool | None = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def recovery_time_s(self) -> float | None:
        """Seconds from failure detection to the final recovery phase."""
        detected = next(
            (e.timestamp for e in self.events if e.phase == Phase.FAILURE_DETECTED),
            None,
        )
        finished = next(
            (
                e.timestamp
                for e in reversed(self.events)
                if e.phase in (Phase.RECOVERY_COMPLETE, Phase.RECOVERY_FAILED)
            ),
            None,
        )
        if detected is None or finished is None:
            return None
        return (finished - detected).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "handle": self.handle,
            "label": self.label,
            "driver_class": self.driver_class,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "success": self.success,
            "recovery_time_s": self.recovery_time_s,
            "events": [e.to_dict() for e in self.events],
        }


class InMemoryEvaluatorClient(RecoveryEvaluatorClient):
    """
    Evaluator that stores test records in memory.

    Enforces the open/close discipline: opening a record while another is
    open, or closing/annotating with nothing open, raises EvaluatorError.
    """

    def __init__(self, capacity: int = 500) -> None:
        self._records: deque[TestRecord] = deque(maxlen=capacity)
        self._by_handle: dict[str, TestRecord] = {}
        self._current: TestRecord | None = None

    @property
    def current(self) -> TestRecord | None:
        return self._current

    @property
    def records(self) -> list[TestRecord]:
        return list(self._records)

    async def start_test(self, label: str, driver_class: str) -> str:
        if self._current is not None:
            raise EvaluatorError(
                f"Cannot start '{label}': test '{self._current.label}' is still open"
            )

        record = TestRecord(handle=uuid4().hex[:12], label=label, driver_class=driver_class)
        if len(self._records) == self._records.maxlen:
            evicted = self._records[0]
            self._by_handle.pop(evicted.handle, None)
        self._records.append(record)
        self._by_handle[record.handle] = record
        self._current = record
        logger.debug("Evaluator test started: %s (%s)", label, driver_class)
        return record.handle

    async def add_event(self, handle: str | None, phase: Phase, message: str) -> None:
        if handle is None:
            record = self._current
            if record is None:
                raise EvaluatorError(f"No open test for {Phase(phase).value} event")
        else:
            record = self._by_handle.get(handle)
            if record is None:
                raise EvaluatorError(f"Unknown test handle: {handle}")

        record.events.append(PhaseEvent(phase=Phase(phase), message=message))
        logger.debug("Evaluator event %s: %s", Phase(phase).value, message)

    async def end_test(self, success: bool) -> None:
        record = self._current
        if record is None:
            raise EvaluatorError("No open test to end")

        record.ended_at = datetime.now(UTC)
        record.success = success
        self._current = None
        logger.debug("Evaluator test ended: %s success=%s", record.label, success)

    def recent(self, limit: int = 20) -> list[TestRecord]:
        """Most recent records, newest last."""
        if limit <= 0:
            return []
        return list(self._records)[-limit:]

    def summary(self) -> dict[str, Any]:
        """Aggregate counts over the stored records."""
        closed = [r for r in self._records if not r.is_open]
        times = [t for t in (r.recovery_time_s for r in closed) if t is not None]
        return {
            "records": len(self._records),
            "open": self._current is not None,
            "succeeded": sum(1 for r in closed if r.success),
            "failed": sum(1 for r in closed if r.success is False),
            "avg_recovery_time_s": round(sum(times) / len(times), 3) if times else None,
        }

    async def close(self) -> None:
        if self._current is not None:
            logger.warning("Evaluator closed with open test '%s'", self._current.label)
