"""
In-process event bus for campaign progress.

The trial runner and control plane publish; observers (tests, the
``/harness/events`` endpoint, future push channels) subscribe. The bus
also keeps a short journal of recent events.
"""

import asyncio
from collections import deque
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from recovery_harness.logging import get_logger

logger = get_logger(__name__)


class EventType(str, Enum):
    HARNESS_STARTED = "harness.started"
    HARNESS_STOPPED = "harness.stopped"

    CAMPAIGN_STARTED = "campaign.started"
    CAMPAIGN_STOPPED = "campaign.stopped"

    TRIAL_STARTED = "trial.started"
    TRIAL_PHASE = "trial.phase"
    TRIAL_COMPLETED = "trial.completed"

    STATS_RESET = "stats.reset"


@dataclass(frozen=True)
class Event:
    type: EventType
    data: dict[str, Any] = field(default_factory=dict, hash=False)
    run_id: str | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "run_id": self.run_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


EventHandler = Callable[[Event], Coroutine[Any, Any, None]]


class EventBus:
    """
    Async fan-out to subscribers.

    A handler that raises is logged and skipped; the publisher never sees
    the error.
    """

    def __init__(self, journal_size: int = 500) -> None:
        self._handlers: dict[EventType | None, list[EventHandler]] = {}
        self._journal: deque[Event] = deque(maxlen=journal_size)

    async def subscribe(self, event_type: EventType | None, handler: EventHandler) -> None:
        """Register ``handler`` for one event type, or for every type when None."""
        self._handlers.setdefault(event_type, []).append(handler)

    async def unsubscribe(self, event_type: EventType | None, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: Event) -> None:
        self._journal.append(event)

        handlers = [*self._handlers.get(event.type, []), *self._handlers.get(None, [])]
        if not handlers:
            return

        results = await asyncio.gather(
            *(handler(event) for handler in handlers), return_exceptions=True
        )
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Event handler %s failed on %s: %s",
                    getattr(handler, "__name__", repr(handler)),
                    event.type.value,
                    result,
                )

    def recent(
        self,
        limit: int = 50,
        event_type: EventType | None = None,
        run_id: str | None = None,
    ) -> list[Event]:
        """Journaled events, oldest first, optionally filtered."""
        events = [
            e
            for e in self._journal
            if (event_type is None or e.type == event_type)
            and (run_id is None or e.run_id == run_id)
        ]
        return events[-limit:] if limit > 0 else []

    def clear(self) -> None:
        self._handlers.clear()
        self._journal.clear()


_event_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Drop the process-wide bus (tests)."""
    global _event_bus
    _event_bus = None
