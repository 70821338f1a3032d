"""
Runtime utilities for the recovery harness.

Provides:
- Event bus for internal pub/sub
- Campaign IDs and per-campaign context
"""

from recovery_harness.runtime.event_bus import Event, EventBus, EventType
from recovery_harness.runtime.run_context import (
    CampaignContext,
    StopReason,
    generate_run_id,
)

__all__ = [
    # Event bus
    "Event",
    "EventBus",
    "EventType",
    # Run context
    "CampaignContext",
    "StopReason",
    "generate_run_id",
]
