"""
Run context for tracking campaigns.

Provides unique campaign IDs and per-campaign bookkeeping.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4


def generate_run_id(prefix: str = "campaign") -> str:
    """
    Generate a unique run ID.

    Format: {prefix}_{timestamp}_{uuid8}
    Example: campaign_20240115_143022_a1b2c3d4
    """
    timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
    short_uuid = uuid4().hex[:8]
    return f"{prefix}_{timestamp}_{short_uuid}"


class StopReason(str, Enum):
    """Why a campaign ended."""

    COMPLETED = "completed"  # trial limit reached
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass
class CampaignContext:
    """
    Bookkeeping for one campaign.

    Lives as long as the runner that owns it.
    """

    run_id: str
    app_id: int
    app_name: str
    max_trials: int
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    trials_completed: int = 0
    trials_abandoned: int = 0
    finished_at: datetime | None = None
    stop_reason: StopReason | None = None
    error: str | None = None

    @classmethod
    def create(cls, app_id: int, app_name: str, max_trials: int) -> "CampaignContext":
        return cls(
            run_id=generate_run_id("campaign"),
            app_id=app_id,
            app_name=app_name,
            max_trials=max_trials,
        )

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None

    def mark_finished(self, reason: StopReason, error: str | None = None) -> None:
        """Mark the campaign as finished."""
        self.finished_at = datetime.now(UTC)
        self.stop_reason = reason
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "run_id": self.run_id,
            "app_id": self.app_id,
            "app_name": self.app_name,
            "max_trials": self.max_trials,
            "started_at": self.started_at.isoformat(),
            "trials_completed": self.trials_completed,
            "trials_abandoned": self.trials_abandoned,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "stop_reason": self.stop_reason.value if self.stop_reason else None,
            "error": self.error,
        }
