"""
Models for trial execution.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from recovery_harness.registry.models import RecoveryOutcome


class TrialState(str, Enum):
    """States of the per-trial state machine."""

    STEADY_STATE = "steady_state"
    FAULT_INJECTED = "fault_injected"
    AWAITING_RECOVERY = "awaiting_recovery"
    VERIFY = "verify"
    AUTO_SUCCESS = "auto_success"
    MANUAL_ATTEMPT = "manual_attempt"
    MANUAL_SUCCESS = "manual_success"
    MANUAL_FAILED = "manual_failed"
    COOLDOWN = "cooldown"
    STOPPED = "stopped"


class CampaignConfig(BaseModel):
    """Shape and timing of one campaign."""

    max_trials: int = Field(default=400, ge=1)
    workload_steps: int = Field(default=10, ge=1)
    poll_interval_s: float = Field(default=0.1, gt=0)
    recovery_wait_s: float = Field(default=2.0, ge=0)
    manual_recovery_wait_s: float = Field(default=1.0, ge=0)
    cooldown_s: float = Field(default=1.0, ge=0)
    history_size: int = Field(default=50, ge=1)
    # Grace period for a cooperative stop before the task is cancelled outright
    stop_timeout_s: float = Field(default=10.0, gt=0)

    @classmethod
    def from_settings(cls, settings: Any) -> "CampaignConfig":
        return cls(
            max_trials=settings.max_trials,
            workload_steps=settings.workload_steps,
            poll_interval_s=settings.poll_interval_s,
            recovery_wait_s=settings.recovery_wait_s,
            manual_recovery_wait_s=settings.manual_recovery_wait_s,
            cooldown_s=settings.cooldown_s,
            history_size=settings.history_size,
        )


@dataclass
class TrialResult:
    """Classified result of one completed trial."""

    trial: int
    label: str
    outcome: RecoveryOutcome
    started_at: datetime
    finished_at: datetime

    @property
    def duration_s(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def success(self) -> bool:
        return self.outcome != RecoveryOutcome.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {
            "trial": self.trial,
            "label": self.label,
            "outcome": self.outcome.value,
            "success": self.success,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "duration_s": round(self.duration_s, 3),
        }


class RunnerState(BaseModel):
    """Status view of a trial runner."""

    app_id: int
    app_name: str
    run_id: str
    state: TrialState
    trial: int
    max_trials: int
    active: bool
    stop_requested: bool
    campaign: dict[str, Any] = Field(default_factory=dict)
    recent_results: list[dict[str, Any]] = Field(default_factory=list)
