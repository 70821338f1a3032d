"""
Models for the test-subject registry.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class DriverClass(str, Enum):
    """Target component categories shared by groups of test subjects."""

    SOUND = "snd"
    NETWORK = "e1000"
    STORAGE = "ide"


class RecoveryOutcome(str, Enum):
    """Classification of a single trial."""

    AUTOMATIC = "automatic"
    MANUAL = "manual"
    FAILED = "failed"


@dataclass
class AppDefinition:
    """
    One test subject and its accumulated statistics.

    Counters only move forward while a campaign runs; they are zeroed by an
    explicit reset. ``is_running`` is owned by the control plane's runner.
    """

    id: int
    name: str
    driver_class: DriverClass
    trial_count: int = 0
    auto_recovery_count: int = 0
    manual_recovery_count: int = 0
    failed_recovery_count: int = 0
    is_running: bool = False

    def reset_counters(self) -> None:
        self.trial_count = 0
        self.auto_recovery_count = 0
        self.manual_recovery_count = 0
        self.failed_recovery_count = 0


def percentage(count: int, total: int) -> float:
    """Share of ``total`` as a percentage, one decimal, 0.0 when total is 0."""
    if total <= 0:
        return 0.0
    return round(count * 100.0 / total, 1)


class RecoveryStats(BaseModel):
    """Count and derived percentage for one outcome."""

    count: int = Field(ge=0)
    pct: float = Field(ge=0)


class AppSnapshot(BaseModel):
    """Read-only view of one registry entry."""

    id: int
    name: str
    driver_class: str
    is_running: bool
    trial_count: int
    automatic: RecoveryStats
    manual: RecoveryStats
    failed: RecoveryStats

    @classmethod
    def from_app(cls, app: AppDefinition) -> "AppSnapshot":
        total = app.trial_count
        return cls(
            id=app.id,
            name=app.name,
            driver_class=app.driver_class.value,
            is_running=app.is_running,
            trial_count=total,
            automatic=RecoveryStats(
                count=app.auto_recovery_count,
                pct=percentage(app.auto_recovery_count, total),
            ),
            manual=RecoveryStats(
                count=app.manual_recovery_count,
                pct=percentage(app.manual_recovery_count, total),
            ),
            failed=RecoveryStats(
                count=app.failed_recovery_count,
                pct=percentage(app.failed_recovery_count, total),
            ),
        )
