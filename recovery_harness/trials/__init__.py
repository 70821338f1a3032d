"""
Trial execution: campaign runner, state machine and health predicates.
"""

from recovery_harness.trials.health import (
    FlakyHealthCheck,
    HealthCheck,
    ScriptedHealthCheck,
    always_fail,
    always_pass,
    build_health_check,
)
from recovery_harness.trials.models import (
    CampaignConfig,
    RunnerState,
    TrialResult,
    TrialState,
)
from recovery_harness.trials.runner import TrialRunner

__all__ = [
    "CampaignConfig",
    "FlakyHealthCheck",
    "HealthCheck",
    "RunnerState",
    "ScriptedHealthCheck",
    "TrialResult",
    "TrialRunner",
    "TrialState",
    "always_fail",
    "always_pass",
    "build_health_check",
]
