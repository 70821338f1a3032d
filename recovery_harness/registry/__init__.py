"""
Test-subject registry and recovery statistics.
"""

from recovery_harness.registry.models import (
    AppDefinition,
    AppSnapshot,
    DriverClass,
    RecoveryOutcome,
    RecoveryStats,
)
from recovery_harness.registry.store import AppRegistry

__all__ = [
    "AppDefinition",
    "AppRegistry",
    "AppSnapshot",
    "DriverClass",
    "RecoveryOutcome",
    "RecoveryStats",
]
