"""
Recovery evaluator contract and the in-memory implementation.
"""

from recovery_harness.evaluator.client import Phase, RecoveryEvaluatorClient
from recovery_harness.evaluator.memory import (
    InMemoryEvaluatorClient,
    PhaseEvent,
    TestRecord,
)

__all__ = [
    "InMemoryEvaluatorClient",
    "Phase",
    "PhaseEvent",
    "RecoveryEvaluatorClient",
    "TestRecord",
]
