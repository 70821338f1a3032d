"""
RecoveryEvaluatorClient interface.

Defines the contract between the trial runner and the recovery evaluator
(the event log that records phase transitions and timing of each test).
"""

from abc import ABC, abstractmethod
from enum import Enum


class Phase(str, Enum):
    """Recovery lifecycle milestones reported to the evaluator."""

    FAILURE_DETECTED = "failure_detected"
    DRIVER_RESTARTING = "driver_restarting"
    RECOVERY_COMPLETE = "recovery_complete"
    RECOVERY_FAILED = "recovery_failed"


class RecoveryEvaluatorClient(ABC):
    """
    Abstract base class for recovery evaluator backends.

    Test records are opened with ``start_test`` and closed with ``end_test``;
    a runner never has two records open at once.
    """

    @abstractmethod
    async def start_test(self, label: str, driver_class: str) -> str:
        """
        Open a named test record.

        Returns:
            Handle identifying the record.
        """

    @abstractmethod
    async def add_event(self, handle: str | None, phase: Phase, message: str) -> None:
        """
        Attach a phase event to a test record.

        Args:
            handle: Record handle, or None for the currently open record
            phase: Lifecycle phase
            message: Formatted description
        """

    @abstractmethod
    async def end_test(self, success: bool) -> None:
        """Close the most recently opened test record."""

    async def close(self) -> None:
        """Release backend resources."""
        return None
