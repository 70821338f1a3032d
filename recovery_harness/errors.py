"""
Exception hierarchy for the recovery harness.

Trial-level recovery failures are measured outcomes, not exceptions; the
classes here cover harness misuse and resource problems only.
"""


class HarnessError(Exception):
    """Base class for harness errors."""


class AppNotFoundError(HarnessError, IndexError):
    """App id does not resolve to a registry entry."""

    def __init__(self, app_id: object, size: int):
        self.app_id = app_id
        self.size = size
        super().__init__(f"App id {app_id!r} out of range [0, {size})")


class CampaignConflictError(HarnessError):
    """A campaign is already active."""

    def __init__(self, message: str, running_app_id: int | None = None):
        self.running_app_id = running_app_id
        super().__init__(message)


class CampaignStartError(HarnessError):
    """The background task for a campaign could not be created."""


class EvaluatorError(HarnessError):
    """The recovery evaluator rejected a call (e.g. overlapping test records)."""
