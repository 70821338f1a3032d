"""
In-memory registry of test subjects and their recovery statistics.
"""

from collections.abc import Iterable, Iterator

from recovery_harness.errors import AppNotFoundError
from recovery_harness.logging import get_logger
from recovery_harness.registry.models import (
    AppDefinition,
    AppSnapshot,
    DriverClass,
    RecoveryOutcome,
)
from recovery_harness.registry.seed import DEFAULT_APPS

logger = get_logger(__name__)


class AppRegistry:
    """
    Authoritative list of test subjects.

    Ownership: counters of an entry are written only by the TrialRunner
    bound to it; the control plane flips ``is_running`` and issues resets.
    Reads (``report``) take no lock.
    """

    def __init__(self, apps: Iterable[tuple[str, DriverClass]] | None = None) -> None:
        """
        Initialize registry.

        Args:
            apps: (name, driver_class) pairs in registration order.
                Defaults to the seeded application set.
        """
        entries = list(DEFAULT_APPS if apps is None else apps)
        names = [name for name, _ in entries]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate app names: {', '.join(duplicates)}")

        self._apps: list[AppDefinition] = [
            AppDefinition(id=i, name=name, driver_class=DriverClass(driver_class))
            for i, (name, driver_class) in enumerate(entries)
        ]
        logger.debug("AppRegistry initialized with %d apps", len(self._apps))

    def __len__(self) -> int:
        return len(self._apps)

    def __iter__(self) -> Iterator[AppDefinition]:
        return iter(self._apps)

    def contains(self, app_id: object) -> bool:
        """Check whether ``app_id`` resolves to an entry."""
        return (
            isinstance(app_id, int)
            and not isinstance(app_id, bool)
            and 0 <= app_id < len(self._apps)
        )

    def get(self, app_id: int) -> AppDefinition:
        """
        Get an app by id.

        Raises:
            AppNotFoundError: If ``app_id`` is not in [0, N).
        """
        if not self.contains(app_id):
            raise AppNotFoundError(app_id, len(self._apps))
        return self._apps[app_id]

    def running_app(self) -> AppDefinition | None:
        """Return the entry currently owned by a runner, if any."""
        for app in self._apps:
            if app.is_running:
                return app
        return None

    def mark_running(self, app_id: int, running: bool) -> None:
        """Set the running flag; the caller guarantees single-flight."""
        self.get(app_id).is_running = running

    def record_outcome(self, app_id: int, outcome: RecoveryOutcome) -> None:
        """Count one classified trial for an app."""
        app = self.get(app_id)
        outcome = RecoveryOutcome(outcome)
        # trial_count and the outcome counter move together so the sum holds
        if outcome is RecoveryOutcome.AUTOMATIC:
            app.auto_recovery_count += 1
        elif outcome is RecoveryOutcome.MANUAL:
            app.manual_recovery_count += 1
        else:
            app.failed_recovery_count += 1
        app.trial_count += 1

    def reset(self, app_id: int) -> None:
        """Zero all counters for one app. Does not stop a running campaign."""
        self.get(app_id).reset_counters()

    def reset_all(self) -> None:
        """Zero all counters for every app."""
        for app in self._apps:
            app.reset_counters()
        logger.info("Reset statistics for %d apps", len(self._apps))

    def report(self) -> list[AppSnapshot]:
        """Snapshots of every entry in registration order."""
        return [AppSnapshot.from_app(app) for app in self._apps]
