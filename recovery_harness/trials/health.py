"""
Post-recovery health predicates.

A health check receives the app under test and answers whether the
application still works after the recovery window. Real checks are
supplied by the caller; the deterministic ones here drive tests and
local runs.
"""

from collections.abc import Awaitable, Callable, Iterable

from recovery_harness.config import HealthCheckMode
from recovery_harness.registry.models import AppDefinition

HealthCheck = Callable[[AppDefinition], bool | Awaitable[bool]]


def always_pass(app: AppDefinition) -> bool:
    return True


def always_fail(app: AppDefinition) -> bool:
    return False


class FlakyHealthCheck:
    """
    Passes the first ``passes`` of every ``of`` calls.

    FlakyHealthCheck(3, 4) yields pass, pass, pass, fail, pass, ...
    """

    def __init__(self, passes: int, of: int):
        if of < 1:
            raise ValueError("of must be >= 1")
        if not 0 <= passes <= of:
            raise ValueError("passes must be between 0 and of")
        self.passes = passes
        self.of = of
        self.calls = 0

    def __call__(self, app: AppDefinition) -> bool:
        result = self.calls % self.of < self.passes
        self.calls += 1
        return result


class ScriptedHealthCheck:
    """Replays a fixed sequence of results, then returns ``default``."""

    def __init__(self, results: Iterable[bool], default: bool = True):
        self._results = list(results)
        self.default = default
        self.calls = 0

    def __call__(self, app: AppDefinition) -> bool:
        index = self.calls
        self.calls += 1
        if index < len(self._results):
            return self._results[index]
        return self.default


def build_health_check(settings) -> HealthCheck:
    """Health predicate selected by configuration."""
    mode = HealthCheckMode(settings.health_check)
    if mode == HealthCheckMode.ALWAYS_FAIL:
        return always_fail
    if mode == HealthCheckMode.FLAKY:
        return FlakyHealthCheck(settings.health_flaky_pass, settings.health_flaky_of)
    return always_pass
