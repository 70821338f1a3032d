"""
Pytest configuration and shared fixtures.
"""

import asyncio
import os
from collections.abc import Generator

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("HARNESS_ENV", "development")
os.environ.setdefault("HARNESS_LOG_LEVEL", "DEBUG")

from recovery_harness.evaluator.memory import InMemoryEvaluatorClient  # noqa: E402
from recovery_harness.registry.store import AppRegistry  # noqa: E402
from recovery_harness.trials.models import CampaignConfig  # noqa: E402


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset module-level singletons between tests."""
    yield

    from recovery_harness.api import harness_routes
    from recovery_harness.runtime.event_bus import reset_event_bus

    harness_routes.set_control_plane(None)
    reset_event_bus()


@pytest.fixture
def registry() -> AppRegistry:
    return AppRegistry()


@pytest.fixture
def evaluator() -> InMemoryEvaluatorClient:
    return InMemoryEvaluatorClient()


@pytest.fixture
def fast_config() -> CampaignConfig:
    """Millisecond timings so whole campaigns finish quickly."""
    return CampaignConfig(
        max_trials=5,
        workload_steps=2,
        poll_interval_s=0.001,
        recovery_wait_s=0.001,
        manual_recovery_wait_s=0.001,
        cooldown_s=0.001,
        stop_timeout_s=2.0,
    )


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.001) -> bool:
    """Poll ``predicate`` on the event loop until it holds or ``timeout`` passes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def wait_for():
    return wait_until
