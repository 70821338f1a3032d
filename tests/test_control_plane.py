"""
Tests for the control plane.

Covers:
- Single-flight start (same app and different app)
- Silent no-op for unknown ids and malformed commands
- Stop semantics (active / idle)
- Reset while running
- Task creation failure surfaces as CampaignStartError
- Shutdown joins the active campaign
"""

import logging
from unittest.mock import MagicMock

import pytest

from recovery_harness.control import CommandStatus, ControlPlane
from recovery_harness.errors import (
    AppNotFoundError,
    CampaignConflictError,
    CampaignStartError,
)
from recovery_harness.registry import RecoveryOutcome
from recovery_harness.trials import TrialRunner, TrialState, always_pass


@pytest.fixture
def slow_config(fast_config):
    """Campaign that stays in the recovery window until stopped."""
    return fast_config.model_copy(update={"recovery_wait_s": 30.0})


@pytest.fixture
def plane(registry, evaluator, slow_config):
    return ControlPlane(
        registry=registry,
        evaluator=evaluator,
        health_check=always_pass,
        config=slow_config,
    )


class TestStart:
    @pytest.mark.asyncio
    async def test_start_then_start_again_is_conflict(self, plane, registry, caplog):
        caplog.set_level(logging.WARNING)

        first = await plane.start(0)
        runner = plane.active_runner
        second = await plane.start(0)

        assert first.status == CommandStatus.STARTED
        assert first.run_id == runner.context.run_id
        assert second.status == CommandStatus.CONFLICT
        assert second.ok is False
        assert plane.active_runner is runner
        assert [app.is_running for app in registry].count(True) == 1
        assert "App 0 is already running" in caplog.text

        await plane.stop()

    @pytest.mark.asyncio
    async def test_start_other_app_while_running_is_conflict(self, plane, registry):
        await plane.start(0)
        result = await plane.start(3)

        assert result.status == CommandStatus.CONFLICT
        assert registry.get(3).is_running is False
        assert registry.get(0).is_running is True
        assert plane.active_runner.app_id == 0

        await plane.stop()

    @pytest.mark.asyncio
    async def test_start_out_of_range_is_silent_noop(self, plane, registry):
        before = [s.model_dump() for s in plane.report()]

        result = await plane.start(99)

        assert result.status == CommandStatus.IGNORED
        assert plane.active_runner is None
        assert [s.model_dump() for s in plane.report()] == before

    @pytest.mark.asyncio
    async def test_strict_start_raises(self, plane):
        with pytest.raises(AppNotFoundError):
            await plane.start(99, strict=True)

        await plane.start(1, strict=True)
        with pytest.raises(CampaignConflictError) as exc_info:
            await plane.start(2, strict=True)
        assert exc_info.value.running_app_id == 1

        await plane.stop()

    @pytest.mark.asyncio
    async def test_task_creation_failure_propagates(self, registry, evaluator, slow_config):
        runner = MagicMock(spec=TrialRunner)
        runner.start.side_effect = CampaignStartError("cannot spawn")
        factory = MagicMock(return_value=runner)

        plane = ControlPlane(
            registry=registry,
            evaluator=evaluator,
            health_check=always_pass,
            config=slow_config,
            runner_factory=factory,
        )

        with pytest.raises(CampaignStartError, match="cannot spawn"):
            await plane.start(0)

        assert plane.active_runner is None
        assert registry.running_app() is None
        factory.assert_called_once()
        assert factory.call_args.kwargs["app_id"] == 0

    @pytest.mark.asyncio
    async def test_start_after_natural_completion(self, registry, evaluator, fast_config, wait_for):
        config = fast_config.model_copy(update={"max_trials": 1})
        plane = ControlPlane(registry, evaluator, always_pass, config=config)

        await plane.start(0)
        assert await wait_for(lambda: plane.active_runner is None)
        assert registry.get(0).trial_count == 1

        result = await plane.start(0)
        assert result.status == CommandStatus.STARTED
        assert await wait_for(lambda: plane.active_runner is None)
        assert registry.get(0).trial_count == 2
        assert plane.get_status()["last_campaign"]["stop_reason"] == "completed"


class TestStopAndReset:
    @pytest.mark.asyncio
    async def test_stop_when_idle_is_silent(self, plane):
        result = await plane.stop()
        assert result.status == CommandStatus.IDLE

    @pytest.mark.asyncio
    async def test_stop_waits_for_termination(self, plane, registry, wait_for):
        await plane.start(0)
        runner = plane.active_runner
        assert await wait_for(lambda: runner.state == TrialState.AWAITING_RECOVERY)

        result = await plane.stop()

        assert result.status == CommandStatus.STOPPED
        assert runner.is_active is False
        assert plane.active_runner is None
        assert registry.get(0).is_running is False
        assert registry.get(0).trial_count == 0

    @pytest.mark.asyncio
    async def test_reset_while_running_keeps_campaign(self, plane, registry):
        registry.record_outcome(4, RecoveryOutcome.FAILED)
        await plane.start(0)

        await plane.reset()
        await plane.reset()

        assert all(s.trial_count == 0 for s in plane.report())
        assert plane.active_runner is not None
        assert registry.get(0).is_running is True

        await plane.stop()


class TestCommands:
    @pytest.mark.asyncio
    async def test_example_scenario(self, registry, evaluator, fast_config, wait_for):
        config = fast_config.model_copy(update={"max_trials": 400, "cooldown_s": 30.0})
        plane = ControlPlane(registry, evaluator, always_pass, config=config)

        await plane.handle_command("start 0")
        assert await wait_for(lambda: registry.get(0).trial_count == 1)

        app = registry.get(0)
        outcomes = [app.auto_recovery_count, app.manual_recovery_count, app.failed_recovery_count]
        assert sorted(outcomes) == [0, 0, 1]

        await plane.handle_command("stop")
        snap = plane.report()[0]
        assert snap.is_running is False
        assert snap.trial_count == 1
        assert snap.automatic.count == 1
        assert snap.automatic.pct == 100.0

    @pytest.mark.parametrize(
        "line",
        ["start 99", "start -1", "start", "start abc", "launch 0", "", "   ", "STOP"],
    )
    @pytest.mark.asyncio
    async def test_bad_commands_are_ignored(self, plane, line):
        result = await plane.handle_command(line)

        assert result.status == CommandStatus.IGNORED
        assert plane.active_runner is None

    @pytest.mark.asyncio
    async def test_reset_command(self, plane, registry):
        registry.record_outcome(2, RecoveryOutcome.MANUAL)
        result = await plane.handle_command("reset\n")
        assert result.status == CommandStatus.RESET
        assert registry.get(2).trial_count == 0

    @pytest.mark.asyncio
    async def test_render_status(self, plane, registry):
        registry.record_outcome(0, RecoveryOutcome.AUTOMATIC)
        registry.record_outcome(0, RecoveryOutcome.FAILED)

        text = plane.render_status()

        assert text.startswith("App Test Harness Status:\n\n")
        assert "App 0: mp3_player (Driver: snd)\n  Running: No\n  Trials: 2\n" in text
        assert "  Automatic Recovery: 1 (50.0%)\n" in text
        assert "  Failed Recovery: 1 (50.0%)\n\n" in text
        assert "App 5: database (Driver: ide)" in text


class TestShutdown:
    @pytest.mark.asyncio
    async def test_shutdown_stops_campaign_and_closes_evaluator(self, plane, registry, evaluator):
        await plane.start(0)

        await plane.shutdown()

        assert plane.active_runner is None
        assert registry.running_app() is None
        assert evaluator.current is None

    @pytest.mark.asyncio
    async def test_status_includes_active_campaign(self, plane):
        await plane.start(5)
        status = plane.get_status()

        assert status["running"] is True
        assert status["active_campaign"]["app_name"] == "database"
        assert status["apps"][5]["is_running"] is True

        await plane.stop()
        assert plane.get_status()["active_campaign"] is None
