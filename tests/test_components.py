"""
Tests for command parsing, health predicates, the in-memory evaluator
and settings.
"""

import pytest

from recovery_harness.config import HealthCheckMode, Settings
from recovery_harness.control.commands import Command, CommandVerb, parse_command
from recovery_harness.errors import EvaluatorError
from recovery_harness.evaluator import InMemoryEvaluatorClient, Phase
from recovery_harness.trials.health import (
    FlakyHealthCheck,
    ScriptedHealthCheck,
    always_fail,
    always_pass,
    build_health_check,
)
from recovery_harness.trials.models import CampaignConfig


class TestParseCommand:
    @pytest.mark.parametrize(
        "line, expected",
        [
            ("start 0", Command(CommandVerb.START, 0)),
            ("  start   5  \n", Command(CommandVerb.START, 5)),
            ("start 99", Command(CommandVerb.START, 99)),
            ("start 1 extra", Command(CommandVerb.START, 1)),
            ("stop", Command(CommandVerb.STOP)),
            ("stop now", Command(CommandVerb.STOP)),
            ("reset", Command(CommandVerb.RESET)),
        ],
    )
    def test_valid(self, line, expected):
        assert parse_command(line) == expected

    @pytest.mark.parametrize(
        "line",
        ["", "start", "start x", "start 3abc", "stopx", "Start 0", "RESET", "go 1", "0 start"],
    )
    def test_invalid(self, line):
        assert parse_command(line) is None


class TestHealthChecks:
    def test_constant_predicates(self, registry):
        app = registry.get(0)
        assert always_pass(app) is True
        assert always_fail(app) is False

    def test_flaky_cycle(self, registry):
        check = FlakyHealthCheck(3, 4)
        app = registry.get(0)
        results = [check(app) for _ in range(8)]
        assert results == [True, True, True, False] * 2
        assert check.calls == 8

    @pytest.mark.parametrize("passes, of", [(1, 0), (-1, 4), (5, 4)])
    def test_flaky_rejects_bad_ratio(self, passes, of):
        with pytest.raises(ValueError):
            FlakyHealthCheck(passes, of)

    def test_scripted_then_default(self, registry):
        check = ScriptedHealthCheck([False, True], default=False)
        app = registry.get(0)
        assert [check(app) for _ in range(4)] == [False, True, False, False]

    def test_build_from_settings(self):
        assert build_health_check(Settings(health_check=HealthCheckMode.ALWAYS_FAIL)) is always_fail
        assert build_health_check(Settings()) is always_pass

        flaky = build_health_check(
            Settings(health_check="flaky", health_flaky_pass=1, health_flaky_of=2)
        )
        assert isinstance(flaky, FlakyHealthCheck)
        assert (flaky.passes, flaky.of) == (1, 2)


class TestInMemoryEvaluator:
    @pytest.mark.asyncio
    async def test_record_lifecycle(self, evaluator):
        handle = await evaluator.start_test("mp3_player_trial_0", "snd")
        await evaluator.add_event(None, Phase.FAILURE_DETECTED, "Injected fault in snd")
        await evaluator.add_event(handle, Phase.RECOVERY_COMPLETE, "Automatic recovery successful")
        await evaluator.end_test(True)

        record = evaluator.records[0]
        assert record.is_open is False
        assert record.success is True
        assert [e.phase for e in record.events] == [
            Phase.FAILURE_DETECTED,
            Phase.RECOVERY_COMPLETE,
        ]
        assert record.recovery_time_s is not None
        assert evaluator.summary()["succeeded"] == 1

    @pytest.mark.asyncio
    async def test_overlapping_start_rejected(self, evaluator):
        await evaluator.start_test("a", "snd")
        with pytest.raises(EvaluatorError, match="still open"):
            await evaluator.start_test("b", "snd")

    @pytest.mark.asyncio
    async def test_event_and_end_without_open_test(self, evaluator):
        with pytest.raises(EvaluatorError):
            await evaluator.add_event(None, Phase.RECOVERY_FAILED, "Recovery failed")
        with pytest.raises(EvaluatorError):
            await evaluator.end_test(False)
        with pytest.raises(EvaluatorError, match="Unknown test handle"):
            await evaluator.add_event("nope", Phase.RECOVERY_FAILED, "Recovery failed")

    @pytest.mark.asyncio
    async def test_capacity_evicts_oldest(self):
        evaluator = InMemoryEvaluatorClient(capacity=2)
        for i in range(3):
            await evaluator.start_test(f"t{i}", "ide")
            await evaluator.end_test(i % 2 == 0)

        assert [r.label for r in evaluator.records] == ["t1", "t2"]
        assert [r.label for r in evaluator.recent(1)] == ["t2"]
        assert evaluator.recent(0) == []


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("HARNESS_MAX_TRIALS", "7")
        monkeypatch.setenv("HARNESS_COOLDOWN_S", "0.5")
        settings = Settings()
        assert settings.max_trials == 7
        assert settings.cooldown_s == 0.5

    def test_log_level_validated(self):
        assert Settings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValueError):
            Settings(log_level="chatty")

    def test_campaign_config_from_settings(self):
        settings = Settings(max_trials=3, recovery_wait_s=0.25, history_size=9)
        config = CampaignConfig.from_settings(settings)
        assert config.max_trials == 3
        assert config.recovery_wait_s == 0.25
        assert config.history_size == 9

    def test_public_summary(self):
        data = Settings(workload_steps=10, poll_interval_s=0.1, recovery_wait_s=2, cooldown_s=1).public_summary()
        assert data["trial_duration_s"] == pytest.approx(4.0)
        assert data["health_check"] == "always_pass"
