"""
Trial Runner - one campaign of fault-injection trials for a single app.

Per trial:
- Open an evaluator test record
- Simulate workload in short steps
- Inject the fault and wait for the recovery window
- Verify health, with one manual-recovery attempt on failure
- Classify once, record the outcome, close the test record
- Cool down, then run the next trial

Every delay is a cancellation checkpoint. A stop request abandons the
in-flight trial without counting it.
"""

import asyncio
import inspect
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from recovery_harness.errors import CampaignStartError
from recovery_harness.evaluator.client import Phase, RecoveryEvaluatorClient
from recovery_harness.logging import clear_run_id, get_logger, set_run_id
from recovery_harness.registry.models import AppDefinition, RecoveryOutcome
from recovery_harness.registry.store import AppRegistry
from recovery_harness.runtime.event_bus import Event, EventBus, EventType, get_event_bus
from recovery_harness.runtime.run_context import CampaignContext, StopReason
from recovery_harness.trials.health import HealthCheck
from recovery_harness.trials.models import (
    CampaignConfig,
    RunnerState,
    TrialResult,
    TrialState,
)

logger = get_logger(__name__)

FaultInjector = Callable[[AppDefinition], Awaitable[None]]
Workload = Callable[[AppDefinition, int], Any]


class _StopRequested(Exception):
    """Raised at a checkpoint once a stop has been requested."""


class TrialRunner:
    """
    Runs one campaign on a background asyncio task.

    The owner starts the runner, may request a stop, and joins it; it never
    touches trial state directly.
    """

    def __init__(
        self,
        app_id: int,
        registry: AppRegistry,
        evaluator: RecoveryEvaluatorClient,
        health_check: HealthCheck,
        config: CampaignConfig | None = None,
        fault_injector: FaultInjector | None = None,
        workload: Workload | None = None,
        event_bus: EventBus | None = None,
    ):
        self._registry = registry
        self._app = registry.get(app_id)
        self._evaluator = evaluator
        self._health_check = health_check
        self._config = config or CampaignConfig()
        self._fault_injector = fault_injector
        self._workload = workload
        self._event_bus = event_bus or get_event_bus()

        self.context = CampaignContext.create(
            app_id=self._app.id,
            app_name=self._app.name,
            max_trials=self._config.max_trials,
        )
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[CampaignContext] | None = None
        self._state = TrialState.STEADY_STATE
        self._trial = 0
        self._open_handle: str | None = None
        self._in_trial = False
        self._history: deque[TrialResult] = deque(maxlen=self._config.history_size)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def app_id(self) -> int:
        return self._app.id

    @property
    def task(self) -> asyncio.Task[CampaignContext] | None:
        return self._task

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    @property
    def state(self) -> TrialState:
        return self._state

    @property
    def history(self) -> list[TrialResult]:
        return list(self._history)

    def start(self) -> asyncio.Task[CampaignContext]:
        """
        Launch the campaign task and mark the app running.

        Raises:
            CampaignStartError: If the task could not be created.
        """
        if self._task is not None:
            raise CampaignStartError(f"Runner for {self._app.name} was already started")

        self._registry.mark_running(self._app.id, True)
        coro = self._run()
        try:
            self._task = asyncio.create_task(coro, name=f"app_test_{self._app.name}")
        except Exception as e:
            coro.close()
            self._registry.mark_running(self._app.id, False)
            logger.error("Failed to start app test task for %s: %s", self._app.name, e)
            raise CampaignStartError(f"Failed to start campaign for {self._app.name}: {e}") from e
        return self._task

    def request_stop(self) -> None:
        """Signal the campaign to stop at its next checkpoint."""
        self._stop_event.set()

    async def stop(self, timeout: float | None = None) -> CampaignContext:
        """
        Request a stop and wait for the task to exit.

        Falls back to cancelling the task if it does not acknowledge
        within ``timeout`` (defaults to the configured stop timeout).
        """
        self.request_stop()
        if self._task is None or self._task.done():
            return self.context

        timeout = self._config.stop_timeout_s if timeout is None else timeout
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Campaign %s did not stop within %.1fs, cancelling",
                self.context.run_id,
                timeout,
            )
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        return self.context

    async def wait(self) -> CampaignContext:
        """Wait for the campaign to finish on its own."""
        if self._task is None:
            return self.context
        return await self._task

    def get_state(self) -> RunnerState:
        return RunnerState(
            app_id=self._app.id,
            app_name=self._app.name,
            run_id=self.context.run_id,
            state=self._state,
            trial=self._trial,
            max_trials=self._config.max_trials,
            active=self.is_active,
            stop_requested=self.stop_requested,
            campaign=self.context.to_dict(),
            recent_results=[r.to_dict() for r in self._history],
        )

    # =========================================================================
    # Campaign loop
    # =========================================================================

    async def _run(self) -> CampaignContext:
        set_run_id(self.context.run_id)
        reason = StopReason.COMPLETED
        error: str | None = None

        logger.info(
            "Campaign started for %s (driver %s, %d trials)",
            self._app.name,
            self._app.driver_class.value,
            self._config.max_trials,
        )
        try:
            await self._publish(
                EventType.CAMPAIGN_STARTED,
                {"app_id": self._app.id, "app_name": self._app.name},
            )
            while self._trial < self._config.max_trials:
                self._checkpoint()
                result = await self._run_trial()
                await self._publish(EventType.TRIAL_COMPLETED, result.to_dict())

                self._set_state(TrialState.COOLDOWN)
                await self._pause(self._config.cooldown_s)

        except _StopRequested:
            reason = StopReason.CANCELLED
        except asyncio.CancelledError:
            reason = StopReason.CANCELLED
            raise
        except Exception as e:
            reason = StopReason.ERROR
            error = str(e)
            logger.exception("Campaign %s aborted", self.context.run_id)
        finally:
            await self._finish(reason, error)

        return self.context

    async def _finish(self, reason: StopReason, error: str | None) -> None:
        if self._in_trial:
            self.context.trials_abandoned += 1
            logger.info("Abandoned %s_trial_%d", self._app.name, self._trial)
        await self._close_open_record()

        self._in_trial = False
        self._set_state(TrialState.STOPPED)
        self._registry.mark_running(self._app.id, False)
        self.context.mark_finished(reason, error)

        logger.info(
            "Campaign stopped for %s: %s after %d trials",
            self._app.name,
            reason.value,
            self.context.trials_completed,
        )
        await self._publish(EventType.CAMPAIGN_STOPPED, self.context.to_dict())
        clear_run_id()

    async def _run_trial(self) -> TrialResult:
        app = self._app
        label = f"{app.name}_trial_{self._trial}"
        started_at = datetime.now(UTC)
        self._in_trial = True

        self._set_state(TrialState.STEADY_STATE)
        self._open_handle = await self._evaluator.start_test(label, app.driver_class.value)
        await self._publish(EventType.TRIAL_STARTED, {"label": label, "trial": self._trial})

        for step in range(self._config.workload_steps):
            if self._workload is not None:
                step_result = self._workload(app, step)
                if inspect.isawaitable(step_result):
                    await step_result
            await self._pause(self._config.poll_interval_s)

        self._set_state(TrialState.FAULT_INJECTED)
        if self._fault_injector is not None:
            await self._fault_injector(app)
        await self._emit(Phase.FAILURE_DETECTED, f"Injected fault in {app.driver_class.value}")

        self._set_state(TrialState.AWAITING_RECOVERY)
        await self._pause(self._config.recovery_wait_s)

        self._set_state(TrialState.VERIFY)
        if await self._check_health():
            self._set_state(TrialState.AUTO_SUCCESS)
            outcome = RecoveryOutcome.AUTOMATIC
        else:
            self._set_state(TrialState.MANUAL_ATTEMPT)
            await self._emit(Phase.DRIVER_RESTARTING, "Attempting manual recovery")
            await self._pause(self._config.manual_recovery_wait_s)
            if await self._check_health():
                self._set_state(TrialState.MANUAL_SUCCESS)
                outcome = RecoveryOutcome.MANUAL
            else:
                self._set_state(TrialState.MANUAL_FAILED)
                outcome = RecoveryOutcome.FAILED

        if outcome == RecoveryOutcome.FAILED:
            await self._emit(Phase.RECOVERY_FAILED, "Recovery failed")
        else:
            await self._emit(
                Phase.RECOVERY_COMPLETE,
                f"{outcome.value.capitalize()} recovery successful",
            )
        await self._evaluator.end_test(outcome != RecoveryOutcome.FAILED)

        # Record closed: registry, context and history update without an await
        self._open_handle = None
        self._in_trial = False
        result = TrialResult(
            trial=self._trial,
            label=label,
            outcome=outcome,
            started_at=started_at,
            finished_at=datetime.now(UTC),
        )
        self._registry.record_outcome(app.id, outcome)
        self._record_result(result)
        return result

    def _record_result(self, result: TrialResult) -> None:
        self._history.append(result)
        self.context.trials_completed += 1
        self._trial += 1
        logger.debug("%s -> %s", result.label, result.outcome.value)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _checkpoint(self) -> None:
        if self._stop_event.is_set():
            raise _StopRequested()

    async def _pause(self, seconds: float) -> None:
        """Sleep for ``seconds``, returning early if a stop is requested."""
        self._checkpoint()
        if seconds <= 0:
            await asyncio.sleep(0)
        else:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            except TimeoutError:
                pass
        self._checkpoint()

    async def _check_health(self) -> bool:
        try:
            result = self._health_check(self._app)
            if inspect.isawaitable(result):
                result = await result
            return bool(result)
        except Exception:
            logger.exception("Health check raised for %s, treating as failed", self._app.name)
            return False

    async def _emit(self, phase: Phase, message: str) -> None:
        await self._evaluator.add_event(None, phase, message)
        await self._publish(
            EventType.TRIAL_PHASE,
            {"trial": self._trial, "phase": phase.value, "message": message},
        )

    async def _close_open_record(self) -> None:
        if self._open_handle is None:
            return
        self._open_handle = None
        try:
            await self._evaluator.end_test(False)
        except Exception:
            logger.exception("Failed to close evaluator record for %s", self._app.name)

    async def _publish(self, event_type: EventType, data: dict[str, Any]) -> None:
        await self._event_bus.publish(
            Event(type=event_type, data={"app_id": self._app.id, **data}, run_id=self.context.run_id)
        )

    def _set_state(self, state: TrialState) -> None:
        if state != self._state:
            logger.debug("%s: %s -> %s", self._app.name, self._state.value, state.value)
        self._state = state
