"""
Control Plane - command ingestion and status rendering.

Owns the single active TrialRunner handle. At most one campaign runs
process-wide; a start while another campaign is active is a warning-level
no-op. Bad input never raises out of ``handle_command``.
"""

import asyncio
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel

from recovery_harness.control.commands import CommandVerb, parse_command
from recovery_harness.control.report import render_status
from recovery_harness.errors import AppNotFoundError, CampaignConflictError
from recovery_harness.evaluator.client import RecoveryEvaluatorClient
from recovery_harness.logging import get_logger
from recovery_harness.registry.models import AppSnapshot
from recovery_harness.registry.store import AppRegistry
from recovery_harness.runtime.event_bus import Event, EventBus, EventType, get_event_bus
from recovery_harness.trials.health import HealthCheck
from recovery_harness.trials.models import CampaignConfig
from recovery_harness.trials.runner import FaultInjector, TrialRunner, Workload

logger = get_logger(__name__)

RunnerFactory = Callable[..., TrialRunner]


class CommandStatus(str, Enum):
    STARTED = "started"
    CONFLICT = "conflict"
    STOPPED = "stopped"
    IDLE = "idle"
    RESET = "reset"
    IGNORED = "ignored"


class CommandResult(BaseModel):
    """Outcome of one control command."""

    command: str
    status: CommandStatus
    message: str = ""
    app_id: int | None = None
    run_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.status not in (CommandStatus.CONFLICT, CommandStatus.IGNORED)


class ControlPlane:
    """
    Translates start/stop/reset into TrialRunner lifecycle calls.

    Commands are serialized by an internal lock around the runner handle;
    ``report`` reads the registry without locking.
    """

    def __init__(
        self,
        registry: AppRegistry,
        evaluator: RecoveryEvaluatorClient,
        health_check: HealthCheck,
        config: CampaignConfig | None = None,
        fault_injector: FaultInjector | None = None,
        workload: Workload | None = None,
        event_bus: EventBus | None = None,
        runner_factory: RunnerFactory | None = None,
    ):
        self._registry = registry
        self._evaluator = evaluator
        self._health_check = health_check
        self._config = config or CampaignConfig()
        self._fault_injector = fault_injector
        self._workload = workload
        self._event_bus = event_bus
        self._runner_factory = runner_factory or TrialRunner

        self._runner: TrialRunner | None = None
        self._last_campaign: dict[str, Any] | None = None
        self._lock = asyncio.Lock()

    @property
    def registry(self) -> AppRegistry:
        return self._registry

    @property
    def evaluator(self) -> RecoveryEvaluatorClient:
        return self._evaluator

    @property
    def config(self) -> CampaignConfig:
        return self._config

    @property
    def active_runner(self) -> TrialRunner | None:
        """The runner of the campaign in progress, if any."""
        if self._runner is not None and not self._runner.is_active:
            self._release(self._runner)
        return self._runner

    # =========================================================================
    # Commands
    # =========================================================================

    async def start(self, app_id: int, strict: bool = False) -> CommandResult:
        """
        Start a campaign for ``app_id``.

        Unknown ids and conflicts are reported in the result. With
        ``strict`` they raise AppNotFoundError / CampaignConflictError
        instead. Task creation failures always raise CampaignStartError.
        """
        if not self._registry.contains(app_id):
            if strict:
                raise AppNotFoundError(app_id, len(self._registry))
            logger.debug("Ignoring start for unknown app id %r", app_id)
            return CommandResult(
                command=CommandVerb.START.value,
                status=CommandStatus.IGNORED,
                message=f"Unknown app id {app_id}",
            )

        async with self._lock:
            app = self._registry.get(app_id)
            active = self.active_runner
            if app.is_running or active is not None:
                running_id = active.app_id if active is not None else app.id
                if running_id == app.id:
                    message = f"App {app.id} is already running"
                else:
                    message = f"App {running_id} is already running, cannot start app {app.id}"
                logger.warning("%s", message)
                if strict:
                    raise CampaignConflictError(message, running_app_id=running_id)
                return CommandResult(
                    command=CommandVerb.START.value,
                    status=CommandStatus.CONFLICT,
                    message=message,
                    app_id=app.id,
                )

            runner = self._runner_factory(
                app_id=app.id,
                registry=self._registry,
                evaluator=self._evaluator,
                health_check=self._health_check,
                config=self._config,
                fault_injector=self._fault_injector,
                workload=self._workload,
                event_bus=self._event_bus,
            )
            task = runner.start()
            task.add_done_callback(lambda t, r=runner: self._on_runner_done(r, t))
            self._runner = runner

        logger.info("Started campaign %s for app %d (%s)", runner.context.run_id, app.id, app.name)
        return CommandResult(
            command=CommandVerb.START.value,
            status=CommandStatus.STARTED,
            message=f"Started {app.name}",
            app_id=app.id,
            run_id=runner.context.run_id,
        )

    async def stop(self) -> CommandResult:
        """Stop the active campaign and wait for it to exit. No-op when idle."""
        async with self._lock:
            runner = self.active_runner
            if runner is None:
                return CommandResult(command=CommandVerb.STOP.value, status=CommandStatus.IDLE)

            context = await runner.stop()
            self._release(runner)

        logger.info("Stopped campaign %s", context.run_id)
        return CommandResult(
            command=CommandVerb.STOP.value,
            status=CommandStatus.STOPPED,
            message=f"Stopped {context.app_name} after {context.trials_completed} trials",
            app_id=context.app_id,
            run_id=context.run_id,
        )

    async def reset(self) -> CommandResult:
        """Zero all counters. Legal while a campaign runs."""
        self._registry.reset_all()
        await self._bus().publish(Event(type=EventType.STATS_RESET, data={"apps": len(self._registry)}))
        return CommandResult(command=CommandVerb.RESET.value, status=CommandStatus.RESET)

    def report(self) -> list[AppSnapshot]:
        return self._registry.report()

    def render_status(self) -> str:
        return render_status(self.report())

    async def handle_command(self, line: str) -> CommandResult:
        """
        Parse and execute one text command.

        Malformed and unknown commands are ignored.
        """
        command = parse_command(line)
        if command is None:
            logger.debug("Ignoring unrecognised command: %r", line.strip()[:64])
            return CommandResult(
                command=line.strip()[:64],
                status=CommandStatus.IGNORED,
                message="Unrecognised command",
            )

        if command.verb == CommandVerb.START:
            return await self.start(command.app_id)
        if command.verb == CommandVerb.STOP:
            return await self.stop()
        return await self.reset()

    async def shutdown(self) -> None:
        """Stop any active campaign, then release the evaluator."""
        await self.stop()
        await self._evaluator.close()

    def get_status(self) -> dict[str, Any]:
        runner = self.active_runner
        return {
            "running": runner is not None,
            "active_campaign": runner.get_state().model_dump(mode="json") if runner else None,
            "last_campaign": self._last_campaign,
            "apps": [s.model_dump() for s in self.report()],
        }

    @property
    def event_bus(self) -> EventBus:
        return self._bus()

    # =========================================================================
    # Internals
    # =========================================================================

    def _bus(self) -> EventBus:
        return self._event_bus or get_event_bus()

    def _release(self, runner: TrialRunner) -> None:
        if self._runner is runner:
            self._runner = None
        self._last_campaign = runner.context.to_dict()

    def _on_runner_done(self, runner: TrialRunner, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Campaign task for app %d failed: %s", runner.app_id, task.exception())
        self._release(runner)
