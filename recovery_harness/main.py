"""
Recovery Harness - FastAPI application.

Hosts the control surface (``/harness``) and owns the lifetime of the
control plane: it is built from settings at startup, and any campaign still
running is stopped before the process exits.
"""

import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import Depends, FastAPI
from pydantic import BaseModel

from recovery_harness import __version__
from recovery_harness.api.harness_routes import (
    get_control_plane,
    set_control_plane,
)
from recovery_harness.api.harness_routes import router as harness_router
from recovery_harness.config import (
    AppEnvironment,
    Settings,
    get_settings,
    get_settings_dep,
)
from recovery_harness.control.plane import ControlPlane
from recovery_harness.evaluator.memory import InMemoryEvaluatorClient
from recovery_harness.logging import get_logger, setup_logging
from recovery_harness.registry.store import AppRegistry
from recovery_harness.runtime.event_bus import Event, EventType, get_event_bus
from recovery_harness.trials.health import build_health_check
from recovery_harness.trials.models import CampaignConfig

_settings = get_settings()
setup_logging(level=_settings.log_level, json_output=_settings.log_json)
logger = get_logger(__name__)

_started_monotonic = time.monotonic()


class HealthResponse(BaseModel):
    status: str
    version: str
    time: str
    uptime_seconds: float
    campaign_running: bool
    active_app: str | None = None


def build_control_plane(settings: Settings) -> ControlPlane:
    """Wire registry, evaluator and health predicate from settings."""
    return ControlPlane(
        registry=AppRegistry(),
        evaluator=InMemoryEvaluatorClient(),
        health_check=build_health_check(settings),
        config=CampaignConfig.from_settings(settings),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("Recovery Harness v%s listening on %s", __version__, settings.base_url)

    # A plane installed beforehand (tests, embedding) is left in place.
    owned = get_control_plane() is None
    if owned:
        set_control_plane(build_control_plane(settings))
        logger.info(
            "Control plane ready: %d trials/campaign, health check %s",
            settings.max_trials,
            settings.health_check.value,
        )

    bus = get_event_bus()
    await bus.publish(Event(type=EventType.HARNESS_STARTED, data={"version": __version__}))

    try:
        yield
    finally:
        plane = get_control_plane()
        if plane is not None:
            await plane.shutdown()
        if owned:
            set_control_plane(None)
        await bus.publish(Event(type=EventType.HARNESS_STOPPED))
        logger.info("Recovery Harness stopped")


app = FastAPI(
    title="Recovery Harness",
    description="Fault-injection recovery validation harness",
    version=__version__,
    lifespan=lifespan,
)
app.include_router(harness_router)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness plus whether a campaign is currently running."""
    plane = get_control_plane()
    runner = plane.active_runner if plane is not None else None

    return HealthResponse(
        status="healthy" if plane is not None else "starting",
        version=__version__,
        time=datetime.now(UTC).isoformat(),
        uptime_seconds=round(time.monotonic() - _started_monotonic, 2),
        campaign_running=runner is not None,
        active_app=runner.context.app_name if runner is not None else None,
    )


@app.get("/config")
async def config(settings: Settings = Depends(get_settings_dep)) -> dict[str, Any]:
    return settings.public_summary()


@app.get("/")
async def root() -> dict[str, Any]:
    return {
        "name": "Recovery Harness",
        "version": __version__,
        "docs": "/docs",
        "status": "/harness/status/text",
        "command": "/harness/command",
    }


def main() -> None:
    """Console entry point: serve the harness with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "recovery_harness.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.env == AppEnvironment.DEVELOPMENT,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
