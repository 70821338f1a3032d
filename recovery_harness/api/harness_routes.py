"""
API routes for the recovery harness control surface.

Endpoints to issue text commands, start/stop/reset campaigns and read
the status report (JSON or plain text).
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from recovery_harness.control.plane import ControlPlane
from recovery_harness.errors import (
    AppNotFoundError,
    CampaignConflictError,
    CampaignStartError,
)
from recovery_harness.evaluator.memory import InMemoryEvaluatorClient
from recovery_harness.logging import get_logger, get_recent_logs
from recovery_harness.runtime.event_bus import EventType

router = APIRouter(prefix="/harness", tags=["Harness"])
logger = get_logger(__name__)


class CommandRequest(BaseModel):
    """A single text command line."""

    command: str = Field(..., max_length=256)


# Module-level singleton
_control_plane: ControlPlane | None = None


def get_control_plane() -> ControlPlane | None:
    """Get the installed control plane."""
    return _control_plane


def set_control_plane(plane: ControlPlane | None) -> None:
    """Install the control plane (called from main.py lifespan)."""
    global _control_plane
    _control_plane = plane


def _get_plane() -> ControlPlane:
    """Get control plane or raise 503."""
    plane = get_control_plane()
    if plane is None:
        raise HTTPException(status_code=503, detail="Control plane not initialised")
    return plane


@router.get("/apps")
async def list_apps() -> dict[str, Any]:
    """Registry report in registration order."""
    plane = _get_plane()
    apps = [s.model_dump() for s in plane.report()]
    return {"apps": apps, "count": len(apps)}


@router.get("/status")
async def get_status() -> dict[str, Any]:
    """Apps plus active campaign state."""
    return _get_plane().get_status()


@router.get("/status/text", response_class=PlainTextResponse)
async def get_status_text() -> str:
    """Human-readable status document."""
    return _get_plane().render_status()


@router.post("/command")
async def post_command(request: CommandRequest) -> dict[str, Any]:
    """Execute one text command (start <index> | stop | reset)."""
    plane = _get_plane()
    logger.info("Command received: %r", request.command.strip())
    try:
        result = await plane.handle_command(request.command)
    except CampaignStartError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {"ok": result.ok, **result.model_dump()}


@router.post("/start/{app_id}")
async def start_campaign(app_id: int) -> dict[str, Any]:
    """Start a campaign; 404 for unknown app, 409 if one is already active."""
    plane = _get_plane()
    try:
        result = await plane.start(app_id, strict=True)
    except AppNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except CampaignConflictError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except CampaignStartError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {"ok": True, **result.model_dump()}


@router.post("/stop")
async def stop_campaign() -> dict[str, Any]:
    """Stop the active campaign, if any."""
    result = await _get_plane().stop()
    return {"ok": True, **result.model_dump()}


@router.post("/reset")
async def reset_stats() -> dict[str, Any]:
    """Zero all counters for all apps."""
    result = await _get_plane().reset()
    return {"ok": True, **result.model_dump()}


@router.get("/evaluator/tests")
async def get_evaluator_tests(limit: int = Query(default=20, ge=1, le=500)) -> dict[str, Any]:
    """Recent evaluator test records (in-memory evaluator only)."""
    evaluator = _get_plane().evaluator
    if not isinstance(evaluator, InMemoryEvaluatorClient):
        raise HTTPException(status_code=501, detail="Evaluator does not expose test records")
    records = [r.to_dict() for r in evaluator.recent(limit)]
    return {"tests": records, "count": len(records), "summary": evaluator.summary()}


@router.get("/events")
async def get_events(
    limit: int = Query(default=50, ge=1, le=500),
    event_type: EventType | None = Query(default=None, alias="type"),
    run_id: str | None = None,
) -> dict[str, Any]:
    """Recently published campaign events, oldest first."""
    events = [
        e.to_dict()
        for e in _get_plane().event_bus.recent(limit=limit, event_type=event_type, run_id=run_id)
    ]
    return {"events": events, "count": len(events)}


@router.get("/logs")
async def get_logs(
    level: str = Query(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$"),
    limit: int = Query(default=50, ge=1, le=1000),
    run_id: str | None = None,
) -> dict[str, Any]:
    """Buffered harness log records, oldest first."""
    logs = get_recent_logs(level=level, limit=limit, run_id=run_id)
    return {"logs": logs, "count": len(logs)}
