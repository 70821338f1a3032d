"""
Logging setup for the recovery harness.

Every record emitted while a campaign task runs carries that campaign's
run id, taken from a ContextVar set by the trial runner. Records also land
in a bounded ring buffer that the API serves at ``/harness/logs``.
"""

import json
import logging
import sys
from collections import deque
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Set inside the campaign task; asyncio copies context per task.
campaign_run_id: ContextVar[str | None] = ContextVar("campaign_run_id", default=None)

_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class CampaignFormatter(logging.Formatter):
    """
    Plain-text or JSON lines tagged with the active campaign.

    Text: ``2026-01-01T00:00:00+00:00 | INFO     | recovery_harness.x | [campaign_...] msg``
    """

    def __init__(self, json_output: bool = False):
        super().__init__()
        self.json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        run_id = getattr(record, "run_id", None) or campaign_run_id.get()
        stamp = datetime.fromtimestamp(record.created, UTC).isoformat()
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        if self.json_output:
            return json.dumps(
                {
                    "timestamp": stamp,
                    "level": record.levelname,
                    "module": record.name,
                    "run_id": run_id,
                    "message": message,
                }
            )

        tag = f"[{run_id}] " if run_id else ""
        return f"{stamp} | {record.levelname:<8} | {record.name} | {tag}{message}"


class LogBuffer(logging.Handler):
    """Keeps the most recent records as dicts for the diagnostics endpoint."""

    def __init__(self, capacity: int = 1000):
        super().__init__()
        self.entries: deque[dict[str, Any]] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.entries.append(
                {
                    "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
                    "level": record.levelname,
                    "level_no": record.levelno,
                    "logger": record.name,
                    "run_id": campaign_run_id.get(),
                    "message": record.getMessage(),
                }
            )
        except Exception:
            self.handleError(record)

    def query(
        self, min_level: int = logging.INFO, limit: int = 50, run_id: str | None = None
    ) -> list[dict[str, Any]]:
        matches = [
            e
            for e in self.entries
            if e["level_no"] >= min_level and (run_id is None or e["run_id"] == run_id)
        ]
        return matches[-limit:] if limit > 0 else []


_buffer = LogBuffer()


def setup_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """
    Install the harness handlers on the root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_output: Emit one JSON object per line instead of text

    Returns:
        The root logger
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, LogBuffer) or getattr(handler, "_harness_stream", False):
            root.removeHandler(handler)
    root.setLevel(numeric_level)

    stream = logging.StreamHandler(sys.stdout)
    stream._harness_stream = True  # type: ignore[attr-defined]
    stream.setFormatter(CampaignFormatter(json_output=json_output))
    root.addHandler(stream)

    _buffer.setLevel(numeric_level)
    root.addHandler(_buffer)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_recent_logs(
    level: str = "INFO", limit: int = 50, run_id: str | None = None
) -> list[dict[str, Any]]:
    """Buffered records at or above ``level``, oldest first."""
    min_level = logging.getLevelName(level.upper())
    if not isinstance(min_level, int):
        min_level = logging.INFO
    return _buffer.query(min_level=min_level, limit=limit, run_id=run_id)


def set_run_id(run_id: str) -> None:
    """Tag log records from the current task with a campaign id."""
    campaign_run_id.set(run_id)


def clear_run_id() -> None:
    campaign_run_id.set(None)
