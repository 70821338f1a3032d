"""
Control surface: command grammar, control plane and status rendering.
"""

from recovery_harness.control.commands import Command, CommandVerb, parse_command
from recovery_harness.control.plane import CommandResult, CommandStatus, ControlPlane
from recovery_harness.control.report import render_status

__all__ = [
    "Command",
    "CommandResult",
    "CommandStatus",
    "CommandVerb",
    "ControlPlane",
    "parse_command",
    "render_status",
]
