"""
Text command grammar for the control surface.

    start <index>   launch a campaign for the app at <index>
    stop            stop the active campaign
    reset           zero all statistics

Malformed lines parse to None and are ignored by the control plane.

Lines are split on whitespace and matched token by token, so glued forms
such as ``start 3abc`` or ``stopx`` are malformed rather than read as
``start 3`` or ``stop``.
"""

from dataclasses import dataclass
from enum import Enum


class CommandVerb(str, Enum):
    START = "start"
    STOP = "stop"
    RESET = "reset"


@dataclass(frozen=True)
class Command:
    verb: CommandVerb
    app_id: int | None = None


def parse_command(line: str) -> Command | None:
    """
    Parse one command line.

    Only the first token selects the verb; ``start`` needs an integer
    argument. Anything else yields None.
    """
    tokens = line.strip().split()
    if not tokens:
        return None

    verb = tokens[0]
    if verb == CommandVerb.START.value:
        if len(tokens) < 2:
            return None
        try:
            app_id = int(tokens[1])
        except ValueError:
            return None
        return Command(CommandVerb.START, app_id)
    if verb == CommandVerb.STOP.value:
        return Command(CommandVerb.STOP)
    if verb == CommandVerb.RESET.value:
        return Command(CommandVerb.RESET)
    return None
