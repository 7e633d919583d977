"""GUS wire protocol: command dispatch and the TCP line server."""

from .dispatcher import COMMAND_PREFIX, CommandDispatcher, parse_command
from .server import GusServer, frame_response

__all__ = [
    "COMMAND_PREFIX",
    "CommandDispatcher",
    "parse_command",
    "GusServer",
    "frame_response",
]
