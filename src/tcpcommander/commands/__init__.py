"""Operator command parsing and dispatching."""

from .parser import (
    Command,
    CommandError,
    ConnectCommand,
    MalformedCommandError,
    ReadCommand,
    StopCommand,
    UnrecognizedCommandError,
    WriteCommand,
    parse_command,
)
from .dispatcher import CommandDispatcher

__all__ = [
    "Command",
    "CommandError",
    "ConnectCommand",
    "MalformedCommandError",
    "ReadCommand",
    "StopCommand",
    "UnrecognizedCommandError",
    "WriteCommand",
    "parse_command",
    "CommandDispatcher",
]
