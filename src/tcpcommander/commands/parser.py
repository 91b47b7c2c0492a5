"""
Operator command parsing.

Commands are single lines. The first character of the first token picks
the command, case-insensitive:

    c <host> <port>    connect
    r <count>          read count bytes
    w                  write the pre-defined message
    x                  stop

So "C 10.0.0.1 502", "connect 10.0.0.1 502" and "cx 10.0.0.1 502" are
all connect commands.
"""

from dataclasses import dataclass
from typing import Union


class CommandError(Exception):
    """A command line that cannot be executed."""

    def __init__(self, message: str, line: str = ""):
        super().__init__(message)
        self.line = line


class MalformedCommandError(CommandError):
    """Known command with wrong or unparsable arguments."""


class UnrecognizedCommandError(CommandError):
    """Unknown command letter."""


@dataclass(frozen=True)
class ConnectCommand:
    host: str
    port: str


@dataclass(frozen=True)
class ReadCommand:
    byte_count: int


@dataclass(frozen=True)
class WriteCommand:
    pass


@dataclass(frozen=True)
class StopCommand:
    pass


Command = Union[ConnectCommand, ReadCommand, WriteCommand, StopCommand]


def parse_command(line: str) -> Command:
    """
    Turn a command line into a Command.

    Raises:
        MalformedCommandError: connect without exactly host and port, read
            without exactly one integer count.
        UnrecognizedCommandError: empty line or unknown command letter.
    """
    tokens = line.split()
    if not tokens:
        raise UnrecognizedCommandError("Unrecognized command: empty line", line)

    verb = tokens[0][0].lower()
    args = tokens[1:]

    if verb == "c":
        if len(args) != 2:
            raise MalformedCommandError(
                f"Connect command needs <host> <port>, got {len(args)} argument(s)",
                line,
            )
        return ConnectCommand(host=args[0], port=args[1])

    if verb == "r":
        if len(args) != 1:
            raise MalformedCommandError("Read command missing byte count", line)
        try:
            count = int(args[0])
        except ValueError:
            raise MalformedCommandError(
                f"Read command byte count is not a number: {args[0]!r}", line
            ) from None
        return ReadCommand(byte_count=count)

    if verb == "w":
        return WriteCommand()

    if verb == "x":
        return StopCommand()

    raise UnrecognizedCommandError(f"Unrecognized command: {line!r}", line)
