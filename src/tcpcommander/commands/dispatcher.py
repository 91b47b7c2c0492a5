"""
=============================================================================
COMMAND DISPATCHER
=============================================================================

Bridges the input thread and the event loop thread.

The input thread drops commands into the mailbox. The dispatcher checks
the mailbox on a fixed cadence FROM THE LOOP THREAD, so the network client
is only ever called from the thread that owns it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Dispatcher Poll Cycle                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. cmd = mailbox.take_and_clear()                                  │
    │          │                                                           │
    │          ├── empty ──► re-arm, done                                  │
    │          │                                                           │
    │   2. parse_command(cmd)                                              │
    │          │                                                           │
    │          ├── CommandError ──► report, re-arm                         │
    │          │                                                           │
    │   3. connect / read / write ──► NetworkClient, re-arm                │
    │          │                                                           │
    │          └── stop ──► set stop flag, on_stop(), DO NOT re-arm        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Pausing only affects the work scheduler. Commands are dispatched whatever
the pause flag says.

=============================================================================
"""

import logging
from typing import Callable, Optional

from ..core.event_loop import EventLoop
from ..core.network_client import NetworkClient
from ..core.shared import CommandMailbox, SharedFlag
from ..reporting import Reporter, ReportKind
from .parser import (
    Command,
    CommandError,
    ConnectCommand,
    MalformedCommandError,
    ReadCommand,
    StopCommand,
    WriteCommand,
    parse_command,
)


logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Polls the mailbox and routes commands to the network client."""

    def __init__(
        self,
        loop: EventLoop,
        client: NetworkClient,
        mailbox: CommandMailbox,
        stop_flag: SharedFlag,
        reporter: Reporter,
        poll_interval: float = 0.5,
        on_stop: Optional[Callable[[], None]] = None,
    ):
        self._client = client
        self._mailbox = mailbox
        self._stop = stop_flag
        self._reporter = reporter
        self._on_stop = on_stop
        self.poll_interval = poll_interval
        self._timer = loop.timer("command-poll")
        self._stopped = False
        self.last_command: Optional[Command] = None

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        """Schedule the next mailbox check."""
        if self._stopped:
            return
        self._timer.arm(self.poll_interval, self.check_for_command)

    def cancel(self) -> None:
        self._timer.cancel()

    def check_for_command(self) -> None:
        """One poll cycle. Re-arms unless a stop command was processed."""
        line = self._mailbox.take_and_clear()
        if line:
            self._reporter.emit(
                ReportKind.COMMAND_RECEIVED,
                f"Dispatching command {line!r}",
                command=line,
            )
            if self._dispatch(line):
                self._stopped = True
                return

        self.start()

    def _dispatch(self, line: str) -> bool:
        """Execute one command line. Returns True for stop."""
        try:
            command = parse_command(line)
        except MalformedCommandError as e:
            self._reporter.emit(ReportKind.MALFORMED_COMMAND, str(e), command=line)
            return False
        except CommandError as e:
            self._reporter.emit(ReportKind.UNRECOGNIZED_COMMAND, str(e), command=line)
            return False

        self.last_command = command

        if isinstance(command, ConnectCommand):
            self._client.connect(command.host, command.port)
        elif isinstance(command, ReadCommand):
            self._client.read(command.byte_count)
        elif isinstance(command, WriteCommand):
            self._client.write()
        elif isinstance(command, StopCommand):
            logger.info("Stop command received, command polling ends")
            self._stop.set()
            if self._on_stop is not None:
                self._on_stop()
            return True

        return False
