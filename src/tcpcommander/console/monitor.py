"""
Keyboard (input stream) monitor.

Runs in its own thread and is the only code allowed to block on input.
It never touches the network client: commands go through the mailbox and
the pause/stop flags.

    'x'          stop the application
    'q'          pause simulated work until the next c, r or w
    'c/r/w ...'  forward to the command mailbox, resume work
"""

import sys
import logging
import threading
from typing import Optional, TextIO

from ..core.shared import CommandMailbox, SharedFlag
from ..reporting import Reporter, ReportKind


logger = logging.getLogger(__name__)


USAGE = """
Keyboard monitor running

   To pause for user input type 'q<ENTER>'
   To connect to server type 'C <ip> <port><ENTER>'
   To read from server type 'R <byte count><ENTER>'
   To send a pre-defined message to the server type 'W<ENTER>'
   To stop type 'x<ENTER>' ( DO NOT USE ctrl-C )

   Don't forget to hit <ENTER>!
"""

FORWARDED = frozenset("crw")


class InputMonitor(threading.Thread):
    """
    Reads operator lines and feeds the cross-thread cells.

    daemon=True: a monitor blocked in readline() must not keep the process
    alive after the event loop has drained.
    """

    def __init__(
        self,
        mailbox: CommandMailbox,
        pause_flag: SharedFlag,
        stop_flag: SharedFlag,
        reporter: Reporter,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
        startup_delay: float = 3.0,
    ):
        super().__init__(name="InputMonitor", daemon=True)
        self._mailbox = mailbox
        self._pause = pause_flag
        self._stop_flag = stop_flag
        self._reporter = reporter
        self._input = input_stream if input_stream is not None else sys.stdin
        self._output = output_stream if output_stream is not None else sys.stdout
        self.startup_delay = startup_delay
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Skip reading if the monitor is still in its startup delay."""
        self._cancelled.set()

    def run(self) -> None:
        # Let startup banners finish before taking input
        if self._cancelled.wait(self.startup_delay):
            return

        print(USAGE, file=self._output, flush=True)

        while not self._cancelled.is_set():
            line = self._input.readline()
            if not line:
                logger.info("Input stream closed, requesting stop")
                self._request_stop("x")
                return
            if not self.handle_line(line.rstrip("\r\n")):
                return

    def handle_line(self, line: str) -> bool:
        """
        Classify one input line.

        Returns:
            False once the monitor should end (stop requested).
        """
        self._reporter.emit(ReportKind.INPUT_RECEIVED, f"input was {line}", line=line)

        verb = line[:1].lower()

        if verb == "x":
            self._request_stop(line)
            return False

        if verb == "q":
            self._pause.set()
            self._reporter.emit(ReportKind.PAUSED, "Waiting for user input: C or R or W")
        elif verb in FORWARDED:
            self._mailbox.set(line)
            self._pause.clear()
        else:
            self._reporter.emit(ReportKind.INPUT_IGNORED, f"Ignoring input {line!r}", line=line)

        return True

    def _request_stop(self, line: str) -> None:
        self._mailbox.set(line)
        self._stop_flag.set()
        self._reporter.emit(ReportKind.STOP_REQUESTED, "Stop requested")
