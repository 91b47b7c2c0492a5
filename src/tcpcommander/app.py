"""
=============================================================================
APPLICATION
=============================================================================

Wires the components together and runs the event loop.

    ┌───────────────────────── thread B ─────────────────────────┐
    │  InputMonitor ── set() ──► CommandMailbox                  │
    │        │                        │                          │
    │        └── pause / stop flags   │                          │
    └─────────────────────────────────┼──────────────────────────┘
                                      │ take_and_clear() every poll
    ┌───────────────────────── thread A ─────────────────────────┐
    │  EventLoop                      ▼                          │
    │   ├── CommandDispatcher ──► NetworkClient ──► socket       │
    │   └── WorkScheduler (reads pause / stop flags)             │
    └────────────────────────────────────────────────────────────┘

run() blocks until both timers have stopped re-arming and the last socket
operation has finished, then releases everything.

=============================================================================
"""

import sys
import logging
from typing import Optional, TextIO

from .config import ClientConfig
from .reporting import Reporter
from .core.event_loop import EventLoop
from .core.network_client import NetworkClient
from .core.scheduler import WorkScheduler
from .core.shared import CommandMailbox, SharedFlag
from .commands.dispatcher import CommandDispatcher
from .console.monitor import InputMonitor


logger = logging.getLogger(__name__)


class CommanderApp:
    """
    The whole client.

    Example:
        app = CommanderApp(ClientConfig(work_period=1.0))
        app.submit_command("c 127.0.0.1 5555")
        sys.exit(app.run())
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        input_stream: Optional[TextIO] = None,
        output_stream: Optional[TextIO] = None,
    ):
        self.config = config or ClientConfig()
        self.config.validate()

        self._output = output_stream if output_stream is not None else sys.stdout

        # ─────────────────────────────────────────────────────────────────
        # SHARED BETWEEN THREADS
        # ─────────────────────────────────────────────────────────────────
        self.reporter = Reporter()
        self.mailbox = CommandMailbox()
        self.pause_flag = SharedFlag("pause")
        self.stop_flag = SharedFlag("stop", latching=True)

        # ─────────────────────────────────────────────────────────────────
        # EVENT LOOP THREAD
        # ─────────────────────────────────────────────────────────────────
        self.loop = EventLoop()
        self.client = NetworkClient.from_config(self.loop, self.reporter, self.config)
        self.scheduler = WorkScheduler(
            self.loop,
            self.reporter,
            self.pause_flag,
            self.stop_flag,
            period=self.config.work_period,
        )
        self.dispatcher = CommandDispatcher(
            self.loop,
            self.client,
            self.mailbox,
            self.stop_flag,
            self.reporter,
            poll_interval=self.config.poll_interval,
            on_stop=self.scheduler.stop,
        )

        # ─────────────────────────────────────────────────────────────────
        # INPUT THREAD
        # ─────────────────────────────────────────────────────────────────
        self.monitor = InputMonitor(
            self.mailbox,
            self.pause_flag,
            self.stop_flag,
            self.reporter,
            input_stream=input_stream,
            output_stream=self._output,
            startup_delay=self.config.startup_delay,
        )

    def submit_command(self, line: str) -> None:
        """Queue a command as if the operator had typed it."""
        self.mailbox.set(line)

    def run(self, with_monitor: bool = True) -> int:
        """
        Run until stopped (blocking).

        Returns:
            Process exit status, always 0.
        """
        self.dispatcher.start()
        if with_monitor:
            self.monitor.start()
        self.scheduler.start()

        logger.info(
            f"Client running (work every {self.config.work_period}s, "
            f"commands checked every {self.config.poll_interval}s)"
        )

        try:
            self.loop.run()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

        return 0

    def _shutdown(self) -> None:
        self.monitor.cancel()
        self.client.close()
        logger.info(f"Client stats: {self.client.stats.to_dict()}")
        self.loop.close()
        print("Event manager finished", file=self._output, flush=True)
