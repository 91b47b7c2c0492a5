"""
Simulated background work.

A single timer that keeps re-arming itself. Each firing is one "job":

    fire ──► stop set?  ── yes ──► report STOPPING, do not re-arm
               │
               no
               ▼
             paused?    ── yes ──► (nothing) ─────────┐
               │                                      │
               no                                     │
               ▼                                      ▼
             count += 1, report JOB_COMPLETED ──► re-arm(period)
"""

import logging

from ..reporting import Reporter, ReportKind
from .event_loop import EventLoop
from .shared import SharedFlag


logger = logging.getLogger(__name__)


class WorkScheduler:
    """
    Periodic job simulator on the event loop thread.

    The pause and stop flags are written by the input thread and only read
    here.
    """

    def __init__(
        self,
        loop: EventLoop,
        reporter: Reporter,
        pause_flag: SharedFlag,
        stop_flag: SharedFlag,
        period: float = 2.0,
    ):
        self._reporter = reporter
        self._pause = pause_flag
        self._stop = stop_flag
        self.period = period
        self.completed = 0
        self._timer = loop.timer("work")
        self._stopped = False

    @property
    def running(self) -> bool:
        return self._timer.armed

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self) -> None:
        """Start the next job; it completes one period from now."""
        if self._stopped:
            return
        self._timer.arm(self.period, self._finish_work)

    def cancel(self) -> None:
        self._timer.cancel()

    def stop(self) -> None:
        """End the cycle now instead of at the next firing."""
        if self._stopped:
            return
        self._timer.cancel()
        self._stopped = True
        self._reporter.emit(ReportKind.STOPPING, "Stopping", completed=self.completed)

    def _finish_work(self) -> None:
        if self._stop.is_set():
            self.stop()
            return

        if not self._pause.is_set():
            self.completed += 1
            self._reporter.emit(
                ReportKind.JOB_COMPLETED,
                f"Completed Job {self.completed}",
                count=self.completed,
            )
        else:
            logger.debug("Work paused, waiting on operator")

        self.start()
