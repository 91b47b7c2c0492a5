"""
=============================================================================
EVENT LOOP (REACTOR)
=============================================================================

A single-threaded reactor built on a private asyncio loop. It owns every
timer and every socket operation of the client, and runs their completion
callbacks one at a time on the thread that calls run().

=============================================================================
WHY WRAP ASYNCIO?
=============================================================================

The client needs two things asyncio does not give directly:

1. RUN UNTIL OUT OF WORK
   The process should exit once the last timer has stopped re-arming and
   the last socket operation has finished. asyncio loops run forever or
   until one future completes, so the reactor counts pending work:

        timer armed        ──► pending += 1
        timer fired/cancel ──► pending -= 1
        operation submitted──► pending += 1
        operation finished ──► pending -= 1

        pending == 0  ──► run() returns

2. COMPLETION HANDLERS INSTEAD OF AWAIT
   Components are callback driven. An operation is a coroutine run as a
   task; when it finishes, its result is packed into an Outcome and handed
   to the completion handler on the loop thread.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        submit(coro, handler)                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   coro ──► Task ──► done ──► Outcome(value | error | cancelled)      │
    │                                 │                                    │
    │                                 ▼                                    │
    │                          handler(outcome)      (loop thread)         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import socket
import asyncio
import logging
import functools
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Outcome:
    """
    Result of one asynchronous operation.

    Exactly one of these holds:
    - cancelled is True (the operation was cancelled before finishing)
    - error is set (the operation raised)
    - value holds the operation's return value
    """
    value: Any = None
    error: Optional[BaseException] = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


CompletionHandler = Callable[[Outcome], None]


class Timer:
    """
    Single-owner, re-armable timer handle.

    Arming replaces any pending arming, so a timer can never be armed twice.
    The owner keeps the Timer for its whole life and cancels it on close.
    """

    def __init__(self, loop: "EventLoop", name: str):
        self._loop = loop
        self.name = name
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, delay: float, callback: Callable[[], None]) -> None:
        """Fire callback once, delay seconds from now."""
        self.cancel()
        self._handle = self._loop._call_later(delay, self._fire, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            handle, self._handle = self._handle, None
            self._loop._cancel(handle)

    def _fire(self, callback: Callable[[], None]) -> None:
        # Cleared before the callback so the callback may re-arm
        self._handle = None
        callback()

    def __repr__(self) -> str:
        return f"Timer({self.name!r}, armed={self.armed})"


class EventLoop:
    """
    The reactor.

    Usage:
        with EventLoop() as loop:
            timer = loop.timer("poll")
            timer.arm(0.5, check)
            loop.run()          # returns when nothing is pending
    """

    def __init__(self):
        self._loop = asyncio.new_event_loop()
        self._pending = 0
        self._idle: Optional[asyncio.Future] = None

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    @property
    def pending(self) -> int:
        """Number of armed timers plus unfinished operations."""
        return self._pending

    @property
    def is_closed(self) -> bool:
        return self._loop.is_closed()

    def timer(self, name: str) -> Timer:
        """Create a timer owned by the caller."""
        return Timer(self, name)

    def submit(
        self,
        operation: Awaitable[Any],
        on_complete: CompletionHandler,
    ) -> asyncio.Task:
        """
        Start an asynchronous operation.

        on_complete receives the Outcome on the loop thread once the
        operation finishes, fails or is cancelled.
        """
        task = self._loop.create_task(operation)
        self._pending += 1
        task.add_done_callback(functools.partial(self._finish, on_complete))
        return task

    def close_socket(self, sock: socket.socket) -> None:
        """Stop watching a socket and close it."""
        fd = sock.fileno()
        if fd != -1 and not self._loop.is_closed():
            self._loop.remove_reader(fd)
            self._loop.remove_writer(fd)
        sock.close()

    def run(self, timeout: Optional[float] = None) -> None:
        """
        Run callbacks until no timers or operations are pending.

        Returns immediately if nothing is pending. With a timeout, raises
        TimeoutError if work is still pending after that many seconds.
        """
        if self._pending == 0:
            return

        self._idle = self._loop.create_future()
        try:
            if timeout is None:
                self._loop.run_until_complete(self._idle)
            else:
                self._loop.run_until_complete(asyncio.wait_for(self._idle, timeout))
        except asyncio.TimeoutError:
            raise TimeoutError(
                f"Event loop still had {self._pending} pending after {timeout}s"
            ) from None
        finally:
            self._idle = None

    def run_for(self, duration: float) -> None:
        """Run callbacks for a fixed time, whatever is pending."""
        self._loop.run_until_complete(asyncio.sleep(duration))

    def close(self) -> None:
        """
        Release the asyncio loop.

        Operations still running are cancelled; their handlers see a
        cancelled Outcome.
        """
        if self._loop.is_closed():
            return

        tasks = asyncio.all_tasks(self._loop)
        for task in tasks:
            task.cancel()
        if tasks:
            self._loop.run_until_complete(
                asyncio.gather(*tasks, return_exceptions=True)
            )

        self._loop.close()
        logger.debug("Event loop closed")

    def __enter__(self) -> "EventLoop":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _call_later(self, delay: float, fire: Callable, callback: Callable) -> asyncio.TimerHandle:
        self._pending += 1
        return self._loop.call_later(delay, self._run_timer, fire, callback)

    def _cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()
        self._release()

    def _run_timer(self, fire: Callable, callback: Callable) -> None:
        try:
            fire(callback)
        except Exception:
            logger.exception("Timer callback failed")
        finally:
            self._release()

    def _finish(self, on_complete: CompletionHandler, task: asyncio.Task) -> None:
        try:
            if task.cancelled():
                outcome = Outcome(cancelled=True)
            elif task.exception() is not None:
                outcome = Outcome(error=task.exception())
            else:
                outcome = Outcome(value=task.result())
            on_complete(outcome)
        except Exception:
            logger.exception("Completion handler failed")
        finally:
            self._release()

    def _release(self) -> None:
        self._pending -= 1
        if self._pending == 0 and self._idle is not None and not self._idle.done():
            self._idle.set_result(None)


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. EventLoop counts pending timers and operations; run() returns at zero
# 2. Timer is a single-owner handle; arm() replaces a pending arming
# 3. submit() turns a coroutine into a callback-style operation whose
#    Outcome is delivered on the loop thread
# =============================================================================
