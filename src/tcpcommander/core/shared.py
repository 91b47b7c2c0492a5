"""
Cross-thread state.

These are the ONLY objects touched by both the input thread and the event
loop thread:

    ┌──────────────────┐   set()            ┌──────────────────┐
    │  Input monitor   │ ─────────────────► │  CommandMailbox  │
    │   (thread B)     │                    └────────┬─────────┘
    │                  │   set()/clear()             │ take_and_clear()
    │                  │ ─────────► pause flag       ▼
    │                  │ ─────────► stop flag   event loop (thread A)
    └──────────────────┘

Each cell owns its own lock. Nobody waits on them: the loop side polls.
"""

import threading


class CommandMailbox:
    """
    Single-slot, last-write-wins hand-off for operator commands.

    A command that has not been taken yet is overwritten by a newer one.
    That is accepted behaviour: the operator typed faster than the poll
    interval and only the latest command counts.
    """

    EMPTY = ""

    def __init__(self):
        self._lock = threading.Lock()
        self._command = self.EMPTY

    def set(self, command: str) -> None:
        """Store a command, replacing any unconsumed one."""
        with self._lock:
            self._command = command

    def take_and_clear(self) -> str:
        """
        Return the pending command and empty the slot in one step.

        Returns "" when nothing is pending. Each stored command is returned
        at most once.
        """
        with self._lock:
            command, self._command = self._command, self.EMPTY
        return command

    def __repr__(self) -> str:
        with self._lock:
            return f"CommandMailbox(pending={self._command!r})"


class SharedFlag:
    """
    Lock-guarded boolean used for the pause and stop flags.

    A latching flag (the stop flag) cannot be cleared once set.
    """

    def __init__(self, name: str, initial: bool = False, latching: bool = False):
        self.name = name
        self.latching = latching
        self._lock = threading.Lock()
        self._value = initial

    def set(self) -> None:
        with self._lock:
            self._value = True

    def clear(self) -> None:
        with self._lock:
            if self.latching and self._value:
                return
            self._value = False

    def is_set(self) -> bool:
        with self._lock:
            return self._value

    def __bool__(self) -> bool:
        return self.is_set()

    def __repr__(self) -> str:
        return f"SharedFlag({self.name!r}, {self.is_set()})"
