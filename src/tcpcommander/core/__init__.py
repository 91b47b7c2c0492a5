"""
=============================================================================
CORE COMPONENTS
=============================================================================

Everything that runs on the event loop thread, plus the small cells the
input thread shares with it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                            EVENT LOOP                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Owns every timer and socket operation                            │
    │  • Runs callbacks one at a time, no locking needed between them     │
    │  • run() returns when nothing is pending                            │
    └─────────────────────────────────────────────────────────────────────┘
                  │                                   │
                  ▼                                   ▼
    ┌───────────────────────────┐       ┌───────────────────────────┐
    │      NETWORK CLIENT       │       │      WORK SCHEDULER       │
    │  connect / read / write   │       │  periodic simulated jobs  │
    └───────────────────────────┘       └───────────────────────────┘

    SHARED WITH THE INPUT THREAD: CommandMailbox, SharedFlag (pause, stop)

=============================================================================
"""

from .event_loop import EventLoop, Outcome, Timer
from .network_client import ClientStats, ConnectionState, NetworkClient
from .scheduler import WorkScheduler
from .shared import CommandMailbox, SharedFlag

__all__ = [
    "EventLoop",        # Single-threaded reactor
    "Outcome",          # Result of an asynchronous operation
    "Timer",            # Re-armable single-owner timer
    "NetworkClient",    # Non-blocking TCP client
    "ConnectionState",  # DISCONNECTED / CONNECTING / CONNECTED
    "ClientStats",      # Connection counters
    "WorkScheduler",    # Periodic job simulator
    "CommandMailbox",   # Last-write-wins command slot
    "SharedFlag",       # Lock-guarded boolean
]
