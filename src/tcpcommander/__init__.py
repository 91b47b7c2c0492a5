"""
=============================================================================
TCPCOMMANDER - Keyboard Driven Non-Blocking TCP Client
=============================================================================

A small TCP client whose network I/O, timers and operator commands all run
on ONE event loop thread, while a second thread does nothing but wait for
keyboard input.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    tcpcommander/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m tcpcommander)
    ├── app.py               # CommanderApp wiring and lifecycle
    ├── config.py            # ClientConfig dataclass
    ├── reporting.py         # Report channel and logging setup
    ├── core/                # Event loop thread components
    │   ├── event_loop.py    # Reactor, timers, operation outcomes
    │   ├── network_client.py# Non-blocking TCP client state machine
    │   ├── scheduler.py     # Simulated periodic work
    │   └── shared.py        # Cross-thread mailbox and flags
    ├── commands/            # Operator commands
    │   ├── parser.py        # Line -> Command
    │   └── dispatcher.py    # Mailbox polling and routing
    └── console/
        └── monitor.py       # Input thread

=============================================================================
QUICK START
=============================================================================

    from tcpcommander import CommanderApp, ClientConfig

    app = CommanderApp(ClientConfig(work_period=1.0))
    app.submit_command("c 127.0.0.1 5555")
    app.run()      # type 'x<ENTER>' to stop

=============================================================================
"""

__version__ = "1.0.0"

from .app import CommanderApp
from .config import ClientConfig

__all__ = ["CommanderApp", "ClientConfig", "__version__"]
