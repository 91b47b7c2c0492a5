"""
=============================================================================
TCP COMMANDER CLI ENTRY POINT
=============================================================================

    # Run with defaults (work every 2s, commands checked every 0.5s)
    python -m tcpcommander

    # Faster work cycle, connect right away
    python -m tcpcommander --work-period 0.5 --connect 127.0.0.1 5555

    # Machine readable logs
    python -m tcpcommander --log-format json

Once running, type commands followed by <ENTER>:

    c <ip> <port>   connect          r <count>   read count bytes
    w               write message    q           pause work
    x               stop

=============================================================================
"""

import argparse
import sys

from . import __version__
from .app import CommanderApp
from .config import ClientConfig
from .reporting import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tcpcommander",
        description="Non-blocking TCP client driven by keyboard commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tcpcommander                              # Run with defaults
  python -m tcpcommander --connect 127.0.0.1 5555     # Connect on startup
  python -m tcpcommander --work-period 0.5            # Faster work cycle
  TCPCMD_LOG_LEVEL=DEBUG python -m tcpcommander       # Config from env
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # TIMER ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--work-period",
        type=float,
        default=None,
        help="Seconds between simulated job completions (default: 2.0)",
    )

    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between command mailbox checks (default: 0.5)",
    )

    parser.add_argument(
        "--startup-delay",
        type=float,
        default=None,
        help="Seconds before keyboard input is read (default: 3.0)",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-packet-size",
        type=int,
        default=None,
        help="Largest read request in bytes (default: 1024)",
    )

    parser.add_argument(
        "--connect-timeout",
        type=float,
        default=None,
        help="Seconds to wait for a connection (default: 5.0)",
    )

    parser.add_argument(
        "--connect",
        nargs=2,
        metavar=("HOST", "PORT"),
        default=None,
        help="Connect to HOST PORT as soon as the client starts",
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log output format (default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tcpcommander {__version__}",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ClientConfig:
    """Environment first, then anything given on the command line."""
    config = ClientConfig.from_env()

    overrides = {
        "work_period": args.work_period,
        "poll_interval": args.poll_interval,
        "startup_delay": args.startup_delay,
        "max_packet_size": args.max_packet_size,
        "connect_timeout": args.connect_timeout,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    setup_logging(config.log_level, config.log_format)

    app = CommanderApp(config)
    if args.connect:
        host, port = args.connect
        app.submit_command(f"c {host} {port}")

    return app.run()


if __name__ == "__main__":
    sys.exit(main())
