"""
=============================================================================
CLIENT CONFIGURATION
=============================================================================

Centralized configuration for the command-driven TCP client.

Everything here is a FIXED INPUT to the core: the packet size, the timer
periods and the two outgoing messages are read once at startup and never
negotiated with the peer.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m tcpcommander --work-period 0.5                  │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── TCPCMD_WORK_PERIOD=0.5 python -m tcpcommander             │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional


# 15-byte payloads understood by the peer. Opaque to the client.
DEFAULT_CONNECT_MESSAGE = bytes([
    0x02, 0xFD, 0x00, 0x05, 0x00, 0x00, 0x00, 0x07,
    0x0F, 0x0D, 0x00, 0x00, 0x00, 0x00, 0x00,
])
DEFAULT_WRITE_MESSAGE = bytes([
    0x02, 0xFD, 0x80, 0x01, 0x00, 0x00, 0x00, 0x07,
    0x0F, 0x0D, 0xAA, 0xBB, 0x22, 0x11, 0x22,
])

LOG_FORMATS = ("text", "json")


def _env_float(name: str, default: Optional[float], allow_none: bool = False) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    if raw.lower() == "none":
        if not allow_none:
            raise ValueError(f"{name} must be a number, got {raw!r}")
        return None
    return float(raw)


def _env_bytes(name: str, default: bytes) -> bytes:
    raw = os.getenv(name)
    if not raw:
        return default
    return bytes.fromhex(raw)


@dataclass
class ClientConfig:
    """
    Configuration for the TCP client.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - max_packet_size, connect_timeout, connect_message, write_message

    TIMER SETTINGS
    - work_period, poll_interval, startup_delay

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_packet_size: int = 1024
    """
    Capacity of the receive buffer in bytes.
    A read request may ask for 1..max_packet_size bytes.
    """

    connect_timeout: Optional[float] = 5.0
    """
    Timeout for the blocking connect in seconds.
    None = wait as long as the operating system does.
    """

    connect_message: bytes = field(default=DEFAULT_CONNECT_MESSAGE, repr=False)
    """Sent automatically right after a connection is established."""

    write_message: bytes = field(default=DEFAULT_WRITE_MESSAGE, repr=False)
    """Sent on every write command."""

    # ─────────────────────────────────────────────────────────────────────
    # TIMER SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    work_period: float = 2.0
    """
    Seconds between simulated job completions.
    Slow on purpose so the output stays readable; 0.5 is fine in production.
    """

    poll_interval: float = 0.5
    """Seconds between checks of the command mailbox."""

    startup_delay: float = 3.0
    """
    Seconds to wait before the input monitor starts reading.
    Gives the operator time to read the usage banner.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Log format: 'json' or 'text'."""

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TCPCMD_MAX_PACKET_SIZE  Receive buffer capacity (default: 1024)
        TCPCMD_WORK_PERIOD      Work cycle period in seconds (default: 2.0)
        TCPCMD_POLL_INTERVAL    Mailbox poll period in seconds (default: 0.5)
        TCPCMD_STARTUP_DELAY    Input monitor delay in seconds (default: 3.0)
        TCPCMD_CONNECT_TIMEOUT  Connect timeout, or "none" (default: 5.0)
        TCPCMD_CONNECT_MESSAGE  Announcement payload as hex
        TCPCMD_WRITE_MESSAGE    Write payload as hex
        TCPCMD_LOG_LEVEL        Logging level (default: INFO)
        TCPCMD_LOG_FORMAT       text or json (default: text)

        =====================================================================
        """
        return cls(
            max_packet_size=int(os.getenv("TCPCMD_MAX_PACKET_SIZE", "1024")),
            work_period=_env_float("TCPCMD_WORK_PERIOD", 2.0),
            poll_interval=_env_float("TCPCMD_POLL_INTERVAL", 0.5),
            startup_delay=_env_float("TCPCMD_STARTUP_DELAY", 3.0),
            connect_timeout=_env_float("TCPCMD_CONNECT_TIMEOUT", 5.0, allow_none=True),
            connect_message=_env_bytes("TCPCMD_CONNECT_MESSAGE", DEFAULT_CONNECT_MESSAGE),
            write_message=_env_bytes("TCPCMD_WRITE_MESSAGE", DEFAULT_WRITE_MESSAGE),
            log_level=os.getenv("TCPCMD_LOG_LEVEL", "INFO"),
            log_format=os.getenv("TCPCMD_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before any thread or
        socket exists.
        """
        if self.max_packet_size < 1:
            raise ValueError("max_packet_size must be >= 1")

        for name in ("work_period", "poll_interval"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")

        if self.startup_delay < 0:
            raise ValueError("startup_delay must be >= 0")

        if self.connect_timeout is not None and self.connect_timeout <= 0:
            raise ValueError("connect_timeout must be > 0")

        if not self.connect_message:
            raise ValueError("connect_message must not be empty")

        if not self.write_message:
            raise ValueError("write_message must not be empty")

        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"Invalid log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid log format: {self.log_format}. Must be one of {LOG_FORMATS}."
            )
