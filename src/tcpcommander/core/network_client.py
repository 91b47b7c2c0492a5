"""
=============================================================================
NON-BLOCKING TCP CLIENT
=============================================================================

Owns the one TCP connection of the application and exposes three commands:

    connect(host, port)   blocking resolve + connect, then async announce
    read(byte_count)      async read of exactly byte_count bytes
    write()               async send of the fixed write message

Everything here runs on the event loop thread. read() and write() return
right away; their results arrive later in a completion handler.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    DISCONNECTED ──connect()──► CONNECTING ──ok──► CONNECTED
         ▲                          │                  │
         │                          │ resolve/connect  │ I/O error,
         │                          │ failed           │ peer closed,
         └──────────────────────────┴──────────────────┘ close()

Reads and writes are only issued in CONNECTED.

=============================================================================
STALE COMPLETIONS
=============================================================================

A completion can arrive after its connection is gone:

    read() issued ──► write fails ──► connection dropped
                                          │
    read completion (cancelled) ◄─────────┘   ← must do nothing

Each operation remembers the connection it was issued on. Its handler
first checks that this connection is still the current, CONNECTED one and
returns silently otherwise.

=============================================================================
"""

import socket
import asyncio
import logging
import functools
from collections import deque
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Deque, Optional, Set, Tuple, Union

from ..config import DEFAULT_CONNECT_MESSAGE, DEFAULT_WRITE_MESSAGE, ClientConfig
from ..reporting import Reporter, ReportKind, hex_dump
from .event_loop import EventLoop, Outcome


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    DISCONNECTED = "disconnected"  # No connection
    CONNECTING = "connecting"      # Connect in progress
    CONNECTED = "connected"        # Ready for reads and writes


@dataclass
class ClientStats:
    """Counters kept over the life of the client."""
    connects: int = 0
    connect_failures: int = 0
    bytes_sent: int = 0
    bytes_received: int = 0
    reads_completed: int = 0
    writes_completed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class _Connection:
    """One established socket and the operations running on it."""

    def __init__(self, sock: socket.socket, peer: Tuple[str, str]):
        self.sock = sock
        self.peer = peer
        self.operations: Set[asyncio.Task] = set()
        self.read_in_flight = False
        self.sending = False
        self.send_queue: Deque[Tuple[bytes, ReportKind, str]] = deque()

    @property
    def label(self) -> str:
        return f"{self.peer[0]}:{self.peer[1]}"


class NetworkClient:
    """
    Non-blocking TCP client driven by the event loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     NetworkClient Responsibilities                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  1. CONNECTION OWNERSHIP                                             │
    │     └── one socket at a time, closed on failure or close()          │
    │                                                                      │
    │  2. RECEIVE BUFFER                                                   │
    │     └── fixed capacity, reused by every read                         │
    │     └── bytes past the current read count are unspecified           │
    │                                                                      │
    │  3. SEND ORDERING                                                    │
    │     └── announcement and writes are sent one after another          │
    │                                                                      │
    │  4. REPORTING                                                        │
    │     └── every outcome becomes a Report, nothing raises to callers   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        loop: EventLoop,
        reporter: Reporter,
        max_packet_size: int = 1024,
        connect_message: bytes = DEFAULT_CONNECT_MESSAGE,
        write_message: bytes = DEFAULT_WRITE_MESSAGE,
        connect_timeout: Optional[float] = 5.0,
    ):
        self._loop = loop
        self._reporter = reporter
        self._buffer = bytearray(max_packet_size)
        self._connect_message = bytes(connect_message)
        self._write_message = bytes(write_message)
        self._connect_timeout = connect_timeout

        self._state = ConnectionState.DISCONNECTED
        self._connection: Optional[_Connection] = None
        self.stats = ClientStats()

    @classmethod
    def from_config(cls, loop: EventLoop, reporter: Reporter, config: ClientConfig) -> "NetworkClient":
        return cls(
            loop,
            reporter,
            max_packet_size=config.max_packet_size,
            connect_message=config.connect_message,
            write_message=config.write_message,
            connect_timeout=config.connect_timeout,
        )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def buffer_capacity(self) -> int:
        return len(self._buffer)

    @property
    def peer(self) -> Optional[Tuple[str, str]]:
        return self._connection.peer if self._connection else None

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def connect(self, host: str, port: Union[str, int]) -> bool:
        """
        Connect to a server.

        Does not return until the attempt succeeds or fails. That happens
        quickly enough that making it non-blocking is not worth it.

        On success the connect-announcement message is queued for sending
        (non-blocking). Failures are reported, never raised.

        Returns:
            True if the connection was established.
        """
        if self._connection is not None:
            self._teardown(self._connection)
            self._reporter.emit(
                ReportKind.CONNECTION_CLOSED,
                "Closed existing connection before reconnecting",
            )

        self._state = ConnectionState.CONNECTING
        port = str(port)

        try:
            sock = self._open_socket(host, port)
        except (OSError, UnicodeError) as e:
            self._state = ConnectionState.DISCONNECTED
            self.stats.connect_failures += 1
            self._reporter.emit(
                ReportKind.CONNECT_FAILED,
                f"Client connection to {host}:{port} failed: {e}",
                host=host,
                port=port,
                error=str(e),
            )
            return False

        conn = _Connection(sock, (host, port))
        self._connection = conn
        self._state = ConnectionState.CONNECTED
        self.stats.connects += 1
        self._reporter.emit(
            ReportKind.CONNECTED,
            f"Client connected to {conn.label}",
            host=host,
            port=port,
        )

        self._queue_send(conn, self._connect_message, ReportKind.ANNOUNCE_SENT, "connection message")
        return True

    def read(self, byte_count: int) -> bool:
        """
        Read exactly byte_count bytes from the server.

        Returns right away. When the bytes arrive (or the peer closes first)
        a READ_COMPLETE report carries them.

        Returns:
            True if the read was issued.
        """
        conn = self._connection
        if not self.is_connected or conn is None:
            self._reporter.emit(ReportKind.NOT_CONNECTED, "Read request but no connection")
            return False

        if byte_count < 1:
            self._reporter.emit(
                ReportKind.INVALID_READ_SIZE,
                f"Error in read command: byte count {byte_count} must be at least 1",
                requested=byte_count,
            )
            return False

        if byte_count > self.buffer_capacity:
            self._reporter.emit(
                ReportKind.INVALID_READ_SIZE,
                f"Too many bytes requested: {byte_count} > {self.buffer_capacity}",
                requested=byte_count,
            )
            return False

        if conn.read_in_flight:
            self._reporter.emit(ReportKind.READ_BUSY, "Read already in progress")
            return False

        conn.read_in_flight = True
        self._start(
            conn,
            self._receive(conn.sock, byte_count),
            functools.partial(self._on_read, conn, byte_count),
        )
        self._reporter.emit(
            ReportKind.READ_STARTED,
            f"Waiting for server to reply ({byte_count} bytes)",
            requested=byte_count,
        )
        return True

    def write(self) -> bool:
        """
        Send the pre-defined write message to the server.

        Returns right away; WRITE_SENT is reported when the whole message
        has been handed to the kernel.

        Returns:
            True if the write was issued.
        """
        conn = self._connection
        if not self.is_connected or conn is None:
            self._reporter.emit(ReportKind.NOT_CONNECTED, "Write request but no connection")
            return False

        self._queue_send(conn, self._write_message, ReportKind.WRITE_SENT, "write message")
        return True

    def close(self) -> None:
        """Close the connection, abandoning any operation still running."""
        conn = self._connection
        if conn is None:
            return
        self._teardown(conn)
        self._reporter.emit(
            ReportKind.CONNECTION_CLOSED,
            f"Connection to {conn.label} closed by client",
            host=conn.peer[0],
            port=conn.peer[1],
        )

    # =========================================================================
    # SOCKET OPERATIONS
    # =========================================================================

    def _open_socket(self, host: str, port: str) -> socket.socket:
        # create_connection tries every resolved address in turn
        sock = socket.create_connection((host, port), timeout=self._connect_timeout)
        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            sock.setblocking(False)
        except OSError:
            sock.close()
            raise
        return sock

    async def _receive(self, sock: socket.socket, byte_count: int) -> int:
        """Fill the buffer with byte_count bytes; fewer only if the peer closes."""
        loop = asyncio.get_running_loop()
        view = memoryview(self._buffer)
        received = 0
        while received < byte_count:
            n = await loop.sock_recv_into(sock, view[received:byte_count])
            if n == 0:
                break
            received += n
        return received

    @staticmethod
    async def _transmit(sock: socket.socket, payload: bytes) -> int:
        await asyncio.get_running_loop().sock_sendall(sock, payload)
        return len(payload)

    # =========================================================================
    # COMPLETION HANDLERS
    # =========================================================================

    def _on_read(self, conn: _Connection, requested: int, outcome: Outcome) -> None:
        if not self._is_current(conn):
            return
        conn.read_in_flight = False

        if outcome.cancelled:
            return

        if outcome.error is not None:
            self._drop(conn, f"Connection closed during read: {outcome.error}")
            return

        received = outcome.value
        if received:
            data = bytes(self._buffer[:received])
            self.stats.bytes_received += received
            self.stats.reads_completed += 1
            self._reporter.emit(
                ReportKind.READ_COMPLETE,
                f"{received} bytes read: {hex_dump(data)}",
                requested=requested,
                received=received,
                data=data,
            )

        if received < requested:
            self._drop(conn, "Connection closed by server")

    def _on_sent(
        self,
        conn: _Connection,
        payload: bytes,
        kind: ReportKind,
        what: str,
        outcome: Outcome,
    ) -> None:
        if not self._is_current(conn):
            return
        conn.sending = False

        if outcome.cancelled:
            return

        if not outcome.ok or outcome.value != len(payload):
            self._drop(conn, f"Error sending {what} to server: {outcome.error}")
            return

        self.stats.bytes_sent += outcome.value
        self.stats.writes_completed += 1
        self._reporter.emit(
            kind,
            f"{what.capitalize()} sent to server ({outcome.value} bytes)",
            bytes_sent=outcome.value,
        )

        if conn.send_queue:
            self._send_next(conn)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _queue_send(self, conn: _Connection, payload: bytes, kind: ReportKind, what: str) -> None:
        conn.send_queue.append((payload, kind, what))
        if not conn.sending:
            self._send_next(conn)

    def _send_next(self, conn: _Connection) -> None:
        payload, kind, what = conn.send_queue.popleft()
        conn.sending = True
        self._start(
            conn,
            self._transmit(conn.sock, payload),
            functools.partial(self._on_sent, conn, payload, kind, what),
        )

    def _start(self, conn: _Connection, operation, handler) -> None:
        task = self._loop.submit(operation, handler)
        conn.operations.add(task)
        task.add_done_callback(conn.operations.discard)

    def _is_current(self, conn: _Connection) -> bool:
        return conn is self._connection and self._state is ConnectionState.CONNECTED

    def _drop(self, conn: _Connection, message: str) -> None:
        self._teardown(conn)
        self._reporter.emit(
            ReportKind.CONNECTION_CLOSED,
            message,
            host=conn.peer[0],
            port=conn.peer[1],
        )

    def _teardown(self, conn: _Connection) -> None:
        """Forget the connection, cancel its operations, close its socket."""
        if self._connection is conn:
            self._connection = None
            self._state = ConnectionState.DISCONNECTED

        conn.send_queue.clear()
        for task in list(conn.operations):
            task.cancel()
        self._loop.close_socket(conn.sock)
        logger.debug(f"Socket to {conn.label} released")
