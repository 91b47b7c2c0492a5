"""
=============================================================================
REPORT CHANNEL AND LOGGING SETUP
=============================================================================

Every observable event in the client (a job finished, a connect failed, a
command was malformed) goes through ONE channel: the Reporter.

    component ──► Reporter.emit(kind, message, **details)
                      │
                      ├──► logger "tcpcommander.events" (level by kind)
                      │
                      └──► subscribed listeners (tests, future UIs)

The components only promise "an event of kind K happened". How it is shown
is decided here.

=============================================================================
"""

import json
import time
import logging
import threading
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List


logger = logging.getLogger("tcpcommander.events")


class ReportKind(Enum):
    """Kinds of events the client reports."""

    # Network client
    CONNECTED = "connected"
    CONNECT_FAILED = "connect_failed"
    ANNOUNCE_SENT = "announce_sent"
    WRITE_SENT = "write_sent"
    READ_STARTED = "read_started"
    READ_COMPLETE = "read_complete"
    CONNECTION_CLOSED = "connection_closed"
    NOT_CONNECTED = "not_connected"
    INVALID_READ_SIZE = "invalid_read_size"
    READ_BUSY = "read_busy"

    # Command dispatcher
    COMMAND_RECEIVED = "command_received"
    MALFORMED_COMMAND = "malformed_command"
    UNRECOGNIZED_COMMAND = "unrecognized_command"

    # Work scheduler
    JOB_COMPLETED = "job_completed"
    STOPPING = "stopping"

    # Input monitor
    INPUT_RECEIVED = "input_received"
    INPUT_IGNORED = "input_ignored"
    PAUSED = "paused"
    STOP_REQUESTED = "stop_requested"


_WARNING_KINDS = frozenset({
    ReportKind.CONNECT_FAILED,
    ReportKind.CONNECTION_CLOSED,
    ReportKind.NOT_CONNECTED,
    ReportKind.INVALID_READ_SIZE,
    ReportKind.READ_BUSY,
    ReportKind.MALFORMED_COMMAND,
    ReportKind.UNRECOGNIZED_COMMAND,
})

_DEBUG_KINDS = frozenset({
    ReportKind.INPUT_IGNORED,
})


def level_for(kind: ReportKind) -> int:
    """Logging level used for a report kind."""
    if kind in _WARNING_KINDS:
        return logging.WARNING
    if kind in _DEBUG_KINDS:
        return logging.DEBUG
    return logging.INFO


@dataclass
class Report:
    """
    One reported event.

    Attributes:
        kind: What happened.
        message: Human readable description.
        details: Extra structured values (byte counts, addresses, ...).
        timestamp: When the report was emitted.
    """
    kind: ReportKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp,
        }


Listener = Callable[[Report], None]


class Reporter:
    """
    Fan-out of reports to the log and to listeners.

    Reports are emitted from both threads (the input monitor reports on its
    own thread), so the listener list is guarded by a lock. Listeners are
    called outside the lock.
    """

    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def emit(self, kind: ReportKind, message: str, **details: Any) -> Report:
        """Log a report and hand it to every listener."""
        report = Report(kind=kind, message=message, details=details)
        logger.log(level_for(kind), message, extra={"kind": kind.value})

        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(report)
            except Exception:
                # Listener failures are logged, never raised to the emitter
                logger.exception(f"Report listener failed for {kind.value}")

        return report


def hex_dump(data: bytes) -> str:
    """Space separated lowercase hex, e.g. b"\\x02\\xfd" -> "02 fd"."""
    return data.hex(" ")


# =============================================================================
# LOGGING SETUP
# =============================================================================

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line.

    Better for log aggregators than the text format. The report kind is
    included when the record came from the Reporter.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        kind = getattr(record, "kind", None)
        if kind is not None:
            entry["kind"] = kind
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(log_level: str = "INFO", log_format: str = "text") -> None:
    """Configure logging based on config."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.basicConfig(level=level, handlers=[handler], force=True)
    else:
        logging.basicConfig(
            level=level,
            format=TEXT_FORMAT,
            datefmt=DATE_FORMAT,
            force=True,
        )

    logging.getLogger("tcpcommander").setLevel(level)
