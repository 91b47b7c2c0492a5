"""
pytest configuration and fixtures.
"""

import queue
import socket
import threading
import time
from typing import Callable, Generator, List, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tcpcommander.config import ClientConfig
from tcpcommander.core import EventLoop, NetworkClient
from tcpcommander.reporting import Report, Reporter, ReportKind


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll predicate until it holds or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class ReportRecorder:
    """Listener that keeps every report, safe to read from the test thread."""

    def __init__(self):
        self._lock = threading.Lock()
        self._reports: List[Report] = []

    def __call__(self, report: Report) -> None:
        with self._lock:
            self._reports.append(report)

    @property
    def reports(self) -> List[Report]:
        with self._lock:
            return list(self._reports)

    def kinds(self) -> List[ReportKind]:
        return [r.kind for r in self.reports]

    def of_kind(self, kind: ReportKind) -> List[Report]:
        return [r for r in self.reports if r.kind is kind]

    def last(self, kind: ReportKind) -> Optional[Report]:
        found = self.of_kind(kind)
        return found[-1] if found else None

    def wait_for(self, kind: ReportKind, count: int = 1, timeout: float = 5.0) -> bool:
        return wait_until(lambda: len(self.of_kind(kind)) >= count, timeout)


class PeerServer:
    """
    TCP peer running in background threads.

    With echo=True every received byte is sent straight back. With
    echo=False received bytes are only recorded; send() pushes data.
    """

    def __init__(self, echo: bool = True):
        self.echo = echo
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(5)
        self._sock.settimeout(0.1)
        self.port = self._sock.getsockname()[1]

        self._lock = threading.Lock()
        self._received = bytearray()
        self._clients: List[socket.socket] = []
        self._running = False
        self._thread: threading.Thread = None

    @property
    def received(self) -> bytes:
        with self._lock:
            return bytes(self._received)

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def start(self) -> "PeerServer":
        self._running = True
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        self._running = False
        self.close_clients()
        self._sock.close()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=2.0)

    def send(self, data: bytes) -> None:
        """Send data to every connected client."""
        with self._lock:
            clients = list(self._clients)
        for client in clients:
            client.sendall(data)

    def close_clients(self) -> None:
        """Close every client connection from the peer side."""
        with self._lock:
            clients, self._clients = self._clients, []
        for client in clients:
            try:
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            client.close()

    def wait_for_clients(self, count: int = 1, timeout: float = 5.0) -> bool:
        return wait_until(lambda: self.client_count >= count, timeout)

    def wait_for_bytes(self, count: int, timeout: float = 5.0) -> bool:
        return wait_until(lambda: len(self.received) >= count, timeout)

    def _accept_loop(self) -> None:
        while self._running:
            try:
                client, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            client.settimeout(0.1)
            with self._lock:
                self._clients.append(client)
            threading.Thread(target=self._serve, args=(client,), daemon=True).start()

    def _serve(self, client: socket.socket) -> None:
        while self._running:
            try:
                data = client.recv(4096)
            except socket.timeout:
                continue
            except OSError:
                break
            if not data:
                break
            with self._lock:
                self._received += data
            if self.echo:
                try:
                    client.sendall(data)
                except OSError:
                    break


class ScriptedInput:
    """
    Blocking line source for the input monitor.

    readline() waits until the test pushes a line; close() delivers EOF.
    """

    def __init__(self):
        self._lines: "queue.Queue[str]" = queue.Queue()

    def push(self, line: str) -> None:
        self._lines.put(line + "\n")

    def close(self) -> None:
        self._lines.put("")

    def readline(self) -> str:
        return self._lines.get()


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing (nothing listens on it)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def echo_peer() -> Generator[PeerServer, None, None]:
    """A listening peer that echoes everything."""
    server = PeerServer(echo=True).start()
    yield server
    server.stop()


@pytest.fixture
def sink_peer() -> Generator[PeerServer, None, None]:
    """A listening peer that records what it receives and never echoes."""
    server = PeerServer(echo=False).start()
    yield server
    server.stop()


@pytest.fixture
def reactor() -> Generator[EventLoop, None, None]:
    loop = EventLoop()
    yield loop
    loop.close()


@pytest.fixture
def recorder() -> ReportRecorder:
    return ReportRecorder()


@pytest.fixture
def reporter(recorder: ReportRecorder) -> Reporter:
    reporter = Reporter()
    reporter.subscribe(recorder)
    return reporter


@pytest.fixture
def fast_config() -> ClientConfig:
    """Configuration with short periods for end-to-end tests."""
    return ClientConfig(
        work_period=0.05,
        poll_interval=0.02,
        startup_delay=0.0,
        connect_timeout=2.0,
    )


@pytest.fixture
def client(reactor: EventLoop, reporter: Reporter) -> Generator[NetworkClient, None, None]:
    client = NetworkClient(reactor, reporter)
    yield client
    client.close()


@pytest.fixture
def scripted_input() -> Generator[ScriptedInput, None, None]:
    source = ScriptedInput()
    yield source
    source.close()
