"""pytest configuration and fixtures for elm327 tests.

Provides:
- MockSerialPort: Scripted adapter stand-in for unit tests
- FlakyOpener: Port opener that fails a set number of times
- Markers for unit tests
"""

import threading
from collections import deque

import pytest
import serial


class MockSerialPort:
    """Mock serial port that behaves like an adapter.

    Replies queued with reply() are released one per command write, and only
    become readable after the reader clears the input buffer, as they would
    on a real link where the adapter answers after the command is sent.
    A reply of None means the adapter stays silent for that command.

    Bytes passed to inject() are stale: they sit in the input buffer and are
    discarded by reset_input_buffer(). Bytes passed to feed() arrive later
    and survive the clear.

    An empty read models the port's read timeout expiring. With block_reads
    set, the port stands in for pyserial opened with timeout=None: a read
    issued while nothing is waiting would hang, so it is counted in
    blocked_reads instead.
    """

    def __init__(self) -> None:
        self.written: list[bytes] = []
        self.input_resets = 0
        self.output_resets = 0
        self.flushes = 0
        self.closed = False
        self.fail: set[str] = set()
        self._replies: deque[bytes | None] = deque()
        self._incoming = bytearray()
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self.block_reads = False
        self.blocked_reads = 0

    def _check(self, op: str) -> None:
        if op in self.fail:
            raise serial.SerialException(f"{op} failed")

    def reply(self, *replies: bytes | None) -> None:
        """Queue adapter replies, one per subsequent command write."""
        self._replies.extend(replies)

    def feed(self, data: bytes) -> None:
        """Make data arrive after the next input buffer clear."""
        with self._lock:
            self._incoming += data

    def inject(self, data: bytes) -> None:
        """Put stale data into the input buffer."""
        with self._lock:
            self._buffer += data

    def reset_input_buffer(self) -> None:
        self._check("reset_input")
        with self._lock:
            self.input_resets += 1
            self._buffer.clear()

    def reset_output_buffer(self) -> None:
        self._check("reset_output")
        self.output_resets += 1

    def write(self, data: bytes) -> int:
        self._check("write")
        self.written.append(bytes(data))
        if self._replies:
            reply = self._replies.popleft()
            if reply is not None:
                self.feed(reply)
        return len(data)

    def flush(self) -> None:
        self._check("flush")
        self.flushes += 1

    def _arrive(self) -> None:
        if not self._buffer and self._incoming:
            self._buffer += self._incoming
            self._incoming.clear()

    @property
    def in_waiting(self) -> int:
        self._check("read")
        with self._lock:
            self._arrive()
            return len(self._buffer)

    def read(self, size: int = 1, /) -> bytes:
        self._check("read")
        with self._lock:
            self._arrive()
            if not self._buffer and self.block_reads:
                self.blocked_reads += 1
                data = b""
            else:
                data = bytes(self._buffer[:size])
            del self._buffer[:size]
            return data

    def close(self) -> None:
        self.closed = True


class FlakyOpener:
    """Port opener that raises for the first `failures` calls."""

    def __init__(self, ports: list[MockSerialPort], failures: int = 0) -> None:
        self.ports = ports
        self.failures = failures
        self.calls: list[tuple[str, object]] = []

    def __call__(self, path: str, settings: object) -> MockSerialPort:
        self.calls.append((path, settings))
        if len(self.calls) <= self.failures:
            raise serial.SerialException(f"could not open port {path}")
        return self.ports.pop(0)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")


@pytest.fixture
def port() -> MockSerialPort:
    """A fresh scripted mock port."""
    return MockSerialPort()


@pytest.fixture
def make_port() -> type[MockSerialPort]:
    """The MockSerialPort class, for tests needing several ports."""
    return MockSerialPort


@pytest.fixture
def make_opener() -> type[FlakyOpener]:
    """The FlakyOpener class."""
    return FlakyOpener


@pytest.fixture
def fast_timeouts(monkeypatch: pytest.MonkeyPatch) -> None:
    """Shrink connection timing constants so tests run quickly."""
    import elm327.session

    monkeypatch.setattr(elm327.session, "WARMUP_READ_TIMEOUT_S", 0.02)
    monkeypatch.setattr(elm327.session, "RESET_TIMEOUT_S", 0.05)
