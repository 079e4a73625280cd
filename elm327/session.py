"""Command/response session with an ELM327 adapter.

Contains:
- Elm327: Session over a single serial port (write, timeouts, retry, monitor)
- connect: Open a port and reset the adapter, retrying with warm-up reads

A session owns its port exclusively. Operations are sequential and must not
be called concurrently; a timed-out exchange is abandoned and its leftover
bytes are discarded by the buffer clears of the next operation.
"""

import logging
import time
from collections.abc import Callable

import serial

from elm327.device import SerialSettings, open_serial
from elm327.errors import (
    Elm327Error,
    FlushError,
    OpenError,
    TimedOutError,
    WriteError,
)
from elm327.io import LineCallback, always_continue, read_response, write_command
from elm327.protocol import (
    DEFAULT_CONNECT_ATTEMPTS,
    MONITOR_ALL_COMMAND,
    RESET_COMMAND,
    RESET_TIMEOUT_S,
    WARMUP_READ_TIMEOUT_S,
    SerialPort,
)

logger = logging.getLogger(__name__)

PortOpener = Callable[[str, SerialSettings | None], SerialPort]


def _deadline(timeout_s: float | None) -> float | None:
    if timeout_s is None:
        return None
    return time.monotonic() + timeout_s


class Elm327:
    """Session with an ELM327 adapter over an already-open port.

    Usage::

        elm = Elm327.connect("/dev/ttyUSB0")
        lines = elm.write_with_timeout("0100", 2.0)
        elm.close()
    """

    def __init__(self, port: SerialPort) -> None:
        self._port = port

    @property
    def port(self) -> SerialPort:
        return self._port

    @classmethod
    def connect(
        cls,
        path: str,
        settings: SerialSettings | None = None,
        max_attempts: int = DEFAULT_CONNECT_ATTEMPTS,
        opener: PortOpener = open_serial,
    ) -> "Elm327":
        """Open the port at path and reset the adapter.

        Each failed attempt (open failure or reset failure) counts towards
        max_attempts. After a failure, the next session first performs one
        bounded warm-up read per previous failure, discarding the outcome,
        to drain noise the adapter produced while booting.

        Raises:
            TimedOutError: If no attempt succeeds within max_attempts.
        """
        attempt = 0

        while attempt < max_attempts:
            logger.info(f"Connecting to {path} (attempt {attempt + 1}/{max_attempts})")
            try:
                port = opener(path, settings)
            except (OpenError, serial.SerialException, OSError) as e:
                logger.warning(f"Failed to open {path}: {e}")
                attempt += 1
                continue

            elm = cls(port)
            for _ in range(attempt):
                elm._warm_up()

            try:
                reply = elm.write_with_timeout(RESET_COMMAND, RESET_TIMEOUT_S)
            except Elm327Error as e:
                logger.warning(f"Adapter reset failed on {path}: {e!r}")
                elm.close()
                attempt += 1
                continue

            logger.debug(f"Reset reply: {reply}")
            logger.info(f"Connected to {path}")
            return elm

        raise TimedOutError(f"Could not connect to {path} after {max_attempts} attempts")

    def _warm_up(self) -> None:
        """Bounded read whose result is discarded."""
        try:
            lines = self.read(timeout_s=WARMUP_READ_TIMEOUT_S)
        except Elm327Error as e:
            logger.debug(f"Warm-up read discarded: {e!r}")
            return
        logger.debug(f"Warm-up read discarded {len(lines)} lines")

    def close(self) -> None:
        """Close the underlying port."""
        try:
            self._port.close()
        except (serial.SerialException, OSError) as e:
            logger.warning(f"Failed to close port: {e}")

    def __enter__(self) -> "Elm327":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Command/response
    # -------------------------------------------------------------------------

    def write_no_response(self, command: str) -> None:
        """Send a command without reading a response."""
        write_command(self._port, command)

    def read(
        self,
        on_line: LineCallback = always_continue,
        timeout_s: float | None = None,
    ) -> list[str]:
        """Read response lines until the prompt or until on_line returns False.

        Without timeout_s this may block indefinitely waiting for the prompt.
        """
        return read_response(self._port, on_line, deadline=_deadline(timeout_s))

    def write(self, command: str) -> list[str]:
        """Send a command and return every response line up to the prompt."""
        self.write_no_response(command)
        return self.read()

    def write_with_timeout(self, command: str, timeout_s: float) -> list[str]:
        """Like write, but raise TimedOutError if timeout_s elapses first.

        The deadline covers sending as well: a write that stalls past it, or
        that pyserial aborts with its own write timeout, is a TimedOutError.
        """
        deadline = _deadline(timeout_s)
        try:
            self.write_no_response(command)
        except (WriteError, FlushError) as e:
            stalled = isinstance(e.__cause__, serial.SerialTimeoutException)
            if stalled or (deadline is not None and time.monotonic() >= deadline):
                raise TimedOutError(f"Timed out sending {command!r}") from e
            raise
        if deadline is not None and time.monotonic() >= deadline:
            raise TimedOutError(f"Timed out sending {command!r}")
        try:
            return read_response(self._port, deadline=deadline)
        except TimedOutError:
            logger.debug(f"{command!r} timed out after {timeout_s}s")
            raise

    def write_with_retry(self, command: str, timeout_s: float, max_attempts: int) -> list[str]:
        """Like write_with_timeout, retrying timeouts up to max_attempts in total.

        Any error other than a timeout is raised immediately.
        """
        attempt = 1
        while True:
            try:
                return self.write_with_timeout(command, timeout_s)
            except TimedOutError:
                if attempt >= max_attempts:
                    raise TimedOutError(
                        f"{command!r} timed out after {attempt} attempts"
                    ) from None
                logger.warning(f"{command!r} timed out, retrying ({attempt}/{max_attempts})")
                attempt += 1

    def monitor(self, on_line: LineCallback) -> list[str]:
        """Monitor all bus traffic until on_line returns False or a prompt.

        The adapter is always told to stop monitoring afterwards, even if the
        read failed. A stop failure after a failed read is only logged so the
        read's error is the one raised.
        """
        self.write_no_response(MONITOR_ALL_COMMAND)

        try:
            lines = self.read(on_line)
        except Elm327Error:
            try:
                self.write("")
            except Elm327Error as stop_error:
                logger.warning(f"Failed to stop monitoring: {stop_error!r}")
            raise

        self.write("")
        return lines


def connect(
    path: str,
    settings: SerialSettings | None = None,
    max_attempts: int = DEFAULT_CONNECT_ATTEMPTS,
    opener: PortOpener = open_serial,
) -> Elm327:
    """Open the adapter at path. See Elm327.connect."""
    return Elm327.connect(path, settings, max_attempts=max_attempts, opener=opener)
