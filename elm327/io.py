"""Serial I/O helpers for elm327.

Contains:
- write_command: Send a carriage-return terminated command
- read_response: Split incoming bytes into lines until the prompt
"""

import logging
import time
from collections.abc import Callable

import serial

from elm327.errors import (
    ClearError,
    FlushError,
    ReadError,
    TimedOutError,
    WriteError,
)
from elm327.protocol import (
    COMMAND_TERMINATOR,
    LINE_TERMINATORS,
    POLL_INTERVAL_S,
    PROMPT,
    TEXT_ENCODING,
    TRACE,
    SerialPort,
)

logger = logging.getLogger(__name__)

LineCallback = Callable[[str], bool]

_PORT_ERRORS = (serial.SerialException, OSError)


def always_continue(_line: str) -> bool:
    """Line callback that keeps reading until the prompt."""
    return True


def write_command(port: SerialPort, command: str) -> None:
    """Send a command terminated by a single carriage return.

    Pending output is discarded before writing and the port is flushed
    afterwards so the command is physically sent.

    Raises:
        ClearError: If the output buffer cannot be cleared.
        WriteError: If the write fails.
        FlushError: If the flush fails.
    """
    data = command.encode(TEXT_ENCODING) + COMMAND_TERMINATOR

    try:
        port.reset_output_buffer()
    except _PORT_ERRORS as e:
        raise ClearError(f"Failed to clear output buffer: {e}") from e

    try:
        port.write(data)
    except _PORT_ERRORS as e:
        raise WriteError(f"Failed to write {command!r}: {e}") from e

    try:
        port.flush()
    except _PORT_ERRORS as e:
        raise FlushError(f"Failed to flush after {command!r}: {e}") from e

    logger.debug(f"Sent {command!r}")


def _bytes_waiting(port: SerialPort) -> int:
    try:
        return port.in_waiting
    except _PORT_ERRORS as e:
        raise ReadError(f"Failed to poll port: {e}") from e


def _decode_line(buf: bytearray) -> str | None:
    """Decode an accumulated line, or None if it should be dropped."""
    try:
        line = buf.decode(TEXT_ENCODING)
    except UnicodeDecodeError:
        logger.debug(f"Dropping undecodable line: {bytes(buf)!r}")
        return None
    if not line.strip():
        return None
    return line


def read_response(
    port: SerialPort,
    on_line: LineCallback = always_continue,
    deadline: float | None = None,
) -> list[str]:
    """Read response lines until the prompt or until on_line returns False.

    The input buffer is cleared first so bytes left over from an earlier,
    possibly abandoned, exchange are not mistaken for this response. Each
    non-empty line is appended to the result and then passed to on_line.
    A prompt always ends the read, even if on_line asked to continue.

    With a deadline, bytes are only read once the port reports them waiting,
    so a port opened without a read timeout cannot block past the deadline.
    Without a deadline this blocks until the prompt; an empty read means the
    port's own timeout expired and the scan continues.

    Args:
        port: Serial port to read from.
        on_line: Called with each line; return False to stop early.
        deadline: time.monotonic() value after which the read is abandoned.

    Returns:
        Lines in arrival order.

    Raises:
        ClearError: If the input buffer cannot be cleared.
        ReadError: If reading from the port fails.
        TimedOutError: If the deadline passes before the read completes.
    """
    try:
        port.reset_input_buffer()
    except _PORT_ERRORS as e:
        raise ClearError(f"Failed to clear input buffer: {e}") from e

    buf = bytearray()
    lines: list[str] = []

    while True:
        if deadline is not None and time.monotonic() >= deadline:
            raise TimedOutError(f"Timed out after {len(lines)} lines")

        if deadline is not None and not _bytes_waiting(port):
            time.sleep(min(POLL_INTERVAL_S, max(0.0, deadline - time.monotonic())))
            continue

        try:
            chunk = port.read(1)
        except _PORT_ERRORS as e:
            raise ReadError(f"Failed to read from port: {e}") from e

        if not chunk:
            continue

        byte = chunk[0]
        if byte not in LINE_TERMINATORS and byte != PROMPT:
            buf.append(byte)
            continue

        if buf:
            line = _decode_line(buf)
            buf = bytearray()
            if line is not None:
                lines.append(line)
                logger.log(TRACE, f"Line {len(lines)}: {line!r}")
                if not on_line(line):
                    logger.debug(f"Read stopped by callback after {len(lines)} lines")
                    return lines

        if byte == PROMPT:
            return lines
