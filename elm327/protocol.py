"""Protocol definitions for elm327.

Contains:
- Wire bytes for response framing (line terminators, prompt, annotation marker)
- Adapter commands used by the session layer
- Timing constants for resets, warm-up reads and port I/O
- SerialPort Protocol for type checking
- Logging configuration
"""

import logging
import os
from typing import Protocol

# TRACE logging level (below DEBUG)
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Response framing
CR = 0x0D
LF = 0x0A
PROMPT = 0x3E  # '>' ends every response
LINE_TERMINATORS = (CR, LF)
ANNOTATION_DELIMITER = "<"  # Text after this is not packet data
COMMAND_TERMINATOR = b"\r"
TEXT_ENCODING = "utf-8"

# Adapter commands
RESET_COMMAND = "ATZ"
MONITOR_ALL_COMMAND = "ATMA"

# Serial defaults (configurable via envvar)
DEFAULT_BAUDRATE = 38400  # Overridden by ELM327_BAUDRATE in SerialSettings.from_env
DEFAULT_CONNECT_ATTEMPTS = int(os.environ.get("ELM327_CONNECT_ATTEMPTS", "3"))

# Default timing constants
PORT_READ_TIMEOUT_S = 0.1  # Read timeout for ports opened by open_serial
PORT_WRITE_TIMEOUT_S = 1.0
POLL_INTERVAL_S = 0.01  # Sleep between in_waiting polls while a deadline is set
WARMUP_READ_TIMEOUT_S = 0.5  # Each warm-up read during reconnection
RESET_TIMEOUT_S = 3.0  # ATZ reply after opening the port


class SerialPort(Protocol):
    """Protocol for the duplex byte stream the adapter is reached through."""

    def reset_input_buffer(self) -> None: ...
    def reset_output_buffer(self) -> None: ...
    def write(self, data: bytes, /) -> int | None: ...
    def flush(self) -> None: ...
    def read(self, size: int = ..., /) -> bytes: ...
    @property
    def in_waiting(self) -> int: ...
    def close(self) -> None: ...
