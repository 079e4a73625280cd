"""Client for ELM327 OBD-II adapters over a serial link.

This package contains:
- protocol: Wire constants, adapter commands, timing defaults, SerialPort Protocol
- errors: Flat error kinds raised by every layer
- packet: Decoding response lines into 64-bit packets and bit ranges
- io: Command writer and prompt-delimited response reader
- session: Elm327 session (timeouts, retry, monitor) and connect
- device: Serial port settings and opening
"""

from elm327.device import SerialSettings, open_serial
from elm327.errors import (
    ClearError,
    ConversionError,
    Elm327Error,
    FlushError,
    OpenError,
    PacketError,
    ReadError,
    TimedOutError,
    WriteError,
)
from elm327.io import read_response, write_command
from elm327.packet import Packet, parse_packet
from elm327.protocol import SerialPort
from elm327.session import Elm327, connect

__all__ = [
    # Session
    "Elm327",
    "connect",
    # Transport
    "SerialPort",
    "SerialSettings",
    "open_serial",
    "read_response",
    "write_command",
    # Packets
    "Packet",
    "parse_packet",
    # Exceptions
    "ClearError",
    "ConversionError",
    "Elm327Error",
    "FlushError",
    "OpenError",
    "PacketError",
    "ReadError",
    "TimedOutError",
    "WriteError",
]
