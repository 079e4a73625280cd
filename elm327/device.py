"""Serial device setup for elm327.

Contains:
- SerialSettings: Port configuration passed to open_serial
- describe_device: Identify the adapter behind a device path
- open_serial: Open and configure a serial port
"""

import logging
import os
from dataclasses import dataclass

import serial
import serial.tools.list_ports

from elm327.errors import OpenError
from elm327.protocol import (
    DEFAULT_BAUDRATE,
    PORT_READ_TIMEOUT_S,
    PORT_WRITE_TIMEOUT_S,
)

logger = logging.getLogger(__name__)


@dataclass
class SerialSettings:
    """Serial port configuration for an adapter link."""

    baudrate: int = DEFAULT_BAUDRATE
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_NONE
    stopbits: float = serial.STOPBITS_ONE
    rtscts: bool = False
    timeout: float | None = PORT_READ_TIMEOUT_S
    write_timeout: float = PORT_WRITE_TIMEOUT_S

    @classmethod
    def from_env(cls) -> "SerialSettings":
        """Build settings from ELM327_* environment variables."""
        return cls(
            baudrate=int(os.environ.get("ELM327_BAUDRATE", str(DEFAULT_BAUDRATE))),
            rtscts=os.environ.get("ELM327_RTSCTS", "0") == "1",
        )


def describe_device(device: str) -> str:
    """Return a one-line description of the adapter behind device.

    Bluetooth adapters bound with rfcomm and pty links (emulators, socat)
    never show up in the USB port list, so they are described by path.
    """
    real_path = os.path.realpath(device)
    if real_path.startswith("/dev/pts/"):
        return f"{device} -> {real_path} (pty)"
    if os.path.basename(real_path).startswith("rfcomm"):
        return f"{device} (Bluetooth RFCOMM)"

    for info in serial.tools.list_ports.comports():
        if info.device not in (device, real_path):
            continue
        if info.vid is None:
            return f"{device} ({info.description})"
        return f"{device} ({info.description}, {info.vid:04x}:{info.pid:04x})"

    return f"{device} (not in port list)"


def open_serial(device: str, settings: SerialSettings | None = None) -> serial.Serial:
    """Open and configure a serial port for an adapter.

    Raises:
        OpenError: If the port cannot be opened.
    """
    if settings is None:
        settings = SerialSettings()

    logger.info(f"Opening adapter at {describe_device(device)}")
    try:
        ser = serial.Serial(
            port=device,
            baudrate=settings.baudrate,
            bytesize=settings.bytesize,
            parity=settings.parity,
            stopbits=settings.stopbits,
            xonxoff=False,
            rtscts=settings.rtscts,
            timeout=settings.timeout,
            write_timeout=settings.write_timeout,
        )
    except (serial.SerialException, OSError, ValueError) as e:
        raise OpenError(f"Failed to open {device}: {e}") from e

    logger.debug(f"Serial port: baudrate={ser.baudrate}, rtscts={ser.rtscts}")
    return ser
