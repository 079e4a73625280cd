"""Error kinds raised by elm327.

Every error derives directly from Elm327Error; there is no deeper
hierarchy. Transport failures carry the underlying serial exception as
``__cause__``.
"""


class Elm327Error(Exception):
    """Base class for all elm327 errors."""

    pass


class OpenError(Elm327Error):
    """Raised when the serial transport cannot be opened."""

    pass


class ClearError(Elm327Error):
    """Raised when clearing an input or output buffer fails."""

    pass


class WriteError(Elm327Error):
    """Raised when writing a command to the transport fails."""

    pass


class FlushError(Elm327Error):
    """Raised when flushing the transport fails."""

    pass


class ReadError(Elm327Error):
    """Raised when reading a byte from the transport fails."""

    pass


class TimedOutError(Elm327Error):
    """Raised when an operation does not complete before its deadline."""

    pass


class ConversionError(Elm327Error):
    """Raised when a response line cannot be converted into a packet."""

    pass


class PacketError(Elm327Error):
    """Raised when a bit range is invalid for a 64-bit packet."""

    pass
