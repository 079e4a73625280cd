"""Packet decoding for adapter response lines.

A response line carries up to 8 whitespace-separated hex byte tokens,
optionally followed by an annotation introduced by ``<``:

  41 0C 1A F8 <annotation

The annotation is dropped, only the last 8 tokens are kept, and the tokens
are zero-padded to exactly 8 bytes. The result is a big-endian unsigned
64-bit value; bit 0 is the least-significant bit of the last byte.
"""

import re
from dataclasses import dataclass

from elm327.errors import ConversionError, PacketError
from elm327.protocol import ANNOTATION_DELIMITER

PACKET_BYTES = 8
PACKET_BITS = PACKET_BYTES * 8
MAX_BIT = PACKET_BITS - 1
PAD_TOKEN = "00"

_HEX_DIGITS = re.compile(r"[0-9A-Fa-f]+")


def tokenize(line: str) -> list[str]:
    """Split a response line into exactly 8 byte tokens.

    Leading tokens beyond the last 8 are discarded; missing tokens are
    filled with "00" ahead of the data so the data stays right-aligned.
    """
    data = line.split(ANNOTATION_DELIMITER, 1)[0]
    tokens = data.split()

    if len(tokens) > PACKET_BYTES:
        tokens = tokens[len(tokens) - PACKET_BYTES :]

    return [PAD_TOKEN] * (PACKET_BYTES - len(tokens)) + tokens


@dataclass(frozen=True)
class Packet:
    """An immutable 64-bit packet decoded from a response line."""

    value: int = 0

    @classmethod
    def empty(cls) -> "Packet":
        """Return the all-zero packet."""
        return cls(0)

    @classmethod
    def parse(cls, line: str) -> "Packet":
        """Build a packet from a response line.

        Raises:
            ConversionError: If the tokens are not hex or overflow 64 bits.
        """
        digits = "".join(tokenize(line))
        if not _HEX_DIGITS.fullmatch(digits):
            raise ConversionError(f"Not a hex packet: {line!r}")

        value = int(digits, 16)
        if value.bit_length() > PACKET_BITS:
            raise ConversionError(f"Packet exceeds {PACKET_BITS} bits: {line!r}")

        return cls(value)

    def get(self, lower: int, upper: int) -> int:
        """Return bits lower..upper (inclusive, LSB = 0) right-aligned.

        Raises:
            PacketError: If upper > 63, or lower is outside 0..upper.
        """
        if upper > MAX_BIT:
            raise PacketError(f"Upper bound must be less than {PACKET_BITS}.")
        if lower < 0 or lower > MAX_BIT or lower > upper:
            raise PacketError(
                f"Lower bound must be between 0 and the lesser of {MAX_BIT} or `upper`."
            )

        mask = (1 << (upper - lower + 1)) - 1
        return (self.value >> lower) & mask

    def __repr__(self) -> str:
        return f"Packet(0x{self.value:016X})"


def parse_packet(line: str) -> Packet:
    """Decode a response line into a Packet."""
    return Packet.parse(line)
