"""
Serial Frame Codec
==================

The UART bridge firmware receives length-prefixed frames and replays them
as I2C write transactions. A frame is a 4-byte header followed by the
payload:

    ┌─────────┬─────────┬─────────┬─────────┬────────────────┐
    │ address │ size_hi │ size_lo │  ctrl   │    payload     │
    │  1 B    │   1 B   │   1 B   │   1 B   │   size-1 B     │
    └─────────┴─────────┴─────────┴─────────┴────────────────┘

- ``address``: I2C address the firmware starts the transaction with
- ``size``: big-endian, payload length + 1. The firmware counts the
  control byte as part of the I2C payload, so it is included in the size
  even though it sits in the header
- ``ctrl``: SSD1306 control byte, 0x00 for commands, 0x40 for data

Example:
    >>> Frame(0x3C, ControlByte.COMMAND, bytes([0x01, 0x02])).to_bytes().hex()
    '3c0003000102'
"""

import struct
from dataclasses import dataclass
from typing import Final

from oledlink.comms.base import ControlByte
from oledlink.errors import FrameError


# =============================================================================
# Frame Constants
# =============================================================================

# Header: address, size (2 bytes, big-endian), control byte
HEADER_SIZE: Final[int] = 4

# size is a 16-bit field and includes the control byte
MAX_PAYLOAD_SIZE: Final[int] = 0xFFFF - 1

_HEADER: Final[struct.Struct] = struct.Struct(">BHB")


# =============================================================================
# Frame Class
# =============================================================================

@dataclass(frozen=True)
class Frame:
    """
    One addressed command or data frame.

    Attributes:
        address: Target I2C address (0-255).
        control: Control byte (ControlByte.COMMAND or ControlByte.DATA).
        payload: Bytes delivered after the control byte.
    """

    address: int
    control: int
    payload: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.address <= 0xFF:
            raise ValueError(f"Address must be 0-255, got {self.address}")
        if not 0 <= self.control <= 0xFF:
            raise ValueError(f"Control byte must be 0-255, got {self.control}")
        if not isinstance(self.payload, bytes):
            raise TypeError(
                f"Payload must be bytes, got {type(self.payload).__name__}"
            )
        if len(self.payload) > MAX_PAYLOAD_SIZE:
            raise ValueError(
                f"Payload too large: {len(self.payload)} bytes, "
                f"max {MAX_PAYLOAD_SIZE}"
            )

    @classmethod
    def command(cls, address: int, payload: bytes) -> "Frame":
        """Build a command frame."""
        return cls(address, ControlByte.COMMAND, bytes(payload))

    @classmethod
    def data(cls, address: int, payload: bytes) -> "Frame":
        """Build a data frame."""
        return cls(address, ControlByte.DATA, bytes(payload))

    @property
    def size(self) -> int:
        """Value of the size field: payload length plus the control byte."""
        return len(self.payload) + 1

    def header(self) -> bytes:
        """Return the 4-byte frame header."""
        return _HEADER.pack(self.address, self.size, self.control)

    def to_bytes(self) -> bytes:
        """Serialize the frame for transmission."""
        return self.header() + self.payload

    @classmethod
    def from_bytes(cls, data: bytes) -> "Frame":
        """
        Parse one complete frame.

        Raises:
            FrameError: If the header is truncated, the size field is zero,
                        or the payload length disagrees with the size field.
        """
        if len(data) < HEADER_SIZE:
            raise FrameError(
                f"Frame too short: {len(data)} bytes, minimum {HEADER_SIZE}"
            )

        address, size, control = _HEADER.unpack(data[:HEADER_SIZE])
        if size == 0:
            raise FrameError("Frame size field is zero (must count the control byte)")

        payload = bytes(data[HEADER_SIZE:])
        if len(payload) != size - 1:
            raise FrameError(
                f"Frame size mismatch: header says {size - 1} payload bytes, "
                f"got {len(payload)}"
            )

        return cls(address, control, payload)

    def __repr__(self) -> str:
        kind = {ControlByte.COMMAND: "COMMAND", ControlByte.DATA: "DATA"}.get(
            self.control, f"{self.control:#04x}"
        )
        data_repr = (
            self.payload[:16].hex() + "..."
            if len(self.payload) > 16
            else self.payload.hex()
        )
        return (
            f"Frame(address={self.address:#04x}, {kind}, "
            f"payload[{len(self.payload)}]={data_repr})"
        )
