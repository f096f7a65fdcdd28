"""
I2C Transport over the USB Bridge
=================================

Adapts an I2CBridge session to the Transport contract. On I2C the SSD1306
expects a control byte as the first byte of every write transaction:

    ┌─────────┬──────────────┬──────────────────┐
    │ address │ control byte │ command/data ... │
    │ (index) │ 0x00 / 0x40  │                  │
    └─────────┴──────────────┴──────────────────┘

The address is carried in the control transfer's wIndex field, so the
payload handed to the bridge is the control byte followed by the bytes.

Chunking
--------
Display data may optionally be split into several transactions. Because
the controller runs in horizontal addressing mode, each chunk continues
where the previous one stopped, as long as every chunk is re-prefixed
with the DATA control byte. Commands are never split.
"""

import logging
from typing import Final, Optional

from oledlink.comms.base import ControlByte, Transport
from oledlink.comms.bridge import I2CBridge

# Configure module logger
logger = logging.getLogger(__name__)

# Default 7-bit address of SSD1306 modules (SA0 low)
DEFAULT_I2C_ADDRESS: Final[int] = 0x3C


class I2CTransport(Transport):
    """
    Transport that writes to the panel through a USB-I2C bridge.

    The transport owns the bridge: releasing the transport closes it.

    Args:
        bridge: Open bridge session.
        address: 7-bit I2C address of the panel.
        chunk_size: Maximum data bytes per I2C transaction, or None to
                    send every data burst as a single transaction.
    """

    def __init__(
        self,
        bridge: I2CBridge,
        address: int = DEFAULT_I2C_ADDRESS,
        chunk_size: Optional[int] = None,
    ):
        super().__init__()
        if not 0 <= address <= 0x7F:
            raise ValueError(f"I2C address must be 0x00-0x7F, got {address:#x}")
        if chunk_size is not None and chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.bridge = bridge
        self.address = address
        self.chunk_size = chunk_size

    @classmethod
    def open(
        cls,
        address: int = DEFAULT_I2C_ADDRESS,
        strict: bool = False,
        chunk_size: Optional[int] = None,
    ) -> "I2CTransport":
        """Open the first available bridge and wrap it in a transport."""
        bridge = I2CBridge.open(strict=strict)
        try:
            return cls(bridge, address, chunk_size)
        except ValueError:
            bridge.close()
            raise

    def send_command(self, data: bytes) -> None:
        self.bridge.write(self.address, bytes([ControlByte.COMMAND]) + bytes(data))

    def send_data(self, data: bytes) -> None:
        data = bytes(data)
        if self.chunk_size is None:
            self.bridge.write(self.address, bytes([ControlByte.DATA]) + data)
            return

        for offset in range(0, len(data), self.chunk_size):
            chunk = data[offset:offset + self.chunk_size]
            self.bridge.write(self.address, bytes([ControlByte.DATA]) + chunk)
        logger.debug(
            "Sent %d data bytes in chunks of %d", len(data), self.chunk_size
        )

    def _release(self) -> None:
        self.bridge.close()

    def __repr__(self) -> str:
        return f"I2CTransport(address={self.address:#04x})"
