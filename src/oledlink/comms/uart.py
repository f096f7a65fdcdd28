"""
UART Transport
==============

Transport that delivers command and data bursts to the panel through the
UART bridge firmware, one Frame per burst (see ``oledlink.comms.frame``).

Connection Priming
------------------
The bridge's receive state machine can be left mid-frame by an earlier
session (or by line noise while the adapter enumerates). Before the real
session is opened, ``connect()`` performs a fixed warm-up: the port is
opened, an 8-byte all-zero command frame is sent, and the port is closed
again, five times in a row. This is unconditional and strictly
sequential; the cycles must not overlap.

Usage:
    transport = UartTransport.connect('/dev/ttyUSB0', 250000, 0x3C)
    try:
        transport.send_command(bytes([0xAF]))
    finally:
        transport.release()
"""

import logging
from typing import Final, Optional

import serial

from oledlink.comms.base import DeviceLease, Transport
from oledlink.comms.frame import Frame
from oledlink.comms.serial import (
    DEFAULT_BAUD_RATE,
    close_serial_port,
    open_serial_port,
    resolve_port,
)
from oledlink.errors import TransportIOError

# Configure module logger
logger = logging.getLogger(__name__)

# Number of open/send/close cycles performed before the retained session
PRIMING_CYCLES: Final[int] = 5

# Payload of the priming command frame
PRIMING_PAYLOAD: Final[bytes] = bytes(8)


def _check_address(address: int) -> int:
    if not 0 <= address <= 0xFF:
        raise ValueError(f"Address must be 0-255, got {address}")
    return address


class UartTransport(Transport):
    """
    Transport bound to one serial port and one bridge address.

    The transport owns the port through a DeviceLease; releasing the
    transport closes the port.

    Args:
        port: Opened pyserial port.
        address: I2C address placed in every frame header.
    """

    def __init__(self, port: serial.Serial, address: int):
        super().__init__()
        self.address = _check_address(address)
        self._lease = DeviceLease(port.port or "<serial>", port, close_serial_port)

    @classmethod
    def connect(
        cls,
        device: Optional[str],
        baud_rate: int = DEFAULT_BAUD_RATE,
        address: int = 0x3C,
        priming_cycles: int = PRIMING_CYCLES,
    ) -> "UartTransport":
        """
        Prime the bridge and open the retained session.

        Args:
            device: Configured port; falls back to the first available port
                    when absent.
            baud_rate: Line speed.
            address: Bridge address for every frame.
            priming_cycles: Number of warm-up cycles (5 for real hardware).

        Raises:
            NoSerialPortError: If no serial port exists.
            TransportIOError: If the port cannot be opened or written.
            ValueError: If address is outside 0-255. Checked before any
                        port is opened.
        """
        _check_address(address)
        device = resolve_port(device)
        logger.info("Connecting to UART bridge on %s at %d baud", device, baud_rate)

        for cycle in range(priming_cycles):
            logger.debug("Priming cycle %d/%d", cycle + 1, priming_cycles)
            with cls(open_serial_port(device, baud_rate), address) as primer:
                primer.send_command(PRIMING_PAYLOAD)

        return cls(open_serial_port(device, baud_rate), address)

    @property
    def port(self) -> serial.Serial:
        """The leased serial port."""
        return self._lease.handle

    def send_command(self, data: bytes) -> None:
        self._send(Frame.command(self.address, data))

    def send_data(self, data: bytes) -> None:
        self._send(Frame.data(self.address, data))

    def _send(self, frame: Frame) -> None:
        port = self._lease.handle
        logger.debug("TX %r", frame)
        try:
            port.write(frame.header())
            port.write(frame.payload)
        except serial.SerialException as e:
            raise TransportIOError(
                f"Write to {self._lease.name} failed: {e}"
            ) from e

    def _release(self) -> None:
        self._lease.release()

    def __repr__(self) -> str:
        return f"UartTransport({self._lease.name!r}, address={self.address:#04x})"
