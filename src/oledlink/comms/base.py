"""
Transport Capability and Device Lease
=====================================

This module defines the contract shared by every transport that can carry
bytes to the panel, plus the lease object used to own a physical device.

Transport Contract
------------------
A transport exposes three operations:

- ``send_command(data)``: deliver controller command bytes
- ``send_data(data)``: deliver display RAM bytes
- ``release()``: give the underlying device back (idempotent)

Each call is one complete, ordered transaction. The panel controller is
written against this contract only and never asks which transport it has.

The two transports differ in how they mark commands and data on the wire:

- I2C (USB bridge): the control byte is the first byte of the I2C write
- UART (framed): the control byte travels in the frame header

Device Lease
------------
A physical device (USB handle, serial port) must have exactly one owner.
Rather than relying on finalizers, each transport holds a DeviceLease:
the release callback runs exactly once, and any use of the handle after
release raises DeviceReleasedError.

Thread Safety
-------------
Transports are NOT thread-safe. Use from a single thread, and never call
release() concurrently with another operation on the same transport.
"""

import logging
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any, Callable, Generic, Optional, TypeVar

from oledlink.errors import DeviceReleasedError

# Configure module logger
logger = logging.getLogger(__name__)

H = TypeVar("H")


# =============================================================================
# Control Bytes
# =============================================================================

class ControlByte(IntEnum):
    """
    SSD1306 control byte values.

    The controller interprets the bytes following a control byte either as
    commands (register programming) or as display RAM data.
    """

    COMMAND = 0x00
    DATA = 0x40


# =============================================================================
# Device Lease
# =============================================================================

class DeviceLease(Generic[H]):
    """
    Exclusive claim on an opened device handle.

    The lease is created right after the handle is opened and handed to the
    single object that owns it. Releasing it runs the release callback once;
    afterwards the handle is no longer reachable.

    Attributes:
        name: Human-readable device name used in logs and errors.

    Example:
        port = serial.Serial('/dev/ttyUSB0')
        lease = DeviceLease('/dev/ttyUSB0', port, port.close)
        lease.handle.write(b'...')
        lease.release()
        lease.release()  # no-op
    """

    def __init__(self, name: str, handle: H, on_release: Callable[[H], Any]):
        self.name = name
        self._handle: Optional[H] = handle
        self._on_release = on_release

    @property
    def active(self) -> bool:
        """Return True until the lease has been released."""
        return self._handle is not None

    @property
    def handle(self) -> H:
        """
        The leased handle.

        Raises:
            DeviceReleasedError: If the lease was already released.
        """
        if self._handle is None:
            raise DeviceReleasedError(f"Device {self.name} has been released")
        return self._handle

    def release(self) -> None:
        """Release the handle. Safe to call more than once."""
        if self._handle is None:
            return

        handle, self._handle = self._handle, None
        logger.debug("Releasing device lease: %s", self.name)
        self._on_release(handle)

    def __repr__(self) -> str:
        state = "active" if self.active else "released"
        return f"DeviceLease({self.name!r}, {state})"


# =============================================================================
# Transport Interface
# =============================================================================

class Transport(ABC):
    """
    Abstract byte transport to an SSD1306 controller.

    Subclasses implement the two send operations and ``_release()``; the
    public ``release()`` guarantees the latter runs at most once.

    Transports are context managers:

        with UartTransport.connect('/dev/ttyUSB0', 250000, 0x3C) as t:
            t.send_command(bytes([0xAF]))
    """

    def __init__(self) -> None:
        self._released = False

    @property
    def released(self) -> bool:
        """Return True once release() has been called."""
        return self._released

    @abstractmethod
    def send_command(self, data: bytes) -> None:
        """Send controller command bytes as one transaction."""

    @abstractmethod
    def send_data(self, data: bytes) -> None:
        """Send display RAM bytes as one transaction."""

    @abstractmethod
    def _release(self) -> None:
        """Free the underlying device. Called at most once."""

    def release(self) -> None:
        """Release the transport. Repeated calls are no-ops."""
        if self._released:
            return
        self._released = True
        self._release()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
