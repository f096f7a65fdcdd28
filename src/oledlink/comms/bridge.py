"""
USB-I2C Bridge Protocol
=======================

This module speaks the vendor control-transfer protocol of an
i2c-tiny-usb style bridge. The bridge relays I2C transactions issued by
the host as USB control transfers, which lets a PC drive an I2C panel
without any I2C hardware of its own.

Protocol Overview
-----------------
Every operation is a single USB control transfer:

    ┌──────────────┬──────────┬─────────┬─────────┬───────────┐
    │ bmRequestType│ bRequest │ wValue  │ wIndex  │  payload  │
    │ class | dir  │ command  │ param   │ address │ 0..N B    │
    └──────────────┴──────────┴─────────┴─────────┴───────────┘

Bridge commands (bRequest) are Echo, GetFunctions, SetDelay, GetStatus,
Reset and Debug. I2C transactions use a request byte built from three
flags instead: BEGIN (start condition), END (stop condition) and IO.

After a write-type operation the host polls GetStatus, which answers
Idle, ACK or NACK. Anything but ACK is a failed transaction.

Status Poll Asymmetry
---------------------
Bulk I2C writes (``write()``) do NOT poll status, matching the behaviour
existing bridge firmware and host tools expect. Opening the bridge with
``strict=True`` adds the poll to writes as well.

Numeric Conventions
-------------------
- wValue / wIndex are signed 16-bit quantities on the protocol level;
  they are sent as their unsigned two's-complement image
- I2C addresses and register bytes are unsigned 8-bit
- Multi-byte replies are little-endian

References
----------
- https://github.com/harbaum/I2C-Tiny-USB (firmware and protocol)
"""

import logging
import struct
from enum import IntEnum, IntFlag
from typing import Final, Optional, Union

import usb.core
import usb.util

from oledlink.comms.base import DeviceLease
from oledlink.errors import (
    BridgeWriteFailedError,
    DeviceNotFoundError,
    InvalidLengthError,
    TransportIOError,
)

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# (vendor-id, product-id) pairs of supported bridges
BRIDGE_USB_IDS: Final[tuple[tuple[int, int], ...]] = (
    (0x0403, 0xC631),  # i2c-tiny-usb on FTDI vendor id
    (0x1C40, 0x0534),  # i2c-tiny-usb
)

# Control transfer request types: class request + direction
USB_CTRL_IN: Final[int] = usb.util.CTRL_TYPE_CLASS | usb.util.CTRL_IN
USB_CTRL_OUT: Final[int] = usb.util.CTRL_TYPE_CLASS | usb.util.CTRL_OUT

# Read flag passed as wValue on the read phase of a register read
I2C_M_RD: Final[int] = 0x01

# Largest register read the bridge performs in one transaction
MAX_READ_LENGTH: Final[int] = 2

# Interface claimed for exclusive access
BRIDGE_INTERFACE: Final[int] = 0


# =============================================================================
# Protocol Enums
# =============================================================================

class UsbCommand(IntEnum):
    """Bridge commands, sent as the control transfer bRequest."""

    ECHO = 0
    GET_FUNCTIONS = 1
    SET_DELAY = 2
    GET_STATUS = 3
    RESET = 0xFE
    DEBUG = 0xFF


class I2CFlag(IntFlag):
    """Flags combined into the bRequest of an I2C transaction."""

    BEGIN = 1  # generate a start condition
    END = 2    # generate a stop condition
    IO = 4     # transaction carries I2C payload


class BridgeStatus(IntEnum):
    """Result of the most recent I2C transaction, as reported by GetStatus."""

    IDLE = 0
    ACK = 1
    NACK = 2

    @classmethod
    def describe(cls, value: int) -> str:
        """Return a readable name for a raw status byte."""
        try:
            return cls(value).name
        except ValueError:
            return f"UNKNOWN({value})"


# =============================================================================
# Field Validation
# =============================================================================

def _word(value: int, name: str) -> int:
    """Validate a signed 16-bit protocol field and return its wire image."""
    if not -0x8000 <= value <= 0x7FFF:
        raise ValueError(f"{name} must be a signed 16-bit value, got {value}")
    return value & 0xFFFF


def _byte(value: int, name: str) -> int:
    """Validate an unsigned 8-bit field."""
    if not 0 <= value <= 0xFF:
        raise ValueError(f"{name} must be 0-255, got {value}")
    return value


def _is_bridge(device: "usb.core.Device") -> bool:
    return (device.idVendor, device.idProduct) in BRIDGE_USB_IDS


def find_bridges() -> list["usb.core.Device"]:
    """
    List all connected USB devices that match the bridge allow-list.

    Returns:
        Matching pyusb devices, in enumeration order.
    """
    try:
        devices = list(usb.core.find(find_all=True, custom_match=_is_bridge))
    except usb.core.NoBackendError as e:
        raise TransportIOError(
            f"No USB backend available: {e}. Install libusb-1.0."
        ) from e

    for device in devices:
        logger.debug(
            "Found bridge: %04X:%04X bus=%s address=%s",
            device.idVendor, device.idProduct,
            getattr(device, "bus", "?"), getattr(device, "address", "?"),
        )
    return devices


# =============================================================================
# Bridge Session
# =============================================================================

class I2CBridge:
    """
    Session with one USB-I2C bridge adapter.

    The session owns the opened device through a DeviceLease. Closing it
    releases the claimed interface and disposes the pyusb resources, which
    frees the device and the backend context together.

    Args:
        device: Opened pyusb device (or an object with the same
                ``ctrl_transfer`` method, e.g. a test double).
        strict: Also poll status after bulk ``write()`` calls.

    Usage:
        with I2CBridge.open() as bridge:
            assert bridge.echo(0x1234) == 0x1234
            bridge.write(0x3C, bytes([0x00, 0xAF]))
    """

    def __init__(self, device: "usb.core.Device", strict: bool = False):
        self.strict = strict
        self._lease = DeviceLease(
            f"usb:{device.idVendor:04X}:{device.idProduct:04X}",
            device,
            _dispose_device,
        )

    @classmethod
    def open(cls, strict: bool = False) -> "I2CBridge":
        """
        Find the first supported bridge and open it exclusively.

        Raises:
            DeviceNotFoundError: If no device matches the allow-list.
            TransportIOError: If the device cannot be claimed.
        """
        devices = find_bridges()
        if not devices:
            ids = ", ".join(f"{vid:04X}:{pid:04X}" for vid, pid in BRIDGE_USB_IDS)
            raise DeviceNotFoundError(
                f"No USB-I2C bridge connected (looked for {ids})"
            )

        device = devices[0]
        try:
            _claim_device(device)
        except usb.core.USBError as e:
            usb.util.dispose_resources(device)
            raise TransportIOError(f"Cannot open USB-I2C bridge: {e}") from e

        logger.info(
            "Opened USB-I2C bridge %04X:%04X", device.idVendor, device.idProduct
        )
        return cls(device, strict=strict)

    @property
    def closed(self) -> bool:
        """Return True once the bridge has been closed."""
        return not self._lease.active

    def close(self) -> None:
        """Release the device. Safe to call more than once."""
        self._lease.release()

    def __enter__(self) -> "I2CBridge":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Raw Control Transfers
    # -------------------------------------------------------------------------

    def _transfer(
        self,
        request_type: int,
        request: int,
        value: int = 0,
        index: int = 0,
        data_or_length: Union[bytes, int, None] = None,
    ) -> Union[bytes, int]:
        """Issue one control transfer, translating pyusb errors."""
        device = self._lease.handle
        wvalue = _word(value, "value")
        windex = _word(index, "index")

        logger.debug(
            "ctrl_transfer type=%02X req=%02X value=%04X index=%04X data=%s",
            request_type, request, wvalue, windex,
            data_or_length.hex() if isinstance(data_or_length, (bytes, bytearray))
            else data_or_length,
        )

        try:
            result = device.ctrl_transfer(
                request_type, request, wvalue, windex, data_or_length
            )
        except usb.core.USBError as e:
            raise TransportIOError(f"USB control transfer failed: {e}") from e

        if request_type & usb.util.CTRL_IN:
            return bytes(result)
        return result

    def read_command(
        self, cmd: UsbCommand, length: int, value: int = 0, index: int = 0
    ) -> bytes:
        """Issue an IN bridge command and return the reply bytes."""
        return self._transfer(USB_CTRL_IN, cmd, value, index, length)

    def write_command(self, cmd: UsbCommand, value: int, index: int = 0) -> int:
        """
        Issue an OUT bridge command and verify it was acknowledged.

        Raises:
            BridgeWriteFailedError: If the status poll is not ACK.
        """
        result = self._transfer(USB_CTRL_OUT, cmd, value, index)
        self._check_status(cmd.name.lower())
        return result

    def _check_status(self, operation: str) -> None:
        status = self.get_status()
        if status != BridgeStatus.ACK:
            logger.debug(
                "Status poll after %s: %s", operation, BridgeStatus.describe(status)
            )
            raise BridgeWriteFailedError(status, operation)

    # -------------------------------------------------------------------------
    # Bridge Commands
    # -------------------------------------------------------------------------

    def get_functions(self) -> int:
        """Return the bridge's I2C functionality bitmask (32-bit LE)."""
        reply = self.read_command(UsbCommand.GET_FUNCTIONS, 4)
        return struct.unpack("<I", reply[:4].ljust(4, b"\x00"))[0]

    def get_status(self) -> int:
        """Return the status of the last I2C transaction (Idle/ACK/NACK)."""
        reply = self.read_command(UsbCommand.GET_STATUS, 1)
        return reply[0] if reply else BridgeStatus.IDLE

    def echo(self, value: int) -> int:
        """
        Round-trip a signed 16-bit value through the bridge.

        Used purely as a connectivity self-test.
        """
        reply = self.read_command(UsbCommand.ECHO, 2, value=value)
        return struct.unpack("<h", reply[:2].ljust(2, b"\x00"))[0]

    def set_delay(self, delay: int) -> None:
        """Set the bridge's I2C clock delay (microseconds per half period)."""
        self.write_command(UsbCommand.SET_DELAY, delay)

    def reset(self) -> None:
        """Reset the bridge. No status is verified."""
        self._transfer(USB_CTRL_OUT, UsbCommand.RESET)
        logger.info("Bridge reset issued")

    # -------------------------------------------------------------------------
    # I2C Transactions
    # -------------------------------------------------------------------------

    def read(self, address: int, register: int, length: int) -> int:
        """
        Read a 0-, 1- or 2-byte register value from an I2C device.

        Phase 1 writes the register byte with a start condition; phase 2
        reads ``length`` bytes and ends with a stop condition. Both phases
        are status-checked.

        Args:
            address: 7-bit I2C address.
            register: Register (or command) byte to select.
            length: Number of bytes to read (0, 1 or 2).

        Returns:
            0 for length 0, the byte for length 1, or the signed
            little-endian 16-bit value for length 2.

        Raises:
            InvalidLengthError: If length is outside 0..2.
            BridgeWriteFailedError: If either phase is not acknowledged.
        """
        if not 0 <= length <= MAX_READ_LENGTH:
            raise InvalidLengthError(length)
        address = _byte(address, "address")
        register = _byte(register, "register")

        self._transfer(
            USB_CTRL_OUT, I2CFlag.IO | I2CFlag.BEGIN, 0, address, bytes([register])
        )
        self._check_status("read (register select)")

        if length == 0:
            return 0

        reply = self._transfer(
            USB_CTRL_IN, I2CFlag.IO | I2CFlag.END, I2C_M_RD, address, length
        )
        self._check_status("read")

        reply = reply.ljust(MAX_READ_LENGTH, b"\x00")
        if length == 2:
            return struct.unpack("<h", reply[:2])[0]
        return reply[0]

    def write(self, address: int, data: bytes) -> int:
        """
        Write bytes to an I2C device in one transaction.

        The status is only polled when the bridge was opened with
        ``strict=True``.

        Returns:
            Number of bytes transferred, as reported by pyusb.
        """
        address = _byte(address, "address")
        result = self._transfer(
            USB_CTRL_OUT,
            I2CFlag.IO | I2CFlag.BEGIN | I2CFlag.END,
            0,
            address,
            bytes(data),
        )
        if self.strict:
            self._check_status("write")
        return result


# =============================================================================
# Device Acquisition Helpers
# =============================================================================

def _claim_device(device: "usb.core.Device") -> None:
    """Detach any kernel driver and claim the bridge interface."""
    try:
        if device.is_kernel_driver_active(BRIDGE_INTERFACE):
            logger.debug("Detaching kernel driver from bridge interface")
            device.detach_kernel_driver(BRIDGE_INTERFACE)
    except NotImplementedError:
        # Backend (e.g. Windows) does not expose kernel driver control
        pass

    usb.util.claim_interface(device, BRIDGE_INTERFACE)


def _dispose_device(device: "usb.core.Device") -> None:
    """Release the interface and free the device with its backend context."""
    try:
        usb.util.release_interface(device, BRIDGE_INTERFACE)
    except usb.core.USBError as e:
        logger.warning("Error releasing bridge interface: %s", e)
    finally:
        usb.util.dispose_resources(device)
    logger.info("USB-I2C bridge closed")
