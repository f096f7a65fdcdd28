"""
oledlink Error Hierarchy
========================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from OledError, allowing callers to catch every
panel- or transport-related error with a single except clause.

Exception Hierarchy
-------------------
OledError (base)
├── CommsError (transport-related)
│   ├── DeviceNotFoundError - no matching USB bridge
│   │   └── NoSerialPortError - no serial port available at all
│   ├── DeviceReleasedError - device lease used after release
│   ├── TransportIOError - USB or serial I/O failure
│   ├── BridgeWriteFailedError - bridge status poll was not ACK
│   ├── InvalidLengthError - I2C read length outside 0..2
│   └── FrameError - malformed serial frame
└── PanelError (panel controller)
    ├── UnsupportedGeometryError - width/height not one of the presets
    ├── InitializationFailedError - controller never acknowledged Init
    └── PreconditionViolationError - frame buffer length mismatch

Propagation
-----------
Transport failures are never retried internally. They propagate to the
immediate caller; the panel controller only translates them into
InitializationFailedError while it is being constructed.
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class OledError(Exception):
    """
    Base exception for all oledlink errors.

    Catch this to handle any failure raised by the package:

        try:
            panel.display_image(img)
        except OledError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Transport Exceptions
# =============================================================================

class CommsError(OledError):
    """Base exception for transport (USB bridge / UART) errors."""
    pass


class DeviceNotFoundError(CommsError):
    """
    No usable device was found.

    Raised when:
    - No USB device matches the bridge allow-list
    - No serial port is present on the system
    """
    pass


class NoSerialPortError(DeviceNotFoundError):
    """The configured serial port is absent and no fallback port exists."""
    pass


class DeviceReleasedError(CommsError):
    """An operation was attempted on a device lease that was already released."""
    pass


class TransportIOError(CommsError):
    """
    Low-level I/O failure on the underlying channel.

    Wraps usb.core.USBError and serial.SerialException so callers only
    need to know about this package's hierarchy.
    """
    pass


class BridgeWriteFailedError(CommsError):
    """
    The USB-I2C bridge reported a status other than ACK.

    Attributes:
        status: The status value read back from the bridge (Idle or NACK).
        operation: Short description of the operation that failed.
    """

    def __init__(self, status: int, operation: str = "write"):
        self.status = status
        self.operation = operation
        super().__init__(
            f"Bridge {operation} failed: status {status} (expected ACK)"
        )


class InvalidLengthError(CommsError):
    """An I2C register read requested more than 2 bytes or a negative length."""

    def __init__(self, length: int):
        self.length = length
        super().__init__(f"Invalid read length {length}: must be 0, 1 or 2")


class FrameError(CommsError):
    """A serial frame could not be decoded."""
    pass


# =============================================================================
# Panel Exceptions
# =============================================================================

class PanelError(OledError):
    """Base exception for panel controller errors."""
    pass


class UnsupportedGeometryError(PanelError):
    """
    Panel size is not one of the supported presets.

    Attributes:
        width: Requested width in pixels.
        height: Requested height in pixels.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        super().__init__(f"Unsupported display mode: {width} x {height}")


class InitializationFailedError(PanelError):
    """The register initialization sequence could not be delivered."""
    pass


class PreconditionViolationError(PanelError):
    """
    A raw frame buffer does not match the panel's buffer size.

    Attributes:
        expected: Required buffer length (width / 8 * height).
        actual: Length that was supplied.
    """

    def __init__(self, expected: int, actual: int, message: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        if message is None:
            message = (
                f"Frame buffer must be {expected} bytes, got {actual}"
            )
        super().__init__(message)
