"""
oledlink - SSD1306 OLED Driver over USB-I2C and UART Bridges
============================================================

This package drives a small monochrome OLED panel (SSD1306 controller)
from a PC, through one of two interchangeable transports:

- a USB-I2C bridge adapter (i2c-tiny-usb protocol over USB control
  transfers), or
- a UART bridge that replays length-prefixed frames as I2C writes.

Main Components
---------------
- **comms**: transports, bridge protocol, serial frames and ports
- **display**: panel controller, geometry presets, image pipeline
- **config**: connection and panel settings (environment overrides)
- **session**: scoped helpers that guarantee the device is released
- **cli**: the ``oledctl`` command-line tool

Quick Start
-----------
Show an image over the USB bridge:
    >>> from PIL import Image
    >>> from oledlink import I2CTransport, Panel
    >>> with I2CTransport.open(address=0x3C) as transport:
    ...     with Panel(transport, 128, 64) as panel:
    ...         panel.display_image(Image.open("logo.png"))

Or with a configuration read from the environment:
    >>> from oledlink import PanelConfig, open_panel
    >>> with open_panel(PanelConfig.from_env()) as panel:
    ...     panel.fill(0xFF)

Or use the command-line tool:
    $ oledctl --transport uart --port /dev/ttyUSB0 show logo.png --hold 5

Supported Panels
----------------
128x64, 128x32, 96x16, 64x48 and 64x32. Output is strictly 1-bit.
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from oledlink.errors import (
    OledError,
    CommsError,
    DeviceNotFoundError,
    NoSerialPortError,
    DeviceReleasedError,
    TransportIOError,
    BridgeWriteFailedError,
    InvalidLengthError,
    FrameError,
    PanelError,
    UnsupportedGeometryError,
    InitializationFailedError,
    PreconditionViolationError,
)

from oledlink.comms import (
    ControlByte,
    DeviceLease,
    Transport,
    I2CBridge,
    I2CTransport,
    Frame,
    UartTransport,
    list_serial_ports,
)

from oledlink.display import (
    Orientation,
    PanelGeometry,
    PanelSettings,
    Panel,
    image_to_buffer,
    transpose_pages,
)

from oledlink.config import PanelConfig
from oledlink.session import open_panel, open_transport

__all__ = [
    "__version__",
    # Errors
    "OledError",
    "CommsError",
    "DeviceNotFoundError",
    "NoSerialPortError",
    "DeviceReleasedError",
    "TransportIOError",
    "BridgeWriteFailedError",
    "InvalidLengthError",
    "FrameError",
    "PanelError",
    "UnsupportedGeometryError",
    "InitializationFailedError",
    "PreconditionViolationError",
    # Transports
    "ControlByte",
    "DeviceLease",
    "Transport",
    "I2CBridge",
    "I2CTransport",
    "Frame",
    "UartTransport",
    "list_serial_ports",
    # Display
    "Orientation",
    "PanelGeometry",
    "PanelSettings",
    "Panel",
    "image_to_buffer",
    "transpose_pages",
    # Configuration
    "PanelConfig",
    "open_panel",
    "open_transport",
]
