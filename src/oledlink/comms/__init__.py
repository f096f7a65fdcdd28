"""
oledlink Communication Module
============================

Transports that carry SSD1306 command and data bytes from the host to
the panel.

Module Structure
----------------
- **base**: Transport contract, control bytes, device lease
- **bridge**: USB-I2C bridge protocol (vendor control transfers, pyusb)
- **i2c**: Transport over the USB-I2C bridge
- **frame**: Length-prefixed serial frame codec
- **serial**: Serial port enumeration and configuration (pyserial)
- **uart**: Transport over the framed UART bridge

Quick Start
-----------
**USB-I2C bridge**:

    from oledlink.comms import I2CTransport

    with I2CTransport.open(address=0x3C) as transport:
        transport.send_command(bytes([0xAF]))

**UART bridge**:

    from oledlink.comms import UartTransport

    with UartTransport.connect('/dev/ttyUSB0', 250000, 0x3C) as transport:
        transport.send_command(bytes([0xAF]))

Error Handling
--------------
All communication errors inherit from `CommsError` (see oledlink.errors).

Thread Safety
-------------
Transports are NOT thread-safe. Exactly one transport may own a given
device or port at a time.
"""

from oledlink.comms.base import ControlByte, DeviceLease, Transport
from oledlink.comms.bridge import (
    BRIDGE_USB_IDS,
    BridgeStatus,
    I2CBridge,
    I2CFlag,
    UsbCommand,
    find_bridges,
)
from oledlink.comms.frame import HEADER_SIZE, MAX_PAYLOAD_SIZE, Frame
from oledlink.comms.i2c import DEFAULT_I2C_ADDRESS, I2CTransport
from oledlink.comms.serial import (
    COMMON_BAUD_RATES,
    DEFAULT_BAUD_RATE,
    PortInfo,
    close_serial_port,
    format_port_list,
    list_serial_ports,
    open_serial_port,
    resolve_port,
)
from oledlink.comms.uart import PRIMING_CYCLES, PRIMING_PAYLOAD, UartTransport

__all__ = [
    # Base
    "ControlByte",
    "DeviceLease",
    "Transport",
    # USB-I2C bridge
    "BRIDGE_USB_IDS",
    "BridgeStatus",
    "I2CBridge",
    "I2CFlag",
    "UsbCommand",
    "find_bridges",
    "DEFAULT_I2C_ADDRESS",
    "I2CTransport",
    # Serial frames
    "HEADER_SIZE",
    "MAX_PAYLOAD_SIZE",
    "Frame",
    # Serial ports
    "COMMON_BAUD_RATES",
    "DEFAULT_BAUD_RATE",
    "PortInfo",
    "close_serial_port",
    "format_port_list",
    "list_serial_ports",
    "open_serial_port",
    "resolve_port",
    # UART
    "PRIMING_CYCLES",
    "PRIMING_PAYLOAD",
    "UartTransport",
]
