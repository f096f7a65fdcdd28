"""
Serial Ports for the UART Bridge
================================

Finding, opening and closing the serial port behind the UART-to-I2C
bridge.

Line Settings
-------------
The bridge firmware listens at 8N1 with no flow control of any kind.
Its default speed is 250000 baud (UBRR=7, double speed, 16 MHz clock);
other speeds need a matching firmware build.

Port Selection
--------------
``resolve_port()`` prefers the configured device. If that device is not
present it falls back to the first port the system reports, so a bridge
that re-enumerated under a new name is still found. Only a system with
no serial ports at all is an error.

Timeouts
--------
Ports are opened without read or write timeouts by default. A stalled
bridge therefore blocks the writer; callers that need a deadline must
impose it around the whole panel operation.
"""

import logging
from dataclasses import dataclass
from typing import Final, Optional

import serial
import serial.tools.list_ports

from oledlink.errors import NoSerialPortError, TransportIOError

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Firmware runs UBRR=7 with double speed on a 16 MHz AVR
DEFAULT_BAUD_RATE: Final[int] = 250000

# Rates offered by the CLI; any rate the adapter supports is accepted
COMMON_BAUD_RATES: Final[tuple[int, ...]] = (
    9600, 19200, 38400, 57600, 115200, 230400, 250000, 500000, 1000000,
)

# USB-serial chips commonly found on bridge boards, by vendor id
ADAPTER_VENDORS: Final[dict[int, str]] = {
    0x0403: "FTDI",
    0x10C4: "CP210x",
    0x1A86: "CH340",
    0x2341: "Arduino",
    0x067B: "PL2303",
}

# Substrings of pyserial open errors mapped to a hint for the user
_OPEN_ERROR_HINTS: Final[tuple[tuple[str, str], ...]] = (
    ("permission denied",
     "add your user to the 'dialout' group (sudo usermod -a -G dialout $USER)"),
    ("busy", "another program has the port open"),
    ("in use", "another program has the port open"),
    ("no such file", "check the bridge is plugged in (oledctl ports)"),
    ("could not find", "check the bridge is plugged in (oledctl ports)"),
)


# =============================================================================
# Port Information
# =============================================================================

@dataclass(frozen=True)
class PortInfo:
    """
    One serial port as reported by the operating system.

    Attributes:
        device: Path or name to open ('/dev/ttyUSB0', 'COM3').
        description: Driver-supplied description, possibly empty.
        vid: USB vendor id, None for on-board UARTs.
        pid: USB product id, None for on-board UARTs.
        manufacturer: USB manufacturer string, if any.
        serial_number: USB serial number, if any.
    """

    device: str
    description: str = ""
    vid: Optional[int] = None
    pid: Optional[int] = None
    manufacturer: Optional[str] = None
    serial_number: Optional[str] = None

    @classmethod
    def from_list_port(cls, port) -> "PortInfo":
        """Build from a pyserial ``ListPortInfo``."""
        return cls(
            device=port.device,
            description=port.description or "",
            vid=port.vid,
            pid=port.pid,
            manufacturer=port.manufacturer,
            serial_number=port.serial_number,
        )

    @property
    def is_usb(self) -> bool:
        return self.vid is not None

    @property
    def usb_id(self) -> Optional[str]:
        """'VVVV:PPPP' for USB adapters, else None."""
        if self.vid is None:
            return None
        return f"{self.vid:04X}:{self.pid or 0:04X}"

    @property
    def adapter(self) -> Optional[str]:
        """Chip family of a known USB-serial adapter."""
        return ADAPTER_VENDORS.get(self.vid) if self.vid is not None else None

    def __str__(self) -> str:
        text = self.device
        if self.description and self.description != self.device:
            text += f" - {self.description}"
        if self.adapter:
            text += f" [{self.adapter}]"
        return text


# =============================================================================
# Discovery
# =============================================================================

def list_serial_ports() -> list[PortInfo]:
    """Return every serial port on the system, in pyserial's order."""
    ports = [PortInfo.from_list_port(p) for p in serial.tools.list_ports.comports()]
    logger.debug(
        "Serial ports: %s", ", ".join(p.device for p in ports) or "none"
    )
    return ports


def resolve_port(device: Optional[str]) -> str:
    """
    Pick the port to open.

    Args:
        device: Configured device path, or None to take the first port.

    Returns:
        ``device`` if it is present, otherwise the first available port.

    Raises:
        NoSerialPortError: If the system has no serial ports at all.
    """
    available = [p.device for p in list_serial_ports()]

    if device in available:
        return device

    if not available:
        raise NoSerialPortError(
            "There's no such serial port and no other port is available"
        )

    if device is not None:
        logger.warning(
            "Serial port %s not present, falling back to %s", device, available[0]
        )
    return available[0]


# =============================================================================
# Opening and Closing
# =============================================================================

def _open_hint(message: str) -> Optional[str]:
    lowered = message.lower()
    for needle, hint in _OPEN_ERROR_HINTS:
        if needle in lowered:
            return hint
    return None


def open_serial_port(
    device: str,
    baud_rate: int = DEFAULT_BAUD_RATE,
    timeout: Optional[float] = None,
    write_timeout: Optional[float] = None,
) -> serial.Serial:
    """
    Open ``device`` at 8N1 without flow control.

    Args:
        device: Port to open.
        baud_rate: Line speed; must be positive.
        timeout: Read timeout in seconds (None blocks).
        write_timeout: Write timeout in seconds (None blocks).

    Raises:
        ValueError: If baud_rate is not positive.
        TransportIOError: If pyserial cannot open the port.
    """
    if baud_rate <= 0:
        raise ValueError(f"Invalid baud rate: {baud_rate}")

    logger.debug("Opening %s at %d baud", device, baud_rate)
    try:
        return serial.Serial(
            port=device,
            baudrate=baud_rate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=timeout,
            write_timeout=write_timeout,
            xonxoff=False,
            rtscts=False,
            dsrdtr=False,
        )
    except serial.SerialException as e:
        message = f"Cannot open {device}: {e}"
        if hint := _open_hint(str(e)):
            message += f" ({hint})"
        raise TransportIOError(message) from e


def close_serial_port(port: Optional[serial.Serial]) -> None:
    """
    Drain and close a port.

    Failures are logged rather than raised; the port is abandoned either way.
    A failed flush still closes the port.
    """
    if port is None or not port.is_open:
        return

    try:
        port.flush()
    except (serial.SerialException, OSError) as e:
        logger.warning("Error flushing serial port %s: %s", port.port, e)

    try:
        port.close()
    except (serial.SerialException, OSError) as e:
        logger.warning("Error closing serial port %s: %s", port.port, e)
    else:
        logger.debug("Closed %s", port.port)


def format_port_list(ports: list[PortInfo], verbose: bool = False) -> str:
    """Render ports one per line, with USB details when ``verbose``."""
    if not ports:
        return "No serial ports found."

    lines = []
    for port in ports:
        lines.append(f"  {port}")
        if not verbose:
            continue
        details = [
            ("USB id", port.usb_id),
            ("Manufacturer", port.manufacturer),
            ("Serial", port.serial_number),
        ]
        lines.extend(f"      {label}: {value}" for label, value in details if value)

    return "\n".join(lines)
