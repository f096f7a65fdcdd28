"""
oledlink Configuration
======================

Connection and panel settings. Configuration can come from:
- Default values (defined here)
- Environment variables (``PanelConfig.from_env()``)
- Command-line options (the CLI overrides individual fields)

Environment Variables
---------------------
    OLEDLINK_TRANSPORT    "usb" or "uart"
    OLEDLINK_PORT         serial device path (uart only)
    OLEDLINK_BAUD         serial baud rate (uart only)
    OLEDLINK_ADDRESS      panel address, decimal or 0x-prefixed hex
    OLEDLINK_SIZE         panel size as WIDTHxHEIGHT, e.g. 128x32
    OLEDLINK_ORIENTATION  0, 90, 180 or 270
    OLEDLINK_STRICT       1/true/yes to status-check bridge writes
    OLEDLINK_CHUNK_SIZE   max data bytes per I2C transaction
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from oledlink.comms.i2c import DEFAULT_I2C_ADDRESS
from oledlink.comms.serial import DEFAULT_BAUD_RATE
from oledlink.display.geometry import Orientation

# Configure module logger
logger = logging.getLogger(__name__)

TRANSPORTS = ("usb", "uart")

_TRUE_VALUES = ("1", "true", "yes", "on")


def parse_size(text: str) -> tuple[int, int]:
    """
    Parse a ``WIDTHxHEIGHT`` string.

    Raises:
        ValueError: If the text is not two positive integers joined by 'x'.
    """
    parts = text.lower().replace("×", "x").split("x")
    if len(parts) != 2:
        raise ValueError(f"Size must look like 128x64, got {text!r}")
    width, height = (int(p.strip()) for p in parts)
    if width <= 0 or height <= 0:
        raise ValueError(f"Size must be positive, got {text!r}")
    return width, height


def parse_int(text: str) -> int:
    """Parse a decimal or 0x/0o/0b-prefixed integer."""
    return int(text.strip(), 0)


@dataclass
class PanelConfig:
    """
    Everything needed to open a panel.

    Attributes:
        transport: "usb" for the USB-I2C bridge, "uart" for the serial bridge.
        port: Serial device path; None picks the first available port.
        baud_rate: Serial line speed.
        address: Panel I2C address (also the UART frame address).
        width: Panel width in pixels.
        height: Panel height in pixels.
        orientation: Mounting orientation.
        strict: Status-check every bridge write.
        chunk_size: Max data bytes per I2C transaction (None: unlimited).
    """

    transport: str = "usb"
    port: Optional[str] = None
    baud_rate: int = DEFAULT_BAUD_RATE
    address: int = DEFAULT_I2C_ADDRESS
    width: int = 128
    height: int = 64
    orientation: Orientation = Orientation.DEG_0
    strict: bool = False
    chunk_size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ValueError(
                f"Unknown transport {self.transport!r}; expected one of {TRANSPORTS}"
            )
        self.orientation = Orientation(self.orientation)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "PanelConfig":
        """
        Create a PanelConfig from environment variables.

        Invalid values are logged and ignored, leaving the default.

        Args:
            environ: Mapping to read instead of os.environ (for tests).
        """
        env = os.environ if environ is None else environ
        config = cls()

        if transport := env.get("OLEDLINK_TRANSPORT"):
            if transport.lower() in TRANSPORTS:
                config.transport = transport.lower()
            else:
                logger.warning("Ignoring OLEDLINK_TRANSPORT=%r", transport)

        if port := env.get("OLEDLINK_PORT"):
            config.port = port

        if baud := env.get("OLEDLINK_BAUD"):
            try:
                config.baud_rate = int(baud)
            except ValueError:
                logger.warning("Ignoring OLEDLINK_BAUD=%r", baud)

        if address := env.get("OLEDLINK_ADDRESS"):
            try:
                config.address = parse_int(address)
            except ValueError:
                logger.warning("Ignoring OLEDLINK_ADDRESS=%r", address)

        if size := env.get("OLEDLINK_SIZE"):
            try:
                config.width, config.height = parse_size(size)
            except ValueError:
                logger.warning("Ignoring OLEDLINK_SIZE=%r", size)

        if orientation := env.get("OLEDLINK_ORIENTATION"):
            try:
                config.orientation = Orientation(int(orientation))
            except ValueError:
                logger.warning("Ignoring OLEDLINK_ORIENTATION=%r", orientation)

        if strict := env.get("OLEDLINK_STRICT"):
            config.strict = strict.lower() in _TRUE_VALUES

        if chunk_size := env.get("OLEDLINK_CHUNK_SIZE"):
            try:
                config.chunk_size = int(chunk_size)
            except ValueError:
                logger.warning("Ignoring OLEDLINK_CHUNK_SIZE=%r", chunk_size)

        return config
