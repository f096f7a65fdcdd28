"""
SSD1306 Panel Controller
========================

High-level control of one SSD1306 panel over any Transport.

Lifecycle
---------
1. Construction validates the geometry and runs ``init()``. If the
   controller cannot be programmed the constructor raises
   InitializationFailedError and the panel is unusable.
2. Any number of display/show/hide/contrast calls follow.
3. ``close()`` hides and clears the panel on its first call, then releases
   the transport. Further calls only re-request the (idempotent) release.

Error Behaviour
---------------
Transport errors during normal operation propagate unchanged. A failed
``display_*`` call may leave a partial frame on the glass but does not
change the controller's cached state, so the next call is safe.

Usage:
    with I2CTransport.open() as transport:
        with Panel(transport, 128, 64) as panel:
            panel.display_image(Image.open("logo.png"))
"""

import logging
from typing import Union

from PIL import Image

from oledlink.comms.base import Transport
from oledlink.display.commands import (
    DEFAULT_CONTRAST,
    Command,
    address_window,
    contrast_command,
    init_sequence,
)
from oledlink.display.geometry import Orientation, PanelGeometry
from oledlink.display.image import image_to_buffer
from oledlink.errors import (
    CommsError,
    InitializationFailedError,
    PreconditionViolationError,
)

# Configure module logger
logger = logging.getLogger(__name__)


class Panel:
    """
    Controller for one SSD1306 panel.

    The panel takes exclusive ownership of its transport; closing the
    panel releases it.

    Args:
        transport: Transport to the controller.
        width: Panel width in pixels.
        height: Panel height in pixels.
        orientation: Mounting orientation, applied to images.

    Raises:
        UnsupportedGeometryError: If width x height is not a preset.
        InitializationFailedError: If the init sequence fails.
    """

    def __init__(
        self,
        transport: Transport,
        width: int = 128,
        height: int = 64,
        orientation: Orientation = Orientation.DEG_0,
    ):
        self._geometry = PanelGeometry(width, height, orientation)
        self._transport = transport
        self._contrast = 0x00
        self._disposed = False

        try:
            self.init()
        except CommsError as e:
            raise InitializationFailedError(
                f"Can't initialize OLED screen ({self._geometry}): {e}"
            ) from e

    # -------------------------------------------------------------------------
    # Geometry
    # -------------------------------------------------------------------------

    @property
    def geometry(self) -> PanelGeometry:
        return self._geometry

    @property
    def width(self) -> int:
        return self._geometry.width

    @property
    def height(self) -> int:
        return self._geometry.height

    @property
    def orientation(self) -> Orientation:
        return self._geometry.orientation

    @property
    def closed(self) -> bool:
        """Return True once close() or detach() has been called."""
        return self._disposed

    # -------------------------------------------------------------------------
    # Controller Programming
    # -------------------------------------------------------------------------

    def init(self) -> None:
        """Program the controller registers, clear RAM and turn it on."""
        self._command(init_sequence(self._geometry.settings))
        self.set_contrast(DEFAULT_CONTRAST)
        self.clear()
        self.show()
        logger.info("Panel initialised: %s", self._geometry)

    def restart(self) -> None:
        """Clear and re-run init, e.g. after the link was interrupted."""
        self.clear()
        self.init()

    @property
    def contrast(self) -> int:
        """Last contrast value sent to the controller."""
        return self._contrast

    @contrast.setter
    def contrast(self, value: int) -> None:
        self.set_contrast(value)

    def set_contrast(self, value: int) -> None:
        """Send a contrast value (0-255) and remember it."""
        self._command(contrast_command(value))
        self._contrast = value

    def show(self) -> None:
        """Turn the display on."""
        self._command(bytes([Command.DISPLAYON]))

    def hide(self) -> None:
        """Turn the display off (RAM is kept)."""
        self._command(bytes([Command.DISPLAYOFF]))

    # -------------------------------------------------------------------------
    # Display RAM
    # -------------------------------------------------------------------------

    def display_buffer(self, buffer: bytes) -> None:
        """
        Write a full frame buffer to display RAM.

        Raises:
            PreconditionViolationError: If the buffer is not exactly
                ``width / 8 * height`` bytes. Nothing is sent in that case.
        """
        expected = self._geometry.buffer_size
        if len(buffer) != expected:
            raise PreconditionViolationError(expected, len(buffer))

        self._command(address_window(self._geometry))
        self._transport.send_data(bytes(buffer))

    def display_image(self, image: Image.Image, invert: bool = False) -> None:
        """Convert an image with the image pipeline and display it."""
        self.display_buffer(image_to_buffer(image, self._geometry, invert))

    def display(
        self, source: Union[bytes, bytearray, memoryview, Image.Image], invert: bool = False
    ) -> None:
        """
        Display either a raw frame buffer or an image.

        ``invert`` only applies to images; raw buffers are sent as given.
        """
        if isinstance(source, (bytes, bytearray, memoryview)):
            self.display_buffer(bytes(source))
        else:
            self.display_image(source, invert)

    def fill(self, value: int) -> None:
        """Fill display RAM with one byte value."""
        self.display_buffer(bytes([value]) * self._geometry.buffer_size)

    def clear(self) -> None:
        """Blank display RAM."""
        self.fill(0x00)

    # -------------------------------------------------------------------------
    # Disposal
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """
        Blank the panel and release the transport.

        The first call hides and clears the panel. The transport is
        released on every call; Transport.release() is itself idempotent.
        """
        try:
            if not self._disposed:
                self._disposed = True
                self.hide()
                self.clear()
        finally:
            self._transport.release()

    def detach(self) -> None:
        """Release the transport without blanking, leaving the image on the glass."""
        self._disposed = True
        self._transport.release()

    def __enter__(self) -> "Panel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _command(self, data: bytes) -> None:
        self._transport.send_command(data)

    def __repr__(self) -> str:
        return f"Panel({self._geometry}, transport={self._transport!r})"
