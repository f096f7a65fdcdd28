"""
Panel Geometry Presets
======================

The SSD1306 family is sold in a handful of glass sizes. Each size needs
its own multiplex ratio, clock divider and COM pin configuration, so the
controller only accepts the five presets below.

    size      multiplex  clock div  COM pins
    128 x 64     0x3F       0x80      0x12
    128 x 32     0x1F       0x80      0x02
     96 x 16     0x0F       0x60      0x02
     64 x 48     0x2F       0x80      0x12
     64 x 32     0x1F       0x80      0x12

Column Window
-------------
The controller RAM is 128 columns wide. Narrower glass is wired to the
centre columns, so the column window starts at ``(0x80 - width) / 2``.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Final

from oledlink.errors import UnsupportedGeometryError

# Width of the controller's display RAM in columns
RAM_COLUMNS: Final[int] = 0x80

# Pixel rows per page
PAGE_HEIGHT: Final[int] = 8


class Orientation(IntEnum):
    """Mounting orientation of the panel, in degrees."""

    DEG_0 = 0
    DEG_90 = 90
    DEG_180 = 180
    DEG_270 = 270


@dataclass(frozen=True)
class PanelSettings:
    """Size-dependent register values programmed by Init."""

    multiplex: int
    display_clock_div: int
    com_pins: int


def lookup_settings(width: int, height: int) -> PanelSettings:
    """
    Return the register settings for a supported panel size.

    Raises:
        UnsupportedGeometryError: If the size is not one of the presets.
    """
    match (width, height):
        case (128, 64):
            return PanelSettings(multiplex=0x3F, display_clock_div=0x80, com_pins=0x12)
        case (128, 32):
            return PanelSettings(multiplex=0x1F, display_clock_div=0x80, com_pins=0x02)
        case (96, 16):
            return PanelSettings(multiplex=0x0F, display_clock_div=0x60, com_pins=0x02)
        case (64, 48):
            return PanelSettings(multiplex=0x2F, display_clock_div=0x80, com_pins=0x12)
        case (64, 32):
            return PanelSettings(multiplex=0x1F, display_clock_div=0x80, com_pins=0x12)
        case _:
            raise UnsupportedGeometryError(width, height)


# All supported (width, height) pairs, largest first
SUPPORTED_SIZES: Final[tuple[tuple[int, int], ...]] = (
    (128, 64),
    (128, 32),
    (96, 16),
    (64, 48),
    (64, 32),
)


@dataclass(frozen=True)
class PanelGeometry:
    """
    Size and orientation of one panel.

    Construction validates the size against the presets, so a
    PanelGeometry instance always has settings.

    Attributes:
        width: Panel width in pixels.
        height: Panel height in pixels.
        orientation: Mounting orientation.
    """

    width: int
    height: int
    orientation: Orientation = Orientation.DEG_0

    def __post_init__(self) -> None:
        lookup_settings(self.width, self.height)
        object.__setattr__(self, "orientation", Orientation(self.orientation))

    @property
    def settings(self) -> PanelSettings:
        """Register values of the matching size preset."""
        return lookup_settings(self.width, self.height)

    @property
    def pages(self) -> int:
        """Number of 8-row pages."""
        return self.height // PAGE_HEIGHT

    @property
    def col_start(self) -> int:
        """First RAM column wired to the glass."""
        return (RAM_COLUMNS - self.width) // 2

    @property
    def col_end(self) -> int:
        """One past the last RAM column wired to the glass."""
        return self.col_start + self.width

    @property
    def buffer_size(self) -> int:
        """Length of a full frame buffer in bytes."""
        return self.width // 8 * self.height

    def __str__(self) -> str:
        return f"{self.width}x{self.height}@{self.orientation.value}"
