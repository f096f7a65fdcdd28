"""
SSD1306 Command Set
===================

Opcodes of the SSD1306 controller and builders for the command bursts
the panel controller sends. Opcodes that take arguments are followed by
their argument bytes in the same command burst.
"""

from enum import IntEnum

from oledlink.display.geometry import PanelGeometry, PanelSettings


class Command(IntEnum):
    """SSD1306 command opcodes."""

    DISPLAYOFF = 0xAE
    DISPLAYON = 0xAF
    DISPLAYALLON = 0xA5
    DISPLAYALLON_RESUME = 0xA4
    NORMALDISPLAY = 0xA6
    INVERTDISPLAY = 0xA7
    SETREMAP = 0xA0
    SETSEGMENTREMAP = 0xA1
    SETMULTIPLEX = 0xA8
    SETCONTRAST = 0x81
    CHARGEPUMP = 0x8D
    COLUMNADDR = 0x21
    PAGEADDR = 0x22
    MEMORYMODE = 0x20
    COMSCANINC = 0xC0
    COMSCANDEC = 0xC8
    SETCOMPINS = 0xDA
    SETDISPLAYCLOCKDIV = 0xD5
    SETDISPLAYOFFSET = 0xD3
    SETLOWCOLUMN = 0x00
    SETHIGHCOLUMN = 0x10
    SETPRECHARGE = 0xD9
    SETSTARTLINE = 0x40
    SETVCOMDETECT = 0xDB


# Argument values used by the init sequence
CHARGEPUMP_ENABLE = 0x14
MEMORYMODE_HORIZONTAL = 0x00
PRECHARGE_PERIOD = 0xF1
VCOMH_DESELECT = 0x40

DEFAULT_CONTRAST = 0xCF


def init_sequence(settings: PanelSettings) -> bytes:
    """Build the register programming burst sent by Init."""
    return bytes([
        Command.DISPLAYOFF,
        Command.SETDISPLAYCLOCKDIV, settings.display_clock_div,
        Command.SETMULTIPLEX, settings.multiplex,
        Command.SETDISPLAYOFFSET, 0x00,
        Command.SETSTARTLINE,
        Command.CHARGEPUMP, CHARGEPUMP_ENABLE,
        Command.MEMORYMODE, MEMORYMODE_HORIZONTAL,
        Command.SETSEGMENTREMAP,
        Command.COMSCANDEC,
        Command.SETCOMPINS, settings.com_pins,
        Command.SETPRECHARGE, PRECHARGE_PERIOD,
        Command.SETVCOMDETECT, VCOMH_DESELECT,
        Command.DISPLAYALLON_RESUME,
        Command.NORMALDISPLAY,
    ])


def address_window(geometry: PanelGeometry) -> bytes:
    """Build the column/page window covering the whole glass."""
    return bytes([
        Command.COLUMNADDR, geometry.col_start, geometry.col_end - 1,
        Command.PAGEADDR, 0x00, geometry.pages - 1,
    ])


def contrast_command(value: int) -> bytes:
    """
    Build the SETCONTRAST command for ``value``.

    Raises:
        ValueError: If value is outside 0-255.
    """
    if not 0 <= value <= 0xFF:
        raise ValueError(f"Contrast must be 0-255, got {value}")
    return bytes([Command.SETCONTRAST, value])
