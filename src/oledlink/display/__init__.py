"""
oledlink Display Module
=======================

Panel controller, geometry presets, SSD1306 command builders and the
image pipeline.

- **geometry**: the five supported panel sizes and their register values
- **commands**: SSD1306 opcodes and command bursts
- **image**: scale, dither, pack and page-transpose images
- **panel**: the Panel controller
"""

from oledlink.display.commands import (
    DEFAULT_CONTRAST,
    Command,
    address_window,
    contrast_command,
    init_sequence,
)
from oledlink.display.geometry import (
    SUPPORTED_SIZES,
    Orientation,
    PanelGeometry,
    PanelSettings,
    lookup_settings,
)
from oledlink.display.image import (
    dither,
    image_to_buffer,
    invert_buffer,
    luminance,
    pack_rows,
    prepare_image,
    scale_to_fit,
    transpose_pages,
    untranspose_pages,
)
from oledlink.display.panel import Panel

__all__ = [
    "DEFAULT_CONTRAST",
    "Command",
    "address_window",
    "contrast_command",
    "init_sequence",
    "SUPPORTED_SIZES",
    "Orientation",
    "PanelGeometry",
    "PanelSettings",
    "lookup_settings",
    "dither",
    "image_to_buffer",
    "invert_buffer",
    "luminance",
    "pack_rows",
    "prepare_image",
    "scale_to_fit",
    "transpose_pages",
    "untranspose_pages",
    "Panel",
]
