"""
Image Pipeline
==============

Converts an arbitrary raster image into the byte layout the SSD1306
expects in display RAM.

Pipeline Stages
---------------
1. **Orientation**: the source is rotated clockwise by the panel's
   mounting angle (no-op for 0 degrees).
2. **Scale-to-fit** (only if the source is larger than the panel): the
   image is resized with its aspect ratio kept and centred on a black,
   panel-sized canvas (letterboxed, never cropped).
3. **Dithering** (only when scaling occurred): error diffusion to black
   and white, see ``dither()``.
   Smaller images are centred on the canvas and thresholded instead.
4. **Packing**: the 1-bit image becomes scanlines of 8 pixels per byte,
   bit 7 leftmost, listed bottom-up (bitmap file order).
5. **Page transpose**: scanlines become pages of column bytes, see
   ``transpose_pages()``.
6. **Inversion** (optional): every byte is complemented.

Display RAM Layout
------------------
The panel is programmed one page (8 pixel rows) at a time. Within a page
each byte covers one column: bit 0 is the top pixel, bit 7 the bottom.

    page 0:  col0 col1 col2 ... col(W-1)
    page 1:  col0 col1 col2 ... col(W-1)
    ...

A full buffer is ``width / 8 * height`` bytes.
"""

import logging
from typing import Final

from PIL import Image

from oledlink.display.geometry import Orientation, PanelGeometry

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Rec. 709 luma coefficients (R, G, B)
LUMA_COEFFICIENTS: Final[tuple[float, float, float]] = (0.2126, 0.7152, 0.0722)

# Luminance below this becomes black
DITHER_THRESHOLD: Final[int] = 135

# Error is divided by this before being spread with the weights below
DITHER_DIVISOR: Final[float] = 23.0

# (dx, dy, weight) of the diffusion kernel
DITHER_KERNEL: Final[tuple[tuple[int, int, int], ...]] = (
    (1, 0, 7),
    (-1, 1, 3),
    (0, 1, 5),
    (1, 1, 1),
)

# Per-channel lookup tables, truncated to whole luminance steps
_LUMA_TABLES: Final[tuple[tuple[int, ...], ...]] = tuple(
    tuple(int(coef * i) for i in range(256)) for coef in LUMA_COEFFICIENTS
)


# =============================================================================
# Colour Helpers
# =============================================================================

def _to_rgb(image: Image.Image) -> Image.Image:
    """Convert to RGB, compositing any transparency onto black."""
    if image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info:
        rgba = image.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
        return Image.alpha_composite(background, rgba).convert("RGB")
    return image.convert("RGB")


def luminance(r: int, g: int, b: int) -> int:
    """Return the luminance (0-254) of an RGB pixel."""
    red, green, blue = _LUMA_TABLES
    return red[r] + green[g] + blue[b]


# =============================================================================
# Scaling and Dithering
# =============================================================================

def scale_to_fit(image: Image.Image, width: int, height: int) -> Image.Image:
    """
    Resize an image to fit a width x height canvas, keeping aspect ratio.

    The result is centred on a black canvas of exactly width x height.

    Returns:
        RGB image of size (width, height).
    """
    source = _to_rgb(image)
    scale = min(width / source.width, height / source.height)
    scaled_width = max(1, int(source.width * scale))
    scaled_height = max(1, int(source.height * scale))

    logger.debug(
        "Scaling %dx%d -> %dx%d (factor %.3f)",
        source.width, source.height, scaled_width, scaled_height, scale,
    )

    resized = source.resize((scaled_width, scaled_height), Image.Resampling.BICUBIC)
    canvas = Image.new("RGB", (width, height), (0, 0, 0))
    canvas.paste(
        resized, ((width - scaled_width) // 2, (height - scaled_height) // 2)
    )
    return canvas


def dither(image: Image.Image) -> Image.Image:
    """
    Reduce an image to pure black and white by error diffusion.

    Each pixel's luminance is binarised at DITHER_THRESHOLD. The error
    ``(L - output) / 23`` is spread to the right neighbour (x7) and to the
    row below at x-1, x, x+1 (x3, x5, x1). Diffusion that would land
    outside the image is dropped.

    Returns:
        Mode "L" image containing only 0 and 255.
    """
    source = _to_rgb(image)
    width, height = source.size
    raw = source.tobytes()

    levels = [
        float(luminance(raw[i], raw[i + 1], raw[i + 2]))
        for i in range(0, len(raw), 3)
    ]

    for y in range(height):
        row = y * width
        for x in range(width):
            old = levels[row + x]
            new = 0.0 if old < DITHER_THRESHOLD else 255.0
            levels[row + x] = new
            error = (old - new) / DITHER_DIVISOR

            for dx, dy, weight in DITHER_KERNEL:
                nx, ny = x + dx, y + dy
                if 0 <= nx < width and ny < height:
                    levels[ny * width + nx] += error * weight

    return Image.frombytes("L", (width, height), bytes(int(v) for v in levels))


def prepare_image(image: Image.Image, geometry: PanelGeometry) -> Image.Image:
    """
    Turn any image into a panel-sized 1-bit image.

    Sources larger than the panel are scaled and dithered; smaller ones
    are centred on a black canvas and thresholded.

    Returns:
        Mode "1" image of size (geometry.width, geometry.height).
    """
    if geometry.orientation != Orientation.DEG_0:
        image = image.rotate(-int(geometry.orientation), expand=True)

    width, height = geometry.width, geometry.height

    if image.width > width or image.height > height:
        mono = dither(scale_to_fit(image, width, height))
    else:
        canvas = Image.new("RGB", (width, height), (0, 0, 0))
        canvas.paste(
            _to_rgb(image), ((width - image.width) // 2, (height - image.height) // 2)
        )
        mono = canvas.convert("L")

    return mono.convert("1", dither=Image.Dither.NONE)


# =============================================================================
# Bit Packing
# =============================================================================

def pack_rows(image: Image.Image) -> bytes:
    """
    Pack a 1-bit image into scanlines, bottom row first.

    Each scanline holds 8 pixels per byte with bit 7 the leftmost pixel;
    a set bit is a lit pixel. The image width must be a multiple of 8.
    """
    if image.width % 8:
        raise ValueError(f"Image width must be a multiple of 8, got {image.width}")

    mono = image if image.mode == "1" else image.convert("1", dither=Image.Dither.NONE)
    stride = mono.width // 8
    raw = mono.tobytes()

    rows = [raw[y * stride:(y + 1) * stride] for y in range(mono.height)]
    return b"".join(reversed(rows))


def _check_layout(length: int, width: int, height: int) -> int:
    if width % 8 or height % 8:
        raise ValueError(f"Size must be a multiple of 8, got {width}x{height}")
    stride = width // 8
    if length != stride * height:
        raise ValueError(
            f"Expected {stride * height} bytes for {width}x{height}, got {length}"
        )
    return stride


def transpose_pages(pixels: bytes, width: int, height: int) -> bytes:
    """
    Convert packed scanlines into the panel's page/column layout.

    ``pixels`` holds ``height`` scanlines of ``width / 8`` bytes, bottom row
    first (as produced by ``pack_rows()``). For page ``p``, column byte
    ``x`` and source bit ``k`` (7 down to 0), output byte
    ``n = p * width + x * 8 + (7 - k)`` collects bit ``k`` of scanlines
    ``height - 1 - 8p`` down to ``height - 8(p + 1)`` into bits 0..7.

    Within every 8x8 block this swaps horizontal bit position with
    vertical row position, so the top-left source pixel ends up in bit 0
    of output byte 0.

    Raises:
        ValueError: If the buffer length does not match width and height.
    """
    stride = _check_layout(len(pixels), width, height)
    output = bytearray(stride * height)

    n = 0
    for page in range(height // 8):
        top = (height - 1) - 8 * page
        for x in range(stride):
            for k in range(7, -1, -1):
                mask = 1 << k
                value = 0
                for j in range(8):
                    if pixels[(top - j) * stride + x] & mask:
                        value |= 1 << j
                output[n] = value
                n += 1

    return bytes(output)


def untranspose_pages(buffer: bytes, width: int, height: int) -> bytes:
    """Inverse of ``transpose_pages()``: rebuild the packed scanlines."""
    stride = _check_layout(len(buffer), width, height)
    pixels = bytearray(stride * height)

    n = 0
    for page in range(height // 8):
        top = (height - 1) - 8 * page
        for x in range(stride):
            for k in range(7, -1, -1):
                value = buffer[n]
                for j in range(8):
                    if value & (1 << j):
                        pixels[(top - j) * stride + x] |= 1 << k
                n += 1

    return bytes(pixels)


def invert_buffer(buffer: bytes) -> bytes:
    """Complement every byte (255 - b)."""
    return bytes(255 - b for b in buffer)


def image_to_buffer(
    image: Image.Image, geometry: PanelGeometry, invert: bool = False
) -> bytes:
    """
    Run the full pipeline and return a frame buffer for ``geometry``.

    Args:
        image: Any Pillow image.
        geometry: Target panel geometry.
        invert: Complement every output byte.

    Returns:
        ``geometry.buffer_size`` bytes in display RAM order.
    """
    mono = prepare_image(image, geometry)
    buffer = transpose_pages(pack_rows(mono), geometry.width, geometry.height)
    return invert_buffer(buffer) if invert else buffer
