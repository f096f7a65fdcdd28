"""
Tests for the Image Pipeline
============================

Covers scaling, dithering, bit packing and the page transpose that
turns scanlines into SSD1306 display RAM order.
"""

import pytest
from PIL import Image

from oledlink.display.geometry import Orientation, PanelGeometry
from oledlink.display.image import (
    image_to_buffer,
    invert_buffer,
    dither,
    luminance,
    pack_rows,
    prepare_image,
    scale_to_fit,
    transpose_pages,
    untranspose_pages,
)


def lit(width, height, *points):
    """A black 1-bit image with the given pixels lit."""
    image = Image.new("1", (width, height), 0)
    for point in points:
        image.putpixel(point, 1)
    return image


# =============================================================================
# Luminance and Dithering
# =============================================================================

def grey(width, height, values):
    """A mode "L" image filled row by row from ``values``."""
    image = Image.new("L", (width, height))
    image.putdata(values)
    return image


class TestDither:
    """Tests for luminance and error diffusion."""

    # Grey levels and their truncated luminance:
    #   91 -> 90, 100 -> 99, 120 -> 118, 132 -> 131, 150 -> 148

    @pytest.mark.parametrize("second,expected", [
        (100, [0, 255]),  # 99 + 7 * 131/23 = 138.9
        (91, [0, 0]),     # 90 + 7 * 131/23 = 129.9
    ])
    def test_right_neighbour_gets_seven_23rds(self, second, expected):
        result = dither(grey(2, 1, [132, second]))
        assert list(result.getdata()) == expected

    def test_uniform_grey_golden(self):
        """4x2 at luminance 131, just under the threshold."""
        result = dither(grey(4, 2, [132] * 8))
        assert list(result.getdata()) == [
            0, 255, 0, 255,
            255, 0, 255, 0,
        ]

    def test_lower_row_weights(self):
        """
        Error from the last column reaches (x-1, y+1) with weight 3 and
        (x, y+1) with weight 5.

        (1, 1): 118 + 3 * 131/23 = 135.1 -> white, error -5.21
        (2, 1): 148 + 5 * 131/23 - 7 * 5.21 = 140.0 -> white
        """
        result = dither(grey(3, 2, [0, 0, 132, 0, 120, 150]))
        assert list(result.getdata()) == [0, 0, 0, 0, 255, 255]

    def test_last_column_does_not_wrap(self):
        """Right-hand error at x = w-1 is dropped, not carried to the next row."""
        # Wrapping would lift (0, 1) from 99 to 138.9 and turn it white
        result = dither(grey(3, 2, [0, 0, 132, 100, 0, 0]))
        assert list(result.getdata()) == [0, 0, 0, 0, 0, 0]

    def test_luminance_extremes(self):
        assert luminance(0, 0, 0) == 0
        assert luminance(255, 255, 255) == 254

    def test_luminance_is_truncated_per_channel(self):
        # 0.2126*128 + 0.7152*128 + 0.0722*128, each truncated
        assert luminance(128, 128, 128) == 27 + 91 + 9

    def test_white_stays_white(self):
        result = dither(Image.new("RGB", (16, 8), (255, 255, 255)))
        assert set(result.getdata()) == {255}

    def test_black_stays_black(self):
        result = dither(Image.new("RGB", (16, 8), (0, 0, 0)))
        assert set(result.getdata()) == {0}

    def test_mid_grey_mixes(self):
        result = dither(Image.new("RGB", (32, 16), (128, 128, 128)))
        assert result.mode == "L"
        assert set(result.getdata()) == {0, 255}

    def test_output_is_binary(self):
        gradient = Image.linear_gradient("L").resize((64, 32)).convert("RGB")
        assert set(dither(gradient).getdata()) <= {0, 255}

    def test_single_row(self):
        """Diffusion off the last row is dropped, the row is still processed."""
        result = dither(Image.new("RGB", (8, 1), (200, 200, 200)))
        assert result.size == (8, 1)
        assert set(result.getdata()) <= {0, 255}


# =============================================================================
# Scaling
# =============================================================================

class TestScaling:
    """Tests for aspect-preserving scale and centring."""

    def test_wide_image_is_letterboxed(self):
        source = Image.new("RGB", (256, 64), (255, 0, 0))
        result = scale_to_fit(source, 128, 64)

        assert result.size == (128, 64)
        assert result.getpixel((0, 0)) == (0, 0, 0)
        assert result.getpixel((64, 63)) == (0, 0, 0)
        assert result.getpixel((64, 32))[0] > 200

    def test_tall_image_is_pillarboxed(self):
        source = Image.new("RGB", (64, 128), (255, 255, 255))
        result = scale_to_fit(source, 128, 64)

        assert result.getpixel((0, 32)) == (0, 0, 0)
        assert result.getpixel((64, 32))[1] > 200

    def test_transparency_composited_on_black(self):
        source = Image.new("RGBA", (256, 128), (255, 255, 255, 0))
        result = scale_to_fit(source, 128, 64)
        assert result.getpixel((64, 32)) == (0, 0, 0)


class TestPrepareImage:
    """Tests for the panel-sized 1-bit conversion."""

    def test_large_image_is_panel_sized(self):
        result = prepare_image(Image.new("RGB", (640, 480), (255, 255, 255)),
                               PanelGeometry(128, 64))
        assert result.mode == "1"
        assert result.size == (128, 64)

    def test_small_image_is_centred(self):
        result = prepare_image(Image.new("L", (8, 8), 255), PanelGeometry(128, 64))
        assert result.getpixel((60, 28)) == 255
        assert result.getpixel((0, 0)) == 0

    def test_rotation_is_clockwise(self):
        source = lit(64, 128, (0, 0))
        result = prepare_image(source, PanelGeometry(128, 64, Orientation.DEG_90))
        assert result.size == (128, 64)
        assert result.getpixel((127, 0)) == 255

    def test_upside_down(self):
        source = lit(128, 64, (0, 0))
        result = prepare_image(source, PanelGeometry(128, 64, Orientation.DEG_180))
        assert result.getpixel((127, 63)) == 255
        assert result.getpixel((0, 0)) == 0


# =============================================================================
# Bit Packing and Transpose
# =============================================================================

class TestPackRows:
    """Tests for scanline packing."""

    def test_bottom_row_first(self):
        assert pack_rows(lit(16, 2, (0, 0))) == bytes([0x00, 0x00, 0x80, 0x00])

    def test_msb_is_leftmost(self):
        assert pack_rows(lit(8, 1, (7, 0))) == b"\x01"

    def test_width_must_be_multiple_of_8(self):
        with pytest.raises(ValueError):
            pack_rows(lit(12, 8))


class TestTranspose:
    """Tests for the page/column transpose."""

    def test_top_left_pixel_lands_in_byte_0_bit_0(self):
        pixels = pack_rows(lit(8, 8, (0, 0)))
        result = transpose_pages(pixels, 8, 8)
        assert result[0] == 0x01
        assert result[1:] == bytes(7)

    def test_column_and_page_addressing(self):
        """Pixel (9, 10) is column 9 of page 1, bit 2."""
        pixels = pack_rows(lit(128, 64, (9, 10)))
        result = transpose_pages(pixels, 128, 64)
        assert result[128 + 9] == 0x04
        assert sum(1 for b in result if b) == 1

    def test_bottom_right_pixel(self):
        pixels = pack_rows(lit(128, 64, (127, 63)))
        result = transpose_pages(pixels, 128, 64)
        assert result[-1] == 0x80

    def test_vertical_line_fills_column_bytes(self):
        image = lit(8, 16, *[(3, y) for y in range(16)])
        result = transpose_pages(pack_rows(image), 8, 16)
        assert result == bytes([0, 0, 0, 0xFF, 0, 0, 0, 0]) * 2

    def test_untranspose_restores_pixels(self):
        image = lit(64, 32, (0, 0), (5, 17), (63, 31), (40, 8))
        pixels = pack_rows(image)
        assert untranspose_pages(transpose_pages(pixels, 64, 32), 64, 32) == pixels

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            transpose_pages(bytes(10), 8, 8)

    def test_height_must_be_multiple_of_8(self):
        with pytest.raises(ValueError):
            transpose_pages(bytes(12), 8, 12)


class TestImageToBuffer:
    """Tests for the full pipeline."""

    def test_black_image(self):
        buffer = image_to_buffer(Image.new("RGB", (128, 64)), PanelGeometry(128, 64))
        assert buffer == bytes(1024)

    def test_single_pixel(self):
        buffer = image_to_buffer(lit(128, 64, (0, 0)), PanelGeometry(128, 64))
        assert buffer[0] == 0x01
        assert sum(buffer) == 1

    def test_invert(self):
        geometry = PanelGeometry(128, 32)
        buffer = image_to_buffer(Image.new("RGB", (128, 32)), geometry, invert=True)
        assert buffer == b"\xFF" * geometry.buffer_size

    def test_invert_twice_is_identity(self):
        data = bytes(range(256))
        assert invert_buffer(invert_buffer(data)) == data

    def test_size_matches_geometry(self):
        geometry = PanelGeometry(96, 16)
        buffer = image_to_buffer(Image.new("RGB", (300, 300), "white"), geometry)
        assert len(buffer) == geometry.buffer_size
