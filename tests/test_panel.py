"""
Tests for the Panel Controller
==============================

The panel is driven through RecordingTransport (see conftest.py), so
every test can assert on the exact command/data bursts it produced.
"""

import pytest
from PIL import Image

from oledlink.comms.base import ControlByte
from oledlink.display.commands import init_sequence
from oledlink.display.geometry import Orientation, lookup_settings
from oledlink.display.panel import Panel
from oledlink.errors import (
    InitializationFailedError,
    PreconditionViolationError,
    TransportIOError,
    UnsupportedGeometryError,
)

WINDOW_128X64 = bytes([0x21, 0x00, 0x7F, 0x22, 0x00, 0x07])


@pytest.fixture
def panel(transport):
    """An initialised 128x64 panel whose init traffic has been discarded."""
    p = Panel(transport, 128, 64)
    transport.calls.clear()
    return p


# =============================================================================
# Initialization
# =============================================================================

class TestInit:
    """Tests for construction and init()."""

    def test_init_traffic(self, transport):
        Panel(transport, 128, 64)

        assert transport.calls == [
            (ControlByte.COMMAND, init_sequence(lookup_settings(128, 64))),
            (ControlByte.COMMAND, bytes([0x81, 0xCF])),
            (ControlByte.COMMAND, WINDOW_128X64),
            (ControlByte.DATA, bytes(1024)),
            (ControlByte.COMMAND, bytes([0xAF])),
        ]

    def test_init_sets_default_contrast(self, transport):
        assert Panel(transport).contrast == 0xCF

    def test_init_failure(self, make_transport):
        failing = make_transport(fail_after=0, failure=TransportIOError("unplugged"))
        with pytest.raises(InitializationFailedError, match="unplugged"):
            Panel(failing, 128, 64)

    def test_init_failure_midway(self, make_transport):
        failing = make_transport(fail_after=2, failure=TransportIOError("stall"))
        with pytest.raises(InitializationFailedError) as exc_info:
            Panel(failing, 128, 32)
        assert isinstance(exc_info.value.__cause__, TransportIOError)

    def test_unsupported_geometry_sends_nothing(self, transport):
        with pytest.raises(UnsupportedGeometryError):
            Panel(transport, 128, 48)
        assert transport.calls == []

    def test_properties(self, transport):
        p = Panel(transport, 64, 48, Orientation.DEG_270)
        assert (p.width, p.height) == (64, 48)
        assert p.orientation is Orientation.DEG_270
        assert p.geometry.buffer_size == 384
        assert not p.closed

    def test_restart(self, panel, transport):
        panel.restart()
        commands = transport.commands
        assert commands[0] == WINDOW_128X64
        assert commands[1] == init_sequence(lookup_settings(128, 64))
        assert commands[-1] == bytes([0xAF])
        assert len(transport.data) == 2


# =============================================================================
# Display Operations
# =============================================================================

class TestDisplay:
    """Tests for buffer and image display."""

    def test_display_buffer(self, panel, transport):
        buffer = bytes(range(256)) * 4
        panel.display_buffer(buffer)
        assert transport.calls == [
            (ControlByte.COMMAND, WINDOW_128X64),
            (ControlByte.DATA, buffer),
        ]

    @pytest.mark.parametrize("length", [0, 1023, 1025, 512])
    def test_wrong_length_sends_nothing(self, panel, transport, length):
        with pytest.raises(PreconditionViolationError) as exc_info:
            panel.display_buffer(bytes(length))
        assert exc_info.value.expected == 1024
        assert exc_info.value.actual == length
        assert transport.calls == []

    def test_centred_window(self, transport):
        p = Panel(transport, 96, 16)
        transport.calls.clear()
        p.display_buffer(bytes(192))
        assert transport.commands == [bytes([0x21, 16, 111, 0x22, 0x00, 0x01])]

    def test_display_image(self, panel, transport):
        image = Image.new("1", (128, 64), 0)
        image.putpixel((0, 0), 1)
        panel.display_image(image)
        assert transport.data[0][0] == 0x01

    def test_display_image_inverted(self, panel, transport):
        panel.display_image(Image.new("RGB", (128, 64)), invert=True)
        assert transport.data == [b"\xFF" * 1024]

    def test_display_dispatches_bytes(self, panel, transport):
        panel.display(bytearray(1024))
        assert transport.data == [bytes(1024)]

    def test_display_dispatches_image(self, panel, transport):
        panel.display(Image.new("L", (128, 64), 255))
        assert transport.data == [b"\xFF" * 1024]

    def test_fill_and_clear(self, panel, transport):
        panel.fill(0xAA)
        panel.clear()
        assert transport.data == [b"\xAA" * 1024, bytes(1024)]

    def test_show_hide(self, panel, transport):
        panel.hide()
        panel.show()
        assert transport.commands == [b"\xAE", b"\xAF"]

    def test_contrast_setter(self, panel, transport):
        panel.contrast = 0x10
        assert panel.contrast == 0x10
        assert transport.commands == [bytes([0x81, 0x10])]

    def test_invalid_contrast_keeps_cache(self, panel, transport):
        with pytest.raises(ValueError):
            panel.set_contrast(300)
        assert panel.contrast == 0xCF
        assert transport.calls == []

    def test_transport_error_propagates(self, transport):
        p = Panel(transport)
        transport.fail_after = len(transport.calls)
        transport.failure = TransportIOError("gone")
        with pytest.raises(TransportIOError):
            p.fill(0xFF)


# =============================================================================
# Disposal
# =============================================================================

class TestDispose:
    """Tests for close() and detach()."""

    def test_close_blanks_then_releases(self, panel, transport):
        panel.close()
        assert transport.calls == [
            (ControlByte.COMMAND, b"\xAE"),
            (ControlByte.COMMAND, WINDOW_128X64),
            (ControlByte.DATA, bytes(1024)),
        ]
        assert transport.released
        assert panel.closed

    def test_double_close(self, panel, transport):
        panel.close()
        panel.close()
        assert transport.commands.count(b"\xAE") == 1
        assert len(transport.data) == 1
        assert transport.device_releases == 1

    def test_close_releases_even_if_blanking_fails(self, panel, transport):
        transport.fail_after = 0
        transport.failure = TransportIOError("gone")
        with pytest.raises(TransportIOError):
            panel.close()
        assert transport.device_releases == 1

    def test_context_manager(self, transport):
        with Panel(transport) as p:
            p.fill(0xFF)
        assert transport.device_releases == 1
        assert transport.data[-1] == bytes(1024)

    def test_detach_keeps_image(self, panel, transport):
        panel.fill(0xFF)
        panel.detach()
        panel.close()
        assert transport.data == [b"\xFF" * 1024]
        assert transport.device_releases == 1


# =============================================================================
# Hardware Tests
# =============================================================================

@pytest.mark.hardware
class TestHardware:
    """Smoke test against a real bridge and panel (run with --hardware)."""

    def test_checkerboard(self):
        from oledlink.config import PanelConfig
        from oledlink.session import open_panel

        with open_panel(PanelConfig.from_env()) as p:
            p.fill(0xAA)
            assert p.contrast == 0xCF
