"""
oledctl - Panel Control Command-Line Interface
==============================================

Drives an SSD1306 panel from the command line through either the
USB-I2C bridge or the framed UART bridge.

Usage Examples
--------------
List serial ports and USB-I2C bridges:
    $ oledctl ports
    $ oledctl devices

Check the USB bridge is alive:
    $ oledctl echo 0x1234

Show an image for ten seconds on a 128x32 panel over UART:
    $ oledctl --transport uart --port /dev/ttyUSB0 --size 128x32 \\
          show logo.png --hold 10

Leave an image on the panel after exiting:
    $ oledctl --keep show logo.png

Configuration
-------------
Defaults come from OLEDLINK_* environment variables (see oledlink.config);
command-line options override them.

Exit Codes
----------
0 - Success
1 - Device or panel error
2 - Invalid arguments
3 - Internal error
"""

import logging
import time
from pathlib import Path
from typing import Optional

import click
from PIL import Image, UnidentifiedImageError

from oledlink import __version__
from oledlink.cli.errors import ExitCode, handle_cli_exception
from oledlink.comms import (
    COMMON_BAUD_RATES,
    I2CBridge,
    find_bridges,
    format_port_list,
    list_serial_ports,
)
from oledlink.config import TRANSPORTS, PanelConfig, parse_int, parse_size
from oledlink.display.geometry import SUPPORTED_SIZES, Orientation
from oledlink.session import open_panel

# Configure logging
logger = logging.getLogger(__name__)


# =============================================================================
# CLI Context and Utilities
# =============================================================================

class Context:
    """
    Shared context for CLI commands.

    Stores the resolved panel configuration and global flags.
    """

    def __init__(self) -> None:
        self.config: PanelConfig = PanelConfig()
        self.keep: bool = False
        self.verbose: bool = False

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.INFO
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(message)s" if self.verbose else "%(message)s",
        )


pass_context = click.make_pass_decorator(Context, ensure=True)


class IntParam(click.ParamType):
    """Integer accepting decimal or 0x-prefixed hex."""

    name = "integer"

    def convert(self, value, param, ctx):
        if isinstance(value, int):
            return value
        try:
            return parse_int(value)
        except ValueError:
            self.fail(f"{value!r} is not a valid integer", param, ctx)


class SizeParam(click.ParamType):
    """Panel size written as WIDTHxHEIGHT."""

    name = "size"

    def convert(self, value, param, ctx):
        if isinstance(value, tuple):
            return value
        try:
            size = parse_size(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)
        if size not in SUPPORTED_SIZES:
            supported = ", ".join(f"{w}x{h}" for w, h in SUPPORTED_SIZES)
            self.fail(f"{value} is not supported (choose {supported})", param, ctx)
        return size


INT = IntParam()
SIZE = SizeParam()


def hold_display(seconds: float) -> None:
    """Keep the current image on the panel for a while."""
    if seconds > 0:
        click.echo(f"Holding for {seconds:g}s (Ctrl-C to stop)...")
        try:
            time.sleep(seconds)
        except KeyboardInterrupt:
            click.echo()


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "-t", "--transport",
    type=click.Choice(TRANSPORTS),
    default=None,
    help="usb (USB-I2C bridge) or uart (serial bridge)",
)
@click.option(
    "-p", "--port",
    type=str,
    default=None,
    help="Serial port device (uart only; first port if absent)",
)
@click.option(
    "-b", "--baud",
    type=int,
    default=None,
    help=f"Baud rate (uart only), e.g. {', '.join(map(str, COMMON_BAUD_RATES[-4:]))}",
)
@click.option(
    "-a", "--address",
    type=INT,
    default=None,
    help="Panel I2C address (default: 0x3C)",
)
@click.option(
    "-s", "--size",
    type=SIZE,
    default=None,
    help="Panel size as WIDTHxHEIGHT (default: 128x64)",
)
@click.option(
    "-o", "--orientation",
    type=click.Choice([str(o.value) for o in Orientation]),
    default=None,
    help="Mounting orientation in degrees",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Check bridge status after every I2C write",
)
@click.option(
    "--chunk-size",
    type=int,
    default=None,
    help="Split I2C data writes into chunks of this many bytes",
)
@click.option(
    "-k", "--keep",
    is_flag=True,
    help="Leave the image on the panel on exit",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.version_option(version=__version__, prog_name="oledctl")
@pass_context
def main(
    ctx: Context,
    transport: Optional[str],
    port: Optional[str],
    baud: Optional[int],
    address: Optional[int],
    size: Optional[tuple[int, int]],
    orientation: Optional[str],
    strict: bool,
    chunk_size: Optional[int],
    keep: bool,
    verbose: bool,
) -> None:
    """
    Control an SSD1306 OLED panel over a USB-I2C or UART bridge.

    Use 'oledctl ports' and 'oledctl devices' to find connected hardware.
    """
    ctx.verbose = verbose
    ctx.keep = keep
    ctx.setup_logging()

    config = PanelConfig.from_env()
    if transport is not None:
        config.transport = transport
    if port is not None:
        config.port = port
    if baud is not None:
        config.baud_rate = baud
    if address is not None:
        config.address = address
    if size is not None:
        config.width, config.height = size
    if orientation is not None:
        config.orientation = Orientation(int(orientation))
    if strict:
        config.strict = True
    if chunk_size is not None:
        config.chunk_size = chunk_size
    ctx.config = config


# =============================================================================
# Discovery Commands
# =============================================================================

@main.command()
@click.option(
    "--detailed", "-d",
    is_flag=True,
    help="Show detailed port information",
)
def ports(detailed: bool) -> None:
    """List available serial ports."""
    port_list = list_serial_ports()

    if not port_list:
        click.echo("No serial ports found.")
        click.echo("\nTips:")
        click.echo("  - Connect the UART bridge")
        click.echo("  - On Linux, ensure you have permission (dialout group)")
        return

    click.echo("Available serial ports:")
    click.echo(format_port_list(port_list, verbose=detailed))


@main.command()
@pass_context
def devices(ctx: Context) -> None:
    """List connected USB-I2C bridges."""
    try:
        bridges = find_bridges()
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)

    if not bridges:
        click.echo("No USB-I2C bridges found.")
        return

    click.echo("USB-I2C bridges:")
    for device in bridges:
        click.echo(
            f"  {device.idVendor:04X}:{device.idProduct:04X} "
            f"(bus {getattr(device, 'bus', '?')}, "
            f"address {getattr(device, 'address', '?')})"
        )


@main.command()
@click.argument("value", type=INT, default=0x55AA)
@pass_context
def echo(ctx: Context, value: int) -> None:
    """
    Round-trip VALUE through the USB-I2C bridge.

    VALUE is a signed 16-bit integer (decimal or 0x hex).
    """
    if value > 0x7FFF:
        value -= 0x10000

    try:
        with I2CBridge.open() as bridge:
            reply = bridge.echo(value)
            functions = bridge.get_functions()
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)

    click.echo(f"Sent {value}, received {reply}")
    click.echo(f"Bridge functions: {functions:#010x}")
    if reply != value:
        click.echo("Echo mismatch: the bridge is not responding correctly.", err=True)
        raise SystemExit(ExitCode.DEVICE_ERROR)


# =============================================================================
# Panel Commands
# =============================================================================

@main.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--invert", "-i", is_flag=True, help="Invert every pixel")
@click.option("--contrast", "-c", type=INT, default=None, help="Contrast 0-255")
@click.option("--hold", type=float, default=0.0, help="Seconds to keep the image shown")
@pass_context
def show(
    ctx: Context, image: Path, invert: bool, contrast: Optional[int], hold: float
) -> None:
    """Display IMAGE on the panel (scaled and dithered as needed)."""
    try:
        with Image.open(image) as img:
            img.load()
            source = img.copy()
    except (UnidentifiedImageError, OSError) as e:
        handle_cli_exception(click.BadParameter(f"Cannot read image {image}: {e}"))

    try:
        with open_panel(ctx.config, keep=ctx.keep) as panel:
            if contrast is not None:
                panel.set_contrast(contrast)
            panel.display_image(source, invert=invert)
            click.echo(f"Displayed {image.name} on {panel.width}x{panel.height} panel")
            hold_display(hold)
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


@main.command()
@click.argument("value", type=INT)
@click.option("--hold", type=float, default=0.0, help="Seconds to keep the pattern shown")
@pass_context
def fill(ctx: Context, value: int, hold: float) -> None:
    """Fill display RAM with byte VALUE (e.g. 0xFF for all pixels on)."""
    if not 0 <= value <= 0xFF:
        handle_cli_exception(click.BadParameter(f"VALUE must be 0-255, got {value}"))

    try:
        with open_panel(ctx.config, keep=ctx.keep) as panel:
            panel.fill(value)
            click.echo(f"Filled panel with {value:#04x}")
            hold_display(hold)
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


@main.command()
@pass_context
def restart(ctx: Context) -> None:
    """Clear the panel and re-run its initialization sequence."""
    try:
        with open_panel(ctx.config, keep=ctx.keep) as panel:
            panel.restart()
            click.echo("Panel restarted")
    except Exception as e:
        handle_cli_exception(e, ctx.verbose)


if __name__ == "__main__":
    main()
