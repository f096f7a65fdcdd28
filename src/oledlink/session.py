"""
Scoped Panel Sessions
=====================

Helpers that open the configured transport and panel and guarantee the
device is released on every exit path: normal return, exceptions raised
by the caller, and a Panel whose construction fails.

Usage:
    config = PanelConfig.from_env()
    with open_panel(config) as panel:
        panel.display_image(Image.open("status.png"))
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from oledlink.comms.base import Transport
from oledlink.comms.i2c import I2CTransport
from oledlink.comms.uart import UartTransport
from oledlink.config import PanelConfig
from oledlink.display.panel import Panel

# Configure module logger
logger = logging.getLogger(__name__)


def open_transport(config: PanelConfig) -> Transport:
    """Open the transport selected by ``config.transport``."""
    if config.transport == "uart":
        return UartTransport.connect(config.port, config.baud_rate, config.address)

    return I2CTransport.open(
        address=config.address,
        strict=config.strict,
        chunk_size=config.chunk_size,
    )


@contextmanager
def open_panel(config: PanelConfig, keep: bool = False) -> Iterator[Panel]:
    """
    Open a transport, initialise a Panel on it and yield the panel.

    Args:
        config: Connection and geometry settings.
        keep: On exit, leave the last image on the glass instead of
              hiding and clearing it.
    """
    transport = open_transport(config)
    try:
        panel = Panel(
            transport,
            width=config.width,
            height=config.height,
            orientation=config.orientation,
        )
    except BaseException:
        transport.release()
        raise

    logger.debug("Session opened: %r", panel)
    try:
        yield panel
    finally:
        if keep:
            panel.detach()
        else:
            panel.close()
