"""
Shared Test Configuration
=========================

Fixtures for the oledlink test suite:
- RecordingTransport: an in-memory Transport that logs every call
- Mock pyusb devices and pyserial ports
- The ``hardware`` marker, skipped unless --hardware is given
"""

from unittest.mock import MagicMock

import pytest

from oledlink.comms.base import ControlByte, DeviceLease, Transport


def pytest_addoption(parser):
    parser.addoption(
        "--hardware",
        action="store_true",
        default=False,
        help="Run tests that need a real panel and bridge",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--hardware"):
        return
    skip_hardware = pytest.mark.skip(reason="needs --hardware")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


class RecordingTransport(Transport):
    """
    Transport that records (control byte, payload) pairs.

    The underlying "device" is a DeviceLease whose release callback counts
    how many times the device was actually freed.

    Attributes:
        calls: List of (ControlByte, bytes) in send order.
        device_releases: Number of times the device was freed.
        fail_after: Raise ``failure`` once this many sends have succeeded.
    """

    def __init__(self, fail_after=None, failure=None):
        super().__init__()
        self.calls = []
        self.device_releases = 0
        self.fail_after = fail_after
        self.failure = failure
        self._lease = DeviceLease("fake", object(), self._free)

    def _free(self, handle):
        self.device_releases += 1

    def _record(self, control, data):
        self._lease.handle  # raises once released
        if self.fail_after is not None and len(self.calls) >= self.fail_after:
            raise self.failure
        self.calls.append((control, bytes(data)))

    def send_command(self, data):
        self._record(ControlByte.COMMAND, data)

    def send_data(self, data):
        self._record(ControlByte.DATA, data)

    def _release(self):
        self._lease.release()

    @property
    def commands(self):
        return [data for control, data in self.calls if control == ControlByte.COMMAND]

    @property
    def data(self):
        return [data for control, data in self.calls if control == ControlByte.DATA]


@pytest.fixture
def transport():
    """A fresh RecordingTransport."""
    return RecordingTransport()


@pytest.fixture
def usb_device():
    """A mock pyusb device for the first allow-listed bridge."""
    device = MagicMock()
    device.idVendor = 0x1C40
    device.idProduct = 0x0534
    device.bus = 1
    device.address = 7
    return device


@pytest.fixture
def serial_port():
    """A mock, open pyserial port."""
    port = MagicMock()
    port.port = "/dev/ttyUSB0"
    port.is_open = True
    return port


@pytest.fixture
def make_transport():
    """Factory for RecordingTransports with injected failures."""
    return RecordingTransport
