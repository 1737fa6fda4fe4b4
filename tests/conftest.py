"""Shared pytest configuration and fixtures for the img2pcm test suite."""

import sys
import threading
from pathlib import Path

import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from img2pcm.core.session import SessionConfig


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    config.addinivalue_line(
        "markers", "hardware: mark test as requiring a real audio output device"
    )


def pytest_addoption(parser):
    parser.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="Run tests that play through the sound card",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-hardware"):
        return

    skip_hardware = pytest.mark.skip(reason="Need --run-hardware option to run")
    for item in items:
        if "hardware" in item.keywords:
            item.add_marker(skip_hardware)


# =============================================================================
# Fakes
# =============================================================================

class RecordingSink:
    """PlaybackSink double that records every call instead of making sound."""

    def __init__(self, fail_open=False, fail_write_at=None, on_write=None):
        self.fail_open = fail_open
        self.fail_write_at = fail_write_at
        self.on_write = on_write
        self.calls = []
        self.data = bytearray()
        self.formats = []
        self._next_handle = 0

    def open(self, fmt):
        from img2pcm.utils.helpers import DeviceUnavailableError

        self.calls.append("open")
        if self.fail_open:
            raise DeviceUnavailableError("no device")
        self.formats.append(fmt)
        self._next_handle += 1
        return self._next_handle

    def write(self, handle, buffer, offset, length):
        from img2pcm.utils.helpers import DeviceUnavailableError

        self.calls.append("write")
        if self.fail_write_at is not None and len(self.data) >= self.fail_write_at:
            raise DeviceUnavailableError("device unplugged")
        self.data.extend(buffer[offset:offset + length])
        if self.on_write:
            self.on_write(self)
        return length

    def drain(self, handle):
        self.calls.append("drain")

    def close(self, handle):
        self.calls.append("close")

    @property
    def writes(self):
        return self.calls.count("write")


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def tiny_config() -> SessionConfig:
    """4 rows x 2 cols at 8 Hz: 2 samples per frame, 4 samples total."""
    return SessionConfig(
        num_rows=4,
        num_cols=2,
        min_frequency=1000.0,
        max_frequency=4000.0,
        sample_rate=8,
    )


@pytest.fixture
def small_config() -> SessionConfig:
    return SessionConfig(
        num_rows=8,
        num_cols=6,
        min_frequency=200.0,
        max_frequency=2000.0,
        sample_rate=8000,
        levels=16,
    )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def cancel_event() -> threading.Event:
    return threading.Event()


@pytest.fixture
def gradient_image() -> np.ndarray:
    """RGB image, bright on the left, dark on the right."""
    row = np.linspace(255, 0, 40).astype(np.uint8)
    gray = np.tile(row, (30, 1))
    return np.stack([gray, gray, gray], axis=-1)


@pytest.fixture
def make_sink():
    """Factory for sinks configured to fail or react to writes."""
    return RecordingSink
