"""Shared test fixtures for tilewave."""

import random
import tempfile
from pathlib import Path

import pytest

from tilewave.core.pixels import PixelGrid, pack_color


RED = pack_color(255, 0, 0)
BLUE = pack_color(0, 0, 255)
GREEN = pack_color(0, 255, 0)
WHITE = pack_color(255, 255, 255)
BLACK = pack_color(0, 0, 0)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (skipped by default, run with --run-slow)")


def pytest_addoption(parser):
    """Add --run-slow option to pytest."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (skipped by default)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is passed."""
    if config.getoption("--run-slow"):
        return

    skip_slow = pytest.mark.skip(reason="Slow test (use --run-slow to run)")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def temp_data_dir() -> Path:
    """Create a temporary data directory for tests."""
    with tempfile.TemporaryDirectory(prefix="tilewave_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def rng() -> random.Random:
    """Seeded random generator."""
    return random.Random(12345)


@pytest.fixture
def checker_grid() -> PixelGrid:
    """2x2 checkerboard. With 2x2 tiles it only tiles even-sized outputs."""
    return PixelGrid.from_rows([
        [RED, BLUE],
        [BLUE, RED],
    ])


@pytest.fixture
def column_grid() -> PixelGrid:
    """Vertical stripes RED RED BLUE: no two blue columns side by side."""
    return PixelGrid.from_rows([
        [RED, RED, BLUE],
        [RED, RED, BLUE],
        [RED, RED, BLUE],
    ])


@pytest.fixture
def blob_grid() -> PixelGrid:
    """A small image with a few shapes on a background."""
    W, R, G, B = WHITE, RED, GREEN, BLUE
    return PixelGrid.from_rows([
        [W, W, W, W, W],
        [W, R, R, W, W],
        [W, R, G, W, W],
        [W, W, W, W, B],
        [W, W, W, W, W],
    ])
