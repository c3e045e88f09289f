"""Shared fixtures for the test suite.

All fixtures here produce real images, real luminance buffers and real files
so tests exercise actual code paths rather than hand-crafted stubs.
"""

from pathlib import Path

import numpy as np
import pytest
from click.testing import CliRunner
from PIL import Image

from docscan.sampling import PlanarLuminanceView


def make_view(plane: np.ndarray) -> PlanarLuminanceView:
    """Tightly packed view over a 2-D ``uint8`` array."""
    plane = np.ascontiguousarray(plane, dtype=np.uint8)
    height, width = plane.shape
    return PlanarLuminanceView(plane.tobytes(), width, 1, width, height)


def document_plane(size: int = 800, start: int = 164, stop: int = 644) -> np.ndarray:
    """A bright square page on a black background."""
    plane = np.zeros((size, size), dtype=np.uint8)
    plane[start:stop, start:stop] = 255
    return plane


def checker(width: int, height: int, low: int, high: int) -> Image.Image:
    """One-pixel gray checkerboard; pixel (0, 0) holds *low*."""
    ys, xs = np.indices((height, width))
    plane = np.where((xs + ys) % 2 == 0, low, high).astype(np.uint8)
    return Image.fromarray(np.stack([plane, plane, plane], axis=-1))


# ── CLI runner ─────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


# ── Image fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def gray_image() -> Image.Image:
    """A flat mid-gray 64×48 RGB image."""
    return Image.new("RGB", (64, 48), color=(128, 128, 128))


@pytest.fixture
def sharp_image() -> Image.Image:
    """A 1000×600 high-frequency image that passes the quality gate cleanly."""
    return checker(1000, 600, 150, 250)


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    """A small, sharp PNG written to a temporary file on disk."""
    path = tmp_path / "page.png"
    checker(40, 30, 100, 200).save(path)
    return path


@pytest.fixture
def document_png(tmp_path: Path) -> Path:
    """A page-on-table photo substitute: white square on black, 800×800."""
    path = tmp_path / "document.png"
    plane = document_plane()
    Image.fromarray(np.stack([plane, plane, plane], axis=-1)).save(path)
    return path


# ── Frame fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def document_frame() -> PlanarLuminanceView:
    return make_view(document_plane())


@pytest.fixture
def uniform_frame() -> PlanarLuminanceView:
    return make_view(np.full((480, 640), 180, dtype=np.uint8))
