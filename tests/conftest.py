"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from pixelveil.core.buffer import PixelBuffer
from pixelveil.core.generator import DeterministicGenerator


@pytest.fixture
def rng() -> DeterministicGenerator:
    """Generator seeded with 1."""
    return DeterministicGenerator(1)


@pytest.fixture
def photo_pixels() -> np.ndarray:
    """
    A 24x32 fully opaque image with random colors.

    Returns:
        (H, W, 4) uint8 array.
    """
    gen = np.random.default_rng(42)
    pixels = gen.integers(0, 256, (24, 32, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    return pixels


@pytest.fixture
def photo(photo_pixels) -> PixelBuffer:
    return PixelBuffer(photo_pixels.copy())


@pytest.fixture
def holed_photo(photo_pixels) -> PixelBuffer:
    """
    Same image with a transparent 6x6 hole and a few stray transparent pixels.
    """
    pixels = photo_pixels.copy()
    pixels[8:14, 10:16, 3] = 0
    pixels[0, 0, 3] = 0
    pixels[23, 31, 3] = 0
    pixels[5, 20, 3] = 0
    return PixelBuffer(pixels)


@pytest.fixture
def gradient() -> PixelBuffer:
    """A smooth 16x16 opaque gradient."""
    y, x = np.mgrid[0:16, 0:16]
    pixels = np.zeros((16, 16, 4), dtype=np.uint8)
    pixels[:, :, 0] = x * 12
    pixels[:, :, 1] = y * 12
    pixels[:, :, 2] = 128
    pixels[:, :, 3] = 255
    return PixelBuffer(pixels)
