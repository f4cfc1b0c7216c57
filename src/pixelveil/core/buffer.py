"""
RGBA pixel buffer shared by every protection pass.
"""

from dataclasses import dataclass

import numpy as np

CHANNELS = 4
ALPHA = 3


class InvalidInputError(ValueError):
    """Raised when a buffer or parameter is rejected before processing."""


@dataclass
class PixelBuffer:
    """
    A width x height grid of RGBA samples.

    ``pixels`` is a (height, width, 4) uint8 array, mutated in place by
    the filter passes. Dimensions never change once constructed.
    """

    pixels: np.ndarray

    def __post_init__(self):
        pixels = self.pixels
        if not isinstance(pixels, np.ndarray):
            raise InvalidInputError(f"Pixel data must be a numpy array, got {type(pixels).__name__}")
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise InvalidInputError(f"Expected (height, width, 4) pixel data, got shape {pixels.shape}")
        if pixels.shape[0] <= 0 or pixels.shape[1] <= 0:
            raise InvalidInputError(f"Buffer dimensions must be positive, got {pixels.shape[1]}x{pixels.shape[0]}")
        if pixels.dtype != np.uint8:
            raise InvalidInputError(f"Pixel data must be uint8, got {pixels.dtype}")
        self.pixels = np.ascontiguousarray(pixels)

    @classmethod
    def from_bytes(cls, data, width: int, height: int) -> "PixelBuffer":
        """
        Build a buffer from a flat RGBA byte sequence.

        Args:
            data: bytes-like or integer sequence of length width*height*4.
            width: Image width in pixels.
            height: Image height in pixels.

        Returns:
            PixelBuffer owning a copy of the data.
        """
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"Buffer dimensions must be positive, got {width}x{height}")

        if isinstance(data, (bytes, bytearray, memoryview)):
            flat = np.frombuffer(bytes(data), dtype=np.uint8)
        else:
            flat = np.asarray(data)
            if flat.size and (flat.min() < 0 or flat.max() > 255):
                raise InvalidInputError("Channel values must lie in [0, 255]")
            flat = flat.astype(np.uint8)

        expected = width * height * CHANNELS
        if flat.size != expected:
            raise InvalidInputError(
                f"Buffer length {flat.size} does not match {width}x{height}x{CHANNELS} = {expected}"
            )
        return cls(flat.reshape(height, width, CHANNELS).copy())

    @classmethod
    def blank(cls, width: int, height: int, color=(0, 0, 0, 0)) -> "PixelBuffer":
        """Create a buffer filled with a single RGBA color."""
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"Buffer dimensions must be positive, got {width}x{height}")
        return cls(np.full((height, width, CHANNELS), color, dtype=np.uint8))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, ALPHA]

    def opaque_mask(self) -> np.ndarray:
        """Boolean (H, W) mask of pixels with nonzero alpha."""
        return self.pixels[:, :, ALPHA] != 0

    def snapshot(self) -> "PixelBuffer":
        """Independent copy used as the read source of a spatial pass."""
        return PixelBuffer(self.pixels.copy())

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()

    def __eq__(self, other):
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)
