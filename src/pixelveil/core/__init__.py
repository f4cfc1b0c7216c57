"""Core pixel processing: generator, buffer and filter passes."""

from pixelveil.core.buffer import InvalidInputError, PixelBuffer
from pixelveil.core.filters import FILTERS, apply_filter
from pixelveil.core.generator import DeterministicGenerator

__all__ = ["DeterministicGenerator", "FILTERS", "InvalidInputError", "PixelBuffer", "apply_filter"]
