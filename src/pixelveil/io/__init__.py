"""File I/O adapters."""

from pixelveil.io.image_io import load_image, save_image

__all__ = ["load_image", "save_image"]
