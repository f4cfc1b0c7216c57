"""
Image file adapters.

Decodes files into RGBA pixel buffers and encodes buffers back to disk.
Formats without an alpha channel are flattened onto the background color.
"""

from pathlib import Path
from typing import Tuple, Union

import numpy as np
from PIL import Image

from pixelveil.core.buffer import InvalidInputError, PixelBuffer

# Suffix -> (Pillow format, keeps alpha)
FORMATS = {
    ".png": ("PNG", True),
    ".webp": ("WEBP", True),
    ".tif": ("TIFF", True),
    ".tiff": ("TIFF", True),
    ".bmp": ("BMP", False),
    ".jpg": ("JPEG", False),
    ".jpeg": ("JPEG", False),
}


def from_pil(image: Image.Image) -> PixelBuffer:
    """Convert any Pillow image to an RGBA buffer."""
    return PixelBuffer(np.array(image.convert("RGBA"), dtype=np.uint8))


def to_pil(buffer: PixelBuffer) -> Image.Image:
    return Image.fromarray(buffer.pixels)


def load_image(path: Union[str, Path]) -> PixelBuffer:
    """
    Read an image file into a PixelBuffer.

    Args:
        path: Image file path.

    Returns:
        RGBA PixelBuffer.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")
    with Image.open(path) as img:
        img.load()
        return from_pil(img)


def save_image(
    buffer: PixelBuffer,
    path: Union[str, Path],
    quality: int = 95,
    background: Tuple[int, int, int] = (255, 255, 255),
) -> Path:
    """
    Write a buffer to disk, choosing the format from the file suffix.

    Args:
        buffer: Pixels to write.
        path: Output path (.png, .webp, .tif, .bmp, .jpg).
        quality: Encoder quality for lossy formats.
        background: Color used to flatten alpha for formats without it.

    Returns:
        Path to the written file.
    """
    path = Path(path)
    try:
        fmt, keeps_alpha = FORMATS[path.suffix.lower()]
    except KeyError:
        raise InvalidInputError(f"Unsupported output format: {path.suffix or path.name}") from None

    img = to_pil(buffer)
    if not keeps_alpha:
        flat = Image.new("RGB", img.size, background)
        flat.paste(img, mask=img.getchannel("A"))
        img = flat

    path.parent.mkdir(parents=True, exist_ok=True)
    if fmt in ("JPEG", "WEBP"):
        img.save(path, format=fmt, quality=quality)
    else:
        img.save(path, format=fmt)
    return path
