"""
Watermark compositing.

Alpha-blends an image or a tiled ring of text onto a protected buffer.
Positions and sizes are in image pixel space; ``ViewMapping`` converts
from a fitted on-screen preview when the caller works in view space.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from pixelveil.core.buffer import InvalidInputError, PixelBuffer

TEXT_TILE_SIZE = 300
TEXT_REPEAT_PER_CIRCLE = 16
TEXT_RING_RADIUS = 0.35  # fraction of the tile size
MIN_FONT_SIZE = 12


@dataclass
class WatermarkConfig:
    """Placement of an image watermark."""

    opacity: float = 0.5
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    width: Optional[int] = None
    height: Optional[int] = None

    def validate(self) -> "WatermarkConfig":
        if not 0.0 <= self.opacity <= 1.0:
            raise InvalidInputError(f"Opacity must be in [0, 1], got {self.opacity}")
        if self.scale <= 0:
            raise InvalidInputError(f"Scale must be positive, got {self.scale}")
        for name in ("width", "height"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise InvalidInputError(f"Watermark {name} must be positive, got {value}")
        return self

    def target_size(self, mark_width: int, mark_height: int) -> Tuple[int, int]:
        """Final watermark size in image pixels."""
        w = self.width if self.width is not None else mark_width * self.scale
        h = self.height if self.height is not None else mark_height * self.scale
        return max(1, int(round(w))), max(1, int(round(h)))


@dataclass(frozen=True)
class ViewMapping:
    """
    Uniform-stretch fit of an image centered inside a view.

    ``scale`` is view pixels per image pixel; ``offset_x``/``offset_y`` is
    where the image's top-left corner lands in the view.
    """

    scale: float
    offset_x: float = 0.0
    offset_y: float = 0.0

    @classmethod
    def fit(cls, view_width: float, view_height: float, image_width: int, image_height: int) -> "ViewMapping":
        if min(view_width, view_height, image_width, image_height) <= 0:
            raise InvalidInputError("View and image dimensions must be positive")
        scale = min(view_width / image_width, view_height / image_height)
        offset_x = (view_width - image_width * scale) / 2
        offset_y = (view_height - image_height * scale) / 2
        return cls(scale, offset_x, offset_y)

    def to_image(self, x: float, y: float) -> Tuple[float, float]:
        return (x - self.offset_x) / self.scale, (y - self.offset_y) / self.scale

    def to_view(self, x: float, y: float) -> Tuple[float, float]:
        return x * self.scale + self.offset_x, y * self.scale + self.offset_y


def _blend_over(
    dst: np.ndarray,
    src_rgb: np.ndarray,
    src_alpha: np.ndarray,
) -> np.ndarray:
    """
    Non-premultiplied source-over.

    Args:
        dst: (H, W, 4) uint8 background.
        src_rgb: (H, W, 3) float color of the layer on top, 0-255.
        src_alpha: (H, W) float coverage of the layer, 0-1.

    Returns:
        (H, W, 4) uint8 composite.
    """
    d = dst.astype(np.float64)
    da = d[..., 3] / 255.0
    sa = src_alpha

    out_a = sa + da * (1.0 - sa)
    safe = np.where(out_a > 0, out_a, 1.0)
    rgb = (src_rgb * sa[..., None] + d[..., :3] * (da * (1.0 - sa))[..., None]) / safe[..., None]
    rgb = np.where(out_a[..., None] > 0, rgb, d[..., :3])

    out = np.empty_like(dst)
    out[..., :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    out[..., 3] = np.clip(np.rint(out_a * 255.0), 0, 255).astype(np.uint8)
    return out


def resize_buffer(buffer: PixelBuffer, width: int, height: int) -> PixelBuffer:
    """Resample a buffer to (width, height) with Lanczos filtering."""
    if (width, height) == (buffer.width, buffer.height):
        return buffer.snapshot()
    img = Image.fromarray(buffer.pixels)
    img = img.resize((width, height), Image.LANCZOS)
    return PixelBuffer(np.array(img, dtype=np.uint8))


def apply_image_watermark(
    base: PixelBuffer,
    mark: PixelBuffer,
    opacity: float = 0.5,
    x: float = 0.0,
    y: float = 0.0,
    scale: float = 1.0,
    size: Optional[Tuple[int, int]] = None,
) -> PixelBuffer:
    """
    Blend ``mark`` onto a copy of ``base``.

    The watermark's own alpha is multiplied by ``opacity``. Parts of the
    watermark falling outside the base are dropped.

    Args:
        base: Protected image.
        mark: Watermark image.
        opacity: Overall watermark opacity (0-1).
        x, y: Top-left corner in image pixels (may be negative).
        scale: Resize factor applied to the watermark.
        size: Explicit (width, height), overriding ``scale``.

    Returns:
        New buffer with base's dimensions.
    """
    cfg = WatermarkConfig(
        opacity=opacity,
        x=x,
        y=y,
        scale=scale,
        width=size[0] if size else None,
        height=size[1] if size else None,
    ).validate()

    result = base.snapshot()
    if cfg.opacity == 0:
        return result

    mark_w, mark_h = cfg.target_size(mark.width, mark.height)
    layer = resize_buffer(mark, mark_w, mark_h).pixels

    left, top = int(math.floor(cfg.x)), int(math.floor(cfg.y))
    x0, y0 = max(left, 0), max(top, 0)
    x1, y1 = min(left + mark_w, base.width), min(top + mark_h, base.height)
    if x0 >= x1 or y0 >= y1:
        return result

    src = layer[y0 - top:y1 - top, x0 - left:x1 - left].astype(np.float64)
    src_alpha = src[..., 3] / 255.0 * cfg.opacity

    region = result.pixels[y0:y1, x0:x1]
    result.pixels[y0:y1, x0:x1] = _blend_over(region, src[..., :3], src_alpha)
    return result


def _text_stamp(text: str, font) -> Image.Image:
    """Coverage mask ("L") of the text with a one pixel margin."""
    probe = ImageDraw.Draw(Image.new("L", (1, 1)))
    left, top, right, bottom = probe.textbbox((0, 0), text, font=font)
    stamp = Image.new("L", (right - left + 2, bottom - top + 2), 0)
    ImageDraw.Draw(stamp).text((1 - left, 1 - top), text, fill=255, font=font)
    return stamp


def apply_text_watermark(
    base: PixelBuffer,
    text: str,
    opacity: float = 0.5,
    tile_size: int = TEXT_TILE_SIZE,
    repeat_per_circle: int = TEXT_REPEAT_PER_CIRCLE,
) -> PixelBuffer:
    """
    Stamp rings of white text across a copy of ``base``.

    Ring centers sit on a ``tile_size`` grid covering the image plus one
    tile; even tile rows are shifted right by half a tile. Each ring holds
    ``repeat_per_circle`` copies of the text, rotated to face outwards at
    ``0.35 * tile_size`` from the center.
    """
    if not 0.0 <= opacity <= 1.0:
        raise InvalidInputError(f"Opacity must be in [0, 1], got {opacity}")
    if tile_size <= 0 or repeat_per_circle <= 0:
        raise InvalidInputError("Tile size and repeat count must be positive")

    result = base.snapshot()
    if not text or opacity == 0:
        return result

    w, h = base.width, base.height
    font = ImageFont.load_default(size=max(MIN_FONT_SIZE, int(w / 40)))
    stamp = _text_stamp(text, font)
    radius = tile_size * TEXT_RING_RADIUS

    rotated = []
    for i in range(repeat_per_circle):
        angle = 360.0 / repeat_per_circle * i
        theta = math.radians(angle)
        # PIL rotates counter-clockwise; the ring turns clockwise in y-down space
        glyphs = stamp.rotate(-angle, resample=Image.BICUBIC, expand=True)
        rotated.append((radius * math.sin(theta), -radius * math.cos(theta), glyphs))

    coverage = Image.new("L", (w, h), 0)
    for ty in range(0, h + tile_size, tile_size):
        for tx in range(0, w + tile_size, tile_size):
            cx = tx + (tile_size / 2 if (ty // tile_size) % 2 == 0 else 0)
            cy = ty
            for dx, dy, glyphs in rotated:
                px = int(round(cx + dx - glyphs.width / 2))
                py = int(round(cy + dy - glyphs.height / 2))
                coverage.paste(255, (px, py, px + glyphs.width, py + glyphs.height), glyphs)

    alpha = np.asarray(coverage, dtype=np.float64) / 255.0 * opacity
    white = np.full((h, w, 3), 255.0)
    result.pixels[:] = _blend_over(result.pixels, white, alpha)
    return result
