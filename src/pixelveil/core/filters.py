"""
Pixel-level protection passes.

Each pass perturbs an RGBA buffer so the result still reads the same to a
person but no longer matches what a feature extractor learned. Noise passes
mutate the buffer in place; spatial passes read from a frozen source and
write into a separate destination.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np

from pixelveil.core.buffer import ALPHA, InvalidInputError, PixelBuffer
from pixelveil.core.generator import DeterministicGenerator

logger = logging.getLogger(__name__)

# Rec. 601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

ADVERSARIAL_CELL = 4
SINE_PERIOD = 20.0
MIN_BLOCK_SIZE = 2
MAX_BLOCK_SIZE = 6

MIN_STRENGTH = 0
MAX_STRENGTH = 50


def _clamp_u8(values: np.ndarray) -> np.ndarray:
    return np.clip(values, 0, 255).astype(np.uint8)


def validate_strength(strength) -> int:
    if isinstance(strength, bool) or not isinstance(strength, (int, np.integer)):
        raise InvalidInputError(f"Strength must be an integer, got {strength!r}")
    if not MIN_STRENGTH <= strength <= MAX_STRENGTH:
        raise InvalidInputError(
            f"Strength must be in [{MIN_STRENGTH}, {MAX_STRENGTH}], got {strength}"
        )
    return int(strength)


def _check_pair(source: PixelBuffer, dest: PixelBuffer):
    assert source is not dest, "spatial pass needs a distinct source snapshot"
    assert source.pixels.shape == dest.pixels.shape, (
        f"snapshot {source.pixels.shape} does not match destination {dest.pixels.shape}"
    )


def balanced_noise(
    buffer: PixelBuffer,
    strength: int,
    rng: DeterministicGenerator,
) -> PixelBuffer:
    """
    Luminance noise that roughly preserves hue.

    Every opaque pixel draws one value in [-strength, strength], shifts its
    luminance by it, and scales R, G and B by the resulting luminance ratio.

    Args:
        buffer: Buffer to mutate.
        strength: Maximum luminance offset.
        rng: Generator; one draw per opaque pixel in raster order.

    Returns:
        The same buffer.
    """
    mask = buffer.opaque_mask()
    count = int(mask.sum())
    if count == 0:
        return buffer

    noise = rng.ints(-strength, strength, count)

    rgb = buffer.pixels[mask, :3].astype(np.float64)
    lum = LUMA_WEIGHTS[0] * rgb[:, 0] + LUMA_WEIGHTS[1] * rgb[:, 1] + LUMA_WEIGHTS[2] * rgb[:, 2]
    new_lum = np.clip(lum + noise, 0, 255)

    dark = lum == 0
    ratio = np.where(dark, 1.0, new_lum / np.where(dark, 1.0, lum))

    buffer.pixels[mask, :3] = _clamp_u8(np.trunc(rgb * ratio[:, None]))
    return buffer


def edge_jitter(
    source: PixelBuffer,
    dest: PixelBuffer,
    strength: int,
) -> PixelBuffer:
    """
    Copy every fourth diagonal pixel one step to the right.

    Interior pixels with ``(x + y) % 4 == 0`` are read from ``source`` and
    written to ``dest`` at ``(x + 1, y)``. The shift is fixed; ``strength``
    is accepted for a uniform call signature and does not change the output.
    """
    _check_pair(source, dest)
    h, w = source.height, source.width
    if h < 3 or w < 3:
        return dest

    ys, xs = np.mgrid[1:h - 1, 1:w - 1]
    sel = (xs + ys) % 4 == 0
    ys, xs = ys[sel], xs[sel]

    dest.pixels[ys, xs + 1] = source.pixels[ys, xs]
    return dest


def texture_noise(
    buffer: PixelBuffer,
    strength: int,
    rng: DeterministicGenerator,
) -> PixelBuffer:
    """
    Grey grain on every third diagonal.

    Opaque pixels with ``(x + y) % 3 == 0`` get one draw in
    [-strength, strength] added to all three color channels.
    """
    h, w = buffer.height, buffer.width
    ys, xs = np.mgrid[0:h, 0:w]
    mask = ((xs + ys) % 3 == 0) & buffer.opaque_mask()
    count = int(mask.sum())
    if count == 0:
        return buffer

    noise = rng.ints(-strength, strength, count)
    rgb = buffer.pixels[mask, :3].astype(np.int64)
    buffer.pixels[mask, :3] = _clamp_u8(rgb + noise[:, None])
    return buffer


def color_shift(
    buffer: PixelBuffer,
    strength: int,
    rng: DeterministicGenerator,
) -> PixelBuffer:
    """
    Global per-channel cast plus small per-channel jitter.

    Three shifts in [-strength, strength] are drawn once. Each opaque pixel
    then adds its channel's shift and a fresh draw in
    [-strength/2, strength/2] to R, G and B, in that order.

    Args:
        buffer: Buffer to mutate.
        strength: Range of the global shift.
        rng: Generator; 3 draws up front, then 3 per opaque pixel.

    Returns:
        The same buffer.
    """
    shifts = rng.ints(-strength, strength, 3)

    mask = buffer.opaque_mask()
    count = int(mask.sum())
    if count == 0:
        return buffer

    half = strength // 2
    jitter = rng.ints(-half, half, count * 3).reshape(count, 3)

    rgb = buffer.pixels[mask, :3].astype(np.int64)
    buffer.pixels[mask, :3] = _clamp_u8(rgb + shifts + jitter)
    return buffer


def geometric_distortion(
    source: PixelBuffer,
    dest: PixelBuffer,
    strength: int,
    rng: DeterministicGenerator,
) -> PixelBuffer:
    """
    Sinusoidal warp.

    Rows are displaced horizontally by ``amp * sin(freq_x * y + phase_x)``
    and columns vertically by ``amp * cos(freq_y * x + phase_y)``. Every
    destination pixel is a straight copy (alpha included) of one source
    pixel, with coordinates clamped to the image.

    Args:
        source: Frozen snapshot to sample from.
        dest: Buffer to write.
        strength: Warp amplitude is ``strength * 0.5`` pixels.
        rng: Generator; draws freq_x, phase_x, freq_y, phase_y.

    Returns:
        The destination buffer.
    """
    _check_pair(source, dest)
    h, w = source.height, source.width

    amp_x = strength * 0.5
    freq_x = 0.05 + rng.next_float() * 0.1
    phase_x = rng.next_float() * 10

    amp_y = strength * 0.5
    freq_y = 0.05 + rng.next_float() * 0.1
    phase_y = rng.next_float() * 10

    y = np.arange(h)
    x = np.arange(w)
    off_x = np.floor(amp_x * np.sin(freq_x * y + phase_x)).astype(np.int64)
    off_y = np.floor(amp_y * np.cos(freq_y * x + phase_y)).astype(np.int64)

    sx = np.clip(x[None, :] + off_x[:, None], 0, w - 1)
    sy = np.clip(y[:, None] + off_y[None, :], 0, h - 1)

    dest.pixels[:] = source.pixels[sy, sx]
    return dest


def adversarial_noise(
    buffer: PixelBuffer,
    strength: int,
) -> PixelBuffer:
    """
    Grid/checker pattern masked by local contrast.

    Sweeps the image in raster order, skipping the first row and column.
    Each opaque pixel compares itself with its left and upper neighbours as
    they stand after earlier updates in the same sweep, so the pass is
    causal. Smooth areas get 0.2x strength, textured ones 1x, edges 2.5x.
    Grid lines every 4 pixels are darkened; alternating cells push red up
    and green down.

    The raster sweep is evaluated one anti-diagonal at a time: both
    neighbours of a pixel sit on the previous diagonal, so each diagonal
    is independent of itself.
    """
    h, w = buffer.height, buffer.width
    if h < 2 or w < 2:
        return buffer

    work = buffer.pixels.astype(np.int64)
    cell = ADVERSARIAL_CELL

    for d in range(2, (h - 1) + (w - 1) + 1):
        ys = np.arange(max(1, d - (w - 1)), min(h - 1, d - 1) + 1)
        xs = d - ys

        opaque = work[ys, xs, ALPHA] != 0
        if not opaque.any():
            continue
        ys, xs = ys[opaque], xs[opaque]

        cur = work[ys, xs, :3]
        diff_l = np.abs(cur - work[ys, xs - 1, :3]).sum(axis=1)
        diff_u = np.abs(cur - work[ys - 1, xs, :3]).sum(axis=1)
        variance = (diff_l + diff_u) // 2

        mult = np.where(variance > 40, 2.5, np.where(variance > 10, 1.0, 0.2))
        effective = np.trunc(strength * mult).astype(np.int64)

        on_grid = (xs % cell == 0) | (ys % cell == 0)
        on_check = ~on_grid & ((xs // cell + ys // cell) % 2 == 0)

        out = cur.copy()
        darken = np.trunc(-effective * 0.5).astype(np.int64)
        out[on_grid] += darken[on_grid, None]

        tilt = np.trunc(effective * 0.4).astype(np.int64)
        out[on_check, 0] += tilt[on_check]
        out[on_check, 1] -= tilt[on_check]

        work[ys, xs, :3] = np.clip(out, 0, 255)

    buffer.pixels[:] = work.astype(np.uint8)
    return buffer


def sine_interference(
    buffer: PixelBuffer,
    strength: int,
) -> PixelBuffer:
    """
    Diagonal brightness wave with a 20 pixel period.

    Adds ``trunc(sin(2*pi*(x + y) / 20) * strength * 0.8)`` to the color
    channels of every opaque pixel. No randomness.
    """
    h, w = buffer.height, buffer.width
    amplitude = strength * 0.8

    ys, xs = np.mgrid[0:h, 0:w]
    wave = np.trunc(np.sin((xs + ys) / SINE_PERIOD * 2 * np.pi) * amplitude).astype(np.int64)

    mask = buffer.opaque_mask()
    rgb = buffer.pixels[mask, :3].astype(np.int64)
    buffer.pixels[mask, :3] = _clamp_u8(rgb + wave[mask][:, None])
    return buffer


def block_size_for(strength: int) -> int:
    """Tile edge length used by ``block_local_scramble``."""
    return min(MAX_BLOCK_SIZE, max(MIN_BLOCK_SIZE, strength // 10 + 2))


def block_local_scramble(
    source: PixelBuffer,
    dest: PixelBuffer,
    strength: int,
    rng: DeterministicGenerator,
) -> PixelBuffer:
    """
    Shuffle pixels inside small square tiles.

    The image is cut into ``block_size_for(strength)`` tiles (edge tiles may
    be smaller). Tiles are visited in raster order and each one is
    Fisher-Yates shuffled with ``next_int(0, i)`` for i = count-1 .. 1.
    Pixels keep their alpha and never leave their tile.

    Args:
        source: Frozen snapshot to read tiles from.
        dest: Buffer receiving the shuffled tiles.
        strength: Controls tile size.
        rng: Generator; count-1 draws per tile.

    Returns:
        The destination buffer.
    """
    _check_pair(source, dest)
    h, w = source.height, source.width
    size = block_size_for(strength)

    tile_y, tile_x = np.meshgrid(np.arange(0, h, size), np.arange(0, w, size), indexing="ij")
    tile_y, tile_x = tile_y.ravel(), tile_x.ravel()
    tile_h = np.minimum(size, h - tile_y)
    tile_w = np.minimum(size, w - tile_x)

    draws = tile_h * tile_w - 1
    starts = np.concatenate(([0], np.cumsum(draws)[:-1]))
    u = rng.uniforms(int(draws.sum()))

    # Tiles of equal shape are shuffled together
    for th, tw in set(zip(tile_h.tolist(), tile_w.tolist())):
        group = np.flatnonzero((tile_h == th) & (tile_w == tw))
        count = th * tw
        dy, dx = np.divmod(np.arange(count), tw)
        ys = tile_y[group][:, None] + dy[None, :]
        xs = tile_x[group][:, None] + dx[None, :]

        rows = np.arange(len(group))
        perm = np.tile(np.arange(count), (len(group), 1))
        for step, i in enumerate(range(count - 1, 0, -1)):
            j = np.floor(u[starts[group] + step] * (i + 1)).astype(np.int64)
            held = perm[:, i].copy()
            perm[:, i] = perm[rows, j]
            perm[rows, j] = held

        tiles = source.pixels[ys, xs]
        dest.pixels[ys, xs] = tiles[rows[:, None], perm]

    return dest


@dataclass(frozen=True)
class FilterSpec:
    """How the pipeline has to call a pass."""

    name: str
    func: Callable
    spatial: bool = False
    randomized: bool = True


FILTERS: Dict[str, FilterSpec] = {
    spec.name: spec
    for spec in (
        FilterSpec("balanced_noise", balanced_noise),
        FilterSpec("edge_jitter", edge_jitter, spatial=True, randomized=False),
        FilterSpec("texture_noise", texture_noise),
        FilterSpec("color_shift", color_shift),
        FilterSpec("geometric_distortion", geometric_distortion, spatial=True),
        FilterSpec("adversarial_noise", adversarial_noise, randomized=False),
        FilterSpec("sine_interference", sine_interference, randomized=False),
        FilterSpec("block_local_scramble", block_local_scramble, spatial=True),
    )
}


def apply_filter(
    name: str,
    buffer: PixelBuffer,
    strength: int,
    rng: Optional[DeterministicGenerator] = None,
) -> PixelBuffer:
    """
    Run one pass by name against ``buffer``.

    Spatial passes get a snapshot of ``buffer`` as their source and write
    back into ``buffer``; the snapshot is dropped afterwards. Strength is
    checked against [0, 50] before anything is drawn or written.
    """
    spec = FILTERS[name]
    strength = validate_strength(strength)
    args = [strength]
    if spec.randomized:
        if rng is None:
            raise ValueError(f"Filter '{name}' needs a generator")
        args.append(rng)

    if spec.spatial:
        source = buffer.snapshot()
        spec.func(source, buffer, *args)
    else:
        spec.func(buffer, *args)

    logger.debug("applied %s (strength=%d)", name, strength)
    return buffer
