"""
Pixel-by-pixel reference of the protection pipeline.

Plain loops over a flat list of [r, g, b, a] pixels, written straight from
the filter definitions. Slow, but independent of the vectorized code it is
compared against.
"""

import math

MODE_TABLE = {
    0: [("balanced", 1, 2), ("color", 1, 4)],
    1: [("balanced", 1, 1), ("jitter", 1, 2), ("adversarial", 1, 3)],
    2: [("balanced", 1, 1), ("jitter", 1, 1), ("texture", 1, 2), ("color", 1, 2), ("geometric", 1, 5)],
    3: [("sine", 1, 2), ("geometric", 1, 2), ("adversarial", 4, 5), ("color", 4, 5), ("scramble", 1, 2)],
}


class Lcg:
    def __init__(self, seed):
        self.state = seed % 233280

    def next_float(self):
        self.state = (self.state * 9301 + 49297) % 233280
        return self.state / 233280

    def next_int(self, lo, hi):
        return math.floor(lo + self.next_float() * (hi - lo + 1))


def clamp(v):
    return max(0, min(255, v))


def balanced(px, w, h, s, rng):
    for p in px:
        if p[3] == 0:
            continue
        r, g, b = p[0], p[1], p[2]
        lum = 0.299 * r + 0.587 * g + 0.114 * b
        n = rng.next_int(-s, s)
        new = min(255.0, max(0.0, lum + n))
        ratio = 1.0 if lum == 0 else new / lum
        p[0], p[1], p[2] = clamp(int(r * ratio)), clamp(int(g * ratio)), clamp(int(b * ratio))


def jitter(px, w, h, s, rng):
    src = [list(p) for p in px]
    for y in range(1, h - 1):
        for x in range(1, w - 1):
            if (x + y) % 4 != 0:
                continue
            px[y * w + x + 1] = list(src[y * w + x])


def texture(px, w, h, s, rng):
    for y in range(h):
        for x in range(w):
            if (x + y) % 3 != 0:
                continue
            p = px[y * w + x]
            if p[3] == 0:
                continue
            n = rng.next_int(-s, s)
            for c in range(3):
                p[c] = clamp(p[c] + n)


def color(px, w, h, s, rng):
    shifts = [rng.next_int(-s, s) for _ in range(3)]
    half = s // 2
    for p in px:
        if p[3] == 0:
            continue
        for c in range(3):
            p[c] = clamp(p[c] + shifts[c] + rng.next_int(-half, half))


def geometric(px, w, h, s, rng):
    src = [list(p) for p in px]
    amp = s * 0.5
    freq_x = 0.05 + rng.next_float() * 0.1
    phase_x = rng.next_float() * 10
    freq_y = 0.05 + rng.next_float() * 0.1
    phase_y = rng.next_float() * 10
    for y in range(h):
        for x in range(w):
            off_x = amp * math.sin(freq_x * y + phase_x)
            off_y = amp * math.cos(freq_y * x + phase_y)
            sx = min(w - 1, max(0, x + math.floor(off_x)))
            sy = min(h - 1, max(0, y + math.floor(off_y)))
            px[y * w + x] = list(src[sy * w + sx])


def adversarial(px, w, h, s, rng):
    for y in range(1, h):
        for x in range(1, w):
            p = px[y * w + x]
            if p[3] == 0:
                continue
            left = px[y * w + x - 1]
            up = px[(y - 1) * w + x]
            diff_l = sum(abs(p[c] - left[c]) for c in range(3))
            diff_u = sum(abs(p[c] - up[c]) for c in range(3))
            variance = (diff_l + diff_u) // 2
            mult = 0.2
            if variance > 10:
                mult = 1.0
            if variance > 40:
                mult = 2.5
            eff = int(s * mult)
            if x % 4 == 0 or y % 4 == 0:
                f = int(-eff * 0.5)
                for c in range(3):
                    p[c] = clamp(p[c] + f)
            elif (x // 4 + y // 4) % 2 == 0:
                f = int(eff * 0.4)
                p[0] = clamp(p[0] + f)
                p[1] = clamp(p[1] - f)


def sine(px, w, h, s, rng):
    amp = s * 0.8
    for y in range(h):
        for x in range(w):
            p = px[y * w + x]
            if p[3] == 0:
                continue
            wave = int(math.sin((x + y) / 20.0 * 2 * math.pi) * amp)
            for c in range(3):
                p[c] = clamp(p[c] + wave)


def scramble(px, w, h, s, rng):
    size = min(6, max(2, s // 10 + 2))
    for by in range(0, h, size):
        for bx in range(0, w, size):
            coords = [
                (y, x)
                for y in range(by, min(by + size, h))
                for x in range(bx, min(bx + size, w))
            ]
            block = [px[y * w + x] for y, x in coords]
            for i in range(len(block) - 1, 0, -1):
                j = rng.next_int(0, i)
                block[i], block[j] = block[j], block[i]
            for (y, x), p in zip(coords, block):
                px[y * w + x] = p


PASSES = {
    "balanced": balanced,
    "jitter": jitter,
    "texture": texture,
    "color": color,
    "geometric": geometric,
    "adversarial": adversarial,
    "sine": sine,
    "scramble": scramble,
}


def reference_protect(data, width, height, mode, strength, seed):
    """
    Run a mode over flat RGBA values.

    Args:
        data: Flat sequence of width*height*4 ints.
        mode: Integer mode 0-3.

    Returns:
        List of output ints, same layout.
    """
    px = [list(data[i:i + 4]) for i in range(0, len(data), 4)]
    rng = Lcg(seed)
    for name, num, den in MODE_TABLE[mode]:
        PASSES[name](px, width, height, strength * num // den, rng)
    return [v for p in px for v in p]
