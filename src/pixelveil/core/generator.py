"""
Seedable pseudo-random source for the protection filters.

A single integer register advanced by a fixed linear congruential
recurrence, so a given seed yields the same sequence on every platform.
"""

import numpy as np

MULTIPLIER = 9301
INCREMENT = 49297
MODULUS = 233280


class DeterministicGenerator:
    """
    Linear congruential generator: ``state = (state*9301 + 49297) % 233280``.

    One instance belongs to one pipeline invocation and is handed
    explicitly to every randomized filter.
    """

    def __init__(self, seed: int = 0):
        self._state = int(seed) % MODULUS

    @property
    def state(self) -> int:
        return self._state

    def _advance(self) -> float:
        self._state = (self._state * MULTIPLIER + INCREMENT) % MODULUS
        return self._state / MODULUS

    def next_float(self) -> float:
        """Return a value in [0, 1)."""
        return self._advance()

    def next_int(self, lo: int, hi: int) -> int:
        """Return an integer in [lo, hi] inclusive."""
        return int(np.floor(lo + self._advance() * (hi - lo + 1)))

    def uniforms(self, n: int) -> np.ndarray:
        """
        Draw ``n`` consecutive floats in [0, 1).

        Consumes exactly as many steps as ``n`` calls to ``next_float``.
        """
        out = np.empty(n, dtype=np.float64)
        state = self._state
        for i in range(n):
            state = (state * MULTIPLIER + INCREMENT) % MODULUS
            out[i] = state
        self._state = state
        return out / MODULUS

    def ints(self, lo: int, hi: int, n: int) -> np.ndarray:
        """Draw ``n`` consecutive integers in [lo, hi], same as ``next_int``."""
        u = self.uniforms(n)
        return np.floor(lo + u * (hi - lo + 1)).astype(np.int64)
