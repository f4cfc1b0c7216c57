"""
Protection pipeline.

Maps a protection mode to its ordered list of filter passes and runs them
against a pixel buffer with a single seeded generator.
"""

import enum
import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from pixelveil.core.buffer import InvalidInputError, PixelBuffer
from pixelveil.core.filters import apply_filter, validate_strength
from pixelveil.core.generator import DeterministicGenerator

logger = logging.getLogger(__name__)

DEFAULT_STRENGTH = 25

# Upper bound (exclusive) for seeds picked when the caller gives none
RANDOM_SEED_RANGE = 10000


class ProtectionMode(enum.IntEnum):
    SOFT = 0
    BALANCED = 1
    STRONG = 2
    AIPOISON = 3

    @classmethod
    def parse(cls, value: Union["ProtectionMode", int, str]) -> "ProtectionMode":
        """Accept a mode, its integer value, or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "").replace("_", "")
            if key.isdigit():
                return cls.parse(int(key))
            try:
                return cls[key]
            except KeyError:
                raise InvalidInputError(f"Unknown protection mode: {value!r}") from None
        try:
            return cls(value)
        except ValueError:
            raise InvalidInputError(f"Unknown protection mode: {value!r}") from None


@dataclass(frozen=True)
class FilterStep:
    """One pass in a mode: which filter, and how much of the strength it gets."""

    filter: str
    scale: Fraction = Fraction(1)

    def strength_for(self, strength: int) -> int:
        return int(strength * self.scale)


MODE_STEPS: Dict[ProtectionMode, Tuple[FilterStep, ...]] = {
    ProtectionMode.SOFT: (
        FilterStep("balanced_noise", Fraction(1, 2)),
        FilterStep("color_shift", Fraction(1, 4)),
    ),
    ProtectionMode.BALANCED: (
        FilterStep("balanced_noise"),
        FilterStep("edge_jitter", Fraction(1, 2)),
        FilterStep("adversarial_noise", Fraction(1, 3)),
    ),
    ProtectionMode.STRONG: (
        FilterStep("balanced_noise"),
        FilterStep("edge_jitter"),
        FilterStep("texture_noise", Fraction(1, 2)),
        FilterStep("color_shift", Fraction(1, 2)),
        FilterStep("geometric_distortion", Fraction(1, 5)),
    ),
    ProtectionMode.AIPOISON: (
        FilterStep("sine_interference", Fraction(1, 2)),
        FilterStep("geometric_distortion", Fraction(1, 2)),
        FilterStep("adversarial_noise", Fraction(4, 5)),
        FilterStep("color_shift", Fraction(4, 5)),
        FilterStep("block_local_scramble", Fraction(1, 2)),
    ),
}


def random_seed() -> int:
    """Pick a fresh seed for callers that did not supply one."""
    return int(np.random.default_rng().integers(0, RANDOM_SEED_RANGE))


@dataclass
class ProtectConfig:
    """Parameters of one protect invocation."""

    mode: Union[ProtectionMode, int, str] = ProtectionMode.BALANCED
    strength: int = DEFAULT_STRENGTH
    seed: Optional[int] = None

    def validate(self) -> "ProtectConfig":
        """Normalize fields in place, raising InvalidInputError on bad values."""
        self.mode = ProtectionMode.parse(self.mode)
        self.strength = validate_strength(self.strength)
        if self.seed is not None:
            if isinstance(self.seed, bool) or not isinstance(self.seed, (int, np.integer)):
                raise InvalidInputError(f"Seed must be an integer, got {self.seed!r}")
            self.seed = int(self.seed)
        return self

    def resolve_seed(self) -> int:
        """Return the seed, choosing and storing a random one if unset."""
        if self.seed is None:
            self.seed = random_seed()
        return self.seed


class ProtectionPipeline:
    """
    Runs the filter steps of one protection mode.

    The step list comes from ``MODE_STEPS``; each step's strength is the
    base strength scaled by the step's coefficient and truncated.
    """

    def __init__(
        self,
        mode: Union[ProtectionMode, int, str] = ProtectionMode.BALANCED,
        strength: int = DEFAULT_STRENGTH,
    ):
        """
        Initialize the pipeline.

        Args:
            mode: Protection mode (enum, integer 0-3, or name).
            strength: Base strength in [0, 50].
        """
        self.mode = ProtectionMode.parse(mode)
        self.strength = validate_strength(strength)

    @property
    def steps(self) -> Tuple[FilterStep, ...]:
        return MODE_STEPS[self.mode]

    def plan(self) -> List[Tuple[str, int]]:
        """(filter name, scaled strength) for each step, in execution order."""
        return [(step.filter, step.strength_for(self.strength)) for step in self.steps]

    def run(
        self,
        buffer: PixelBuffer,
        seed: int,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> PixelBuffer:
        """
        Apply every step to ``buffer`` in place.

        Args:
            buffer: Buffer to protect; mutated.
            seed: Generator seed. Same buffer, mode, strength and seed give
                byte-identical output.
            progress_callback: Optional callback(steps_done, total_steps).

        Returns:
            The same buffer.
        """
        rng = DeterministicGenerator(seed)
        plan = self.plan()
        total = len(plan)

        logger.info(
            "protecting %dx%d buffer: mode=%s strength=%d seed=%d",
            buffer.width, buffer.height, self.mode.name, self.strength, seed,
        )

        for index, (name, strength) in enumerate(plan, start=1):
            apply_filter(name, buffer, strength, rng)
            if progress_callback:
                progress_callback(index, total)

        return buffer


def protect(
    buffer: PixelBuffer,
    mode: Union[ProtectionMode, int, str] = ProtectionMode.BALANCED,
    strength: int = DEFAULT_STRENGTH,
    seed: int = 0,
    in_place: bool = False,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> PixelBuffer:
    """
    Protect an image buffer.

    All arguments are validated before any pass runs. Unless ``in_place``
    is set the input buffer is left untouched and a new one is returned.
    """
    if not isinstance(buffer, PixelBuffer):
        raise InvalidInputError(f"Expected a PixelBuffer, got {type(buffer).__name__}")
    config = ProtectConfig(mode=mode, strength=strength, seed=seed).validate()
    if config.seed is None:
        raise InvalidInputError("A seed is required")

    target = buffer if in_place else buffer.snapshot()
    pipeline = ProtectionPipeline(config.mode, config.strength)
    return pipeline.run(target, config.seed, progress_callback=progress_callback)


def protect_bytes(
    data,
    width: int,
    height: int,
    mode: Union[ProtectionMode, int, str] = ProtectionMode.BALANCED,
    strength: int = DEFAULT_STRENGTH,
    seed: int = 0,
) -> bytes:
    """Flat RGBA bytes in, flat RGBA bytes of the same size out."""
    buffer = PixelBuffer.from_bytes(data, width, height)
    return protect(buffer, mode, strength, seed, in_place=True).to_bytes()

