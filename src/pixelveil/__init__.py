"""Image protection against automated feature extraction."""

from pixelveil.core.buffer import InvalidInputError, PixelBuffer
from pixelveil.core.generator import DeterministicGenerator
from pixelveil.pipeline import ProtectConfig, ProtectionMode, ProtectionPipeline, protect, protect_bytes
from pixelveil.watermark import ViewMapping, apply_image_watermark, apply_text_watermark

__version__ = "0.1.0"
__all__ = [
    "DeterministicGenerator",
    "InvalidInputError",
    "PixelBuffer",
    "ProtectConfig",
    "ProtectionMode",
    "ProtectionPipeline",
    "ViewMapping",
    "apply_image_watermark",
    "apply_text_watermark",
    "protect",
    "protect_bytes",
]
