"""Image normalisation stage: geometric and photometric preparation for OCR."""

from .normalizer import (
    NormalizationOptions,
    NormalizationResult,
    NormalizationStep,
    normalize,
)
from .quality import quality_score
from .utils import InputError, RasterImage

__all__ = [
    "InputError",
    "NormalizationOptions",
    "NormalizationResult",
    "NormalizationStep",
    "RasterImage",
    "normalize",
    "quality_score",
]
