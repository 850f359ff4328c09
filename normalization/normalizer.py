"""
normalization.normalizer — Run the configured pixel operations in order.

Each enabled step is executed independently; a step that raises is
logged and recorded as not applied (confidence 0) and its input flows
unchanged into the next step.  The normaliser therefore never aborts
because of a single failing operation.

Step order: resolution scaling, orientation, grayscale, noise
reduction, contrast, sharpening, binarization.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np

from . import steps as ops
from .orientation import correct_orientation
from .quality import quality_score
from .utils import InputError, RasterImage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration / results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NormalizationOptions:
    perspective_correction: bool = True
    grayscale: bool = True
    noise_reduction: bool = True
    contrast_enhancement: bool = True
    sharpening: bool = True
    binarization: bool = False
    resolution_scaling: bool = False
    scale_factor: float = 2.0
    contrast_factor: float = 1.5
    contrast_method: str = "linear"
    orientation_timeout_s: float = 2.0

    @classmethod
    def disabled(cls) -> "NormalizationOptions":
        return cls(
            perspective_correction=False,
            grayscale=False,
            noise_reduction=False,
            contrast_enhancement=False,
            sharpening=False,
            binarization=False,
            resolution_scaling=False,
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "NormalizationOptions":
        """Build options from a config mapping, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("Ignoring unknown normalization options: %s", sorted(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class NormalizationStep:
    name: str
    applied: bool
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "applied": self.applied, "confidence": self.confidence}


@dataclass
class NormalizationResult:
    original_image: RasterImage
    processed_image: RasterImage
    steps: List[NormalizationStep] = field(default_factory=list)
    elapsed_ms: float = 0.0
    quality_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Summary without pixel data."""
        return {
            "original_size": [self.original_image.width, self.original_image.height],
            "processed_size": [self.processed_image.width, self.processed_image.height],
            "steps": [s.to_dict() for s in self.steps],
            "elapsed_ms": round(self.elapsed_ms, 2),
            "quality_score": self.quality_score,
        }


# ---------------------------------------------------------------------------
# Step runner
# ---------------------------------------------------------------------------

def _run_step(
    name: str,
    fn: Callable[[np.ndarray], Tuple[np.ndarray, float]],
    arr: np.ndarray,
) -> Tuple[np.ndarray, NormalizationStep]:
    try:
        out, confidence = fn(arr)
    except Exception as exc:
        logger.warning("Normalization step %r failed: %s: %s", name, type(exc).__name__, exc)
        return arr, NormalizationStep(name, False, 0.0)
    return out, NormalizationStep(name, True, confidence)


def _orientation_step(timeout_s: float) -> Callable[[np.ndarray], Tuple[np.ndarray, float]]:
    def run(arr: np.ndarray) -> Tuple[np.ndarray, float]:
        outcome = correct_orientation(arr, timeout_s=timeout_s)
        if outcome.rotation:
            logger.debug("Rotated image by %d deg", outcome.rotation)
        return outcome.image, 0.8 if outcome.deskewed else 0.6

    return run


def _plan(options: NormalizationOptions) -> List[Tuple[str, Callable[[np.ndarray], Tuple[np.ndarray, float]]]]:
    plan = []
    if options.resolution_scaling:
        plan.append((
            "Resolution Enhancement",
            lambda a: (ops.scale_resolution(a, options.scale_factor), 0.8),
        ))
    if options.perspective_correction:
        plan.append(("Perspective Correction", _orientation_step(options.orientation_timeout_s)))
    if options.grayscale:
        plan.append(("Grayscale Conversion", lambda a: (ops.to_grayscale(a), 0.9)))
    if options.noise_reduction:
        plan.append(("Noise Reduction", lambda a: (ops.reduce_noise(a), 0.7)))
    if options.contrast_enhancement:
        plan.append((
            "Contrast Enhancement",
            lambda a: (ops.enhance_contrast(a, options.contrast_factor, options.contrast_method), 0.8),
        ))
    if options.sharpening:
        plan.append(("Sharpening", lambda a: (ops.sharpen(a), 0.8)))
    if options.binarization:
        plan.append(("Binarization", lambda a: (ops.binarize(a), 0.9)))
    return plan


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize(
    image: RasterImage,
    options: Optional[NormalizationOptions] = None,
) -> NormalizationResult:
    """Prepare *image* for text recognition.

    Parameters
    ----------
    image : RasterImage
        Caller-owned image.  It is read but never modified.
    options : NormalizationOptions, optional
        Which steps to run; defaults to ``NormalizationOptions()``.

    Returns
    -------
    NormalizationResult
        Processed copy, per-step outcomes, elapsed time and a quality
        score computed on the processed image.

    Raises
    ------
    InputError
        If *image* is not a valid :class:`RasterImage`.
    """
    if not isinstance(image, RasterImage):
        raise InputError(f"expected RasterImage, got {type(image).__name__}")
    options = options or NormalizationOptions()

    t0 = time.perf_counter()
    arr = image.pixels.copy()
    applied: List[NormalizationStep] = []
    for name, fn in _plan(options):
        arr, step = _run_step(name, fn, arr)
        applied.append(step)

    processed = RasterImage(np.ascontiguousarray(arr))
    score = quality_score(processed.pixels)
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    logger.debug(
        "Normalized %dx%d -> %dx%d in %.1fms (quality %.3f)",
        image.width, image.height, processed.width, processed.height, elapsed_ms, score,
    )
    return NormalizationResult(
        original_image=image,
        processed_image=processed,
        steps=applied,
        elapsed_ms=elapsed_ms,
        quality_score=score,
    )
