"""
normalization.steps — Individual pixel operations applied by the normaliser.

Each function takes a ``uint8`` array and returns a *new* ``uint8`` array;
inputs are never modified in place.  Failures propagate to the caller,
which decides whether to absorb them.
"""

from __future__ import annotations

import cv2
import numpy as np

from .utils import to_gray_u8

# Unsharp-mask gain.
SHARPEN_AMOUNT = 1.5

# Adaptive threshold parameters: pixel > local_mean - offset => white.
BINARIZE_WINDOW = 15
BINARIZE_OFFSET = 10

# Number of 3x3 smoothing passes used to approximate an edge-preserving blur.
DENOISE_PASSES = 3


def scale_resolution(arr: np.ndarray, factor: float) -> np.ndarray:
    """Resample by *factor* with bicubic interpolation (never below 1x1)."""
    if factor <= 0:
        raise ValueError(f"scale factor must be positive, got {factor}")
    h, w = arr.shape[:2]
    new_w = max(1, int(round(w * factor)))
    new_h = max(1, int(round(h * factor)))
    return cv2.resize(arr, (new_w, new_h), interpolation=cv2.INTER_CUBIC)


def to_grayscale(arr: np.ndarray) -> np.ndarray:
    if arr.ndim == 2:
        return arr.copy()
    return to_gray_u8(arr)


def reduce_noise(arr: np.ndarray, passes: int = DENOISE_PASSES) -> np.ndarray:
    out = arr.copy()
    for _ in range(max(1, passes)):
        out = cv2.GaussianBlur(out, (3, 3), 0)
    return out


def enhance_contrast(
    arr: np.ndarray, factor: float = 1.5, method: str = "linear",
) -> np.ndarray:
    """Stretch contrast around mid-grey, or equalise locally with CLAHE.

    Parameters
    ----------
    arr : np.ndarray
        ``uint8`` image, grayscale or colour.
    factor : float
        Gain for the ``"linear"`` method; values are pivoted at 128 and
        clipped to ``[0, 255]``.  Mid-grey stays fixed and both ends
        stretch, unlike a plain multiplicative gain, which only brightens.
    method : str
        ``"linear"`` or ``"clahe"``.
    """
    if method == "linear":
        f = arr.astype(np.float32)
        out = (f - 128.0) * float(factor) + 128.0
        if arr.ndim == 3 and arr.shape[2] == 4:
            out[:, :, 3] = f[:, :, 3]
        return np.clip(out, 0, 255).astype(np.uint8)

    if method == "clahe":
        clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
        if arr.ndim == 2:
            return clahe.apply(arr)
        rgb = arr[:, :, :3]
        lab = cv2.cvtColor(np.ascontiguousarray(rgb), cv2.COLOR_RGB2LAB)
        lab[:, :, 0] = clahe.apply(lab[:, :, 0])
        out = arr.copy()
        out[:, :, :3] = cv2.cvtColor(lab, cv2.COLOR_LAB2RGB)
        return out

    raise ValueError(f"unknown contrast method: {method!r}")


def sharpen(arr: np.ndarray, amount: float = SHARPEN_AMOUNT) -> np.ndarray:
    """Unsharp mask: ``orig + amount * (orig - blurred)``, clipped per channel."""
    f = arr.astype(np.float32)
    blurred = cv2.GaussianBlur(f, (3, 3), 0)
    out = f + amount * (f - blurred)
    if arr.ndim == 3 and arr.shape[2] == 4:
        out[:, :, 3] = f[:, :, 3]
    return np.clip(out, 0, 255).astype(np.uint8)


def binarize(
    arr: np.ndarray,
    window: int = BINARIZE_WINDOW,
    offset: int = BINARIZE_OFFSET,
) -> np.ndarray:
    """Adaptive mean threshold on the grayscale image."""
    gray = to_gray_u8(arr)
    return cv2.adaptiveThreshold(
        gray, 255, cv2.ADAPTIVE_THRESH_MEAN_C, cv2.THRESH_BINARY, window, offset,
    )
