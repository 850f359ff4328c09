"""
normalization.utils — Raster container and shared array helpers.

Provides:

* **RasterImage** — Validated wrapper around a ``uint8`` pixel buffer.
* **InputError** — Raised when a buffer cannot be treated as an image.
* **Array helpers** — ``to_gray_u8``, ``clamp01``.
* **Image I/O** — ``RasterImage.from_file`` / ``RasterImage.save``.

Every stage that modifies pixels works on a copy; the buffer handed in
by the caller is never written to.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image


class InputError(ValueError):
    """The supplied image is empty, malformed or of an unsupported layout."""


_VALID_CHANNELS = (1, 3, 4)


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RasterImage:
    """A pixel buffer of shape ``(H, W)`` or ``(H, W, C)``.

    Attributes
    ----------
    pixels : np.ndarray
        ``uint8`` array.  Channel count ``C`` is 1, 3 (RGB) or 4 (RGBA).
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        arr = self.pixels
        if not isinstance(arr, np.ndarray):
            raise InputError(f"expected a numpy array, got {type(arr).__name__}")
        if arr.dtype != np.uint8:
            raise InputError(f"expected dtype uint8, got {arr.dtype}")
        if arr.ndim not in (2, 3):
            raise InputError(f"expected 2 or 3 dimensions, got shape {arr.shape}")
        if arr.shape[0] <= 0 or arr.shape[1] <= 0:
            raise InputError(f"image has zero size: {arr.shape}")
        if arr.ndim == 3 and arr.shape[2] not in _VALID_CHANNELS:
            raise InputError(f"unsupported channel count {arr.shape[2]}")

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def channels(self) -> int:
        return 1 if self.pixels.ndim == 2 else int(self.pixels.shape[2])

    @classmethod
    def from_array(cls, arr: np.ndarray, copy: bool = True) -> "RasterImage":
        if arr is None:
            raise InputError("image is None")
        if not isinstance(arr, np.ndarray):
            raise InputError(f"expected a numpy array, got {type(arr).__name__}")
        if arr.ndim == 3 and arr.shape[2] == 1:
            arr = arr[:, :, 0]
        return cls(np.array(arr, copy=True) if copy else arr)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "RasterImage":
        """Load an image file as RGB (or RGBA when it carries alpha)."""
        p = Path(path)
        if not p.exists():
            raise InputError(f"image not found: {p}")
        try:
            with Image.open(p) as im:
                mode = "RGBA" if im.mode in ("RGBA", "LA") else "RGB"
                arr = np.array(im.convert(mode), dtype=np.uint8)
        except OSError as exc:
            raise InputError(f"cannot decode image {p}: {exc}") from exc
        return cls(arr)

    def copy(self) -> "RasterImage":
        return RasterImage(self.pixels.copy())

    def save(self, path: Union[str, Path]) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        Image.fromarray(self.pixels).save(p)

    def equals(self, other: "RasterImage") -> bool:
        return self.pixels.shape == other.pixels.shape and bool(
            np.array_equal(self.pixels, other.pixels)
        )


# ---------------------------------------------------------------------------
# Array helpers
# ---------------------------------------------------------------------------

def to_gray_u8(arr: np.ndarray) -> np.ndarray:
    """Convert an RGB/RGBA/grayscale array to a single-channel ``uint8`` array.

    Uses BT.601 luminance weights (OpenCV's ``RGB2GRAY``).
    """
    if arr.ndim == 2:
        return arr.astype(np.uint8, copy=False)
    if arr.shape[2] == 4:
        return cv2.cvtColor(arr, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(arr, cv2.COLOR_RGB2GRAY)


def clamp01(x: float) -> float:
    """Clamp a scalar to ``[0, 1]``; NaN maps to 0."""
    if x != x:
        return 0.0
    return float(min(1.0, max(0.0, x)))
