"""
normalization.quality — Scalar image quality estimate in ``[0, 1]``.

The score averages two descriptors of the grayscale image:

* **contrast** — intensity standard deviation divided by 127.5.
* **sharpness** — mean sum of absolute differences to the four direct
  neighbours of each interior pixel, divided by 1000.

Both descriptors are clamped to ``[0, 1]`` before averaging.
"""

from __future__ import annotations

from typing import Dict

import numpy as np

from .utils import clamp01, to_gray_u8


def quality_metrics(arr: np.ndarray) -> Dict[str, float]:
    g = to_gray_u8(arr).astype(np.float32)

    contrast = clamp01(float(np.std(g)) / 127.5)

    sharpness = 0.0
    if g.shape[0] >= 3 and g.shape[1] >= 3:
        c = g[1:-1, 1:-1]
        grad = (
            np.abs(c - g[:-2, 1:-1])
            + np.abs(c - g[2:, 1:-1])
            + np.abs(c - g[1:-1, :-2])
            + np.abs(c - g[1:-1, 2:])
        )
        sharpness = clamp01(float(grad.mean()) / 1000.0)

    return {"contrast": contrast, "sharpness": sharpness}


def quality_score(arr: np.ndarray) -> float:
    m = quality_metrics(arr)
    return clamp01((m["contrast"] + m["sharpness"]) / 2.0)
