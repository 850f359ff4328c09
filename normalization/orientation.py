"""
normalization.orientation — Coarse orientation choice and fine deskew.

Coarse orientation renders the four right-angle rotations of the image
and scores each with an aspect-ratio heuristic (``height / width``):

* ratio in ``(0.7, 1.3)`` -> 0.8
* ratio in ``(0.5, 2.0)`` -> 0.9
* otherwise -> 0.5

The ratio is always height over width, so the bands are not symmetric
under a quarter turn: a page 100 high and 75 wide (ratio 1.33) scores
0.9 upright but 0.8 rotated (ratio 0.75).

The highest score wins; ties keep the earlier rotation in the order
0, 90, 180, 270.  Candidates are scored concurrently and the whole
search is bounded by a wall-clock timeout.

Fine deskew estimates the dominant text-line angle with a Hough
transform:

1. Detect edges with Canny.
2. Run the Standard Hough Transform.
3. Fold every line angle into ``[-45, 45]`` degrees.
4. Take the median as the skew and the median absolute deviation (MAD)
   as an inverse confidence.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Dict, Optional

import cv2
import numpy as np

from .utils import to_gray_u8

logger = logging.getLogger(__name__)

ROTATIONS = (0, 90, 180, 270)

# Skew estimates outside these bounds are ignored.
MIN_SKEW_DEG = 0.5
MIN_SKEW_CONFIDENCE = 0.5

_CV2_ROTATE = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


@dataclass(frozen=True)
class OrientationOutcome:
    image: np.ndarray
    rotation: int
    skew_angle_deg: Optional[float]
    deskewed: bool
    timed_out: bool = False


def rotate_right_angle(arr: np.ndarray, degrees: int) -> np.ndarray:
    if degrees == 0:
        return arr.copy()
    return cv2.rotate(arr, _CV2_ROTATE[degrees])


def aspect_score(height: int, width: int) -> float:
    ratio = height / float(width)
    if 0.7 < ratio < 1.3:
        return 0.8
    if 0.5 < ratio < 2.0:
        return 0.9
    return 0.5


def _score_candidate(arr: np.ndarray, degrees: int) -> float:
    candidate = rotate_right_angle(arr, degrees)
    h, w = candidate.shape[:2]
    return aspect_score(h, w)


def choose_rotation(arr: np.ndarray, timeout_s: float = 2.0) -> Optional[int]:
    """Return the best right-angle rotation, or ``None`` on timeout."""
    pool = ThreadPoolExecutor(max_workers=len(ROTATIONS))
    try:
        futures = {deg: pool.submit(_score_candidate, arr, deg) for deg in ROTATIONS}
        _, not_done = wait(futures.values(), timeout=timeout_s)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
    if not_done:
        logger.warning("Orientation scoring exceeded %.2fs; keeping original", timeout_s)
        return None

    best_deg, best_score = 0, -1.0
    for deg in ROTATIONS:
        score = futures[deg].result()
        if score > best_score:
            best_deg, best_score = deg, score
    return best_deg


def estimate_skew(arr: np.ndarray) -> Dict[str, float]:
    """Estimate the dominant skew angle of text lines.

    Returns
    -------
    dict
        * ``"skew_angle_deg"`` — Median folded line angle (degrees).
        * ``"skew_confidence"`` — ``clip(1 - MAD / 10, 0, 1)``; 0 when
          fewer than five lines were detected.
    """
    gray = to_gray_u8(arr)
    edges = cv2.Canny(gray, 60, 140)
    lines = cv2.HoughLines(edges, 1, np.pi / 180, threshold=130)

    if lines is None or len(lines) < 5:
        return {"skew_angle_deg": 0.0, "skew_confidence": 0.0}

    angles = []
    for i in range(min(len(lines), 200)):
        _, theta = lines[i][0]
        ang = (theta * 180.0 / np.pi) - 90.0
        while ang < -45:
            ang += 90
        while ang > 45:
            ang -= 90
        angles.append(ang)

    a = np.array(angles, dtype=np.float32)
    med = float(np.median(a))
    mad = float(np.median(np.abs(a - med)) + 1e-6)
    conf = float(np.clip(1.0 - (mad / 10.0), 0.0, 1.0))
    return {"skew_angle_deg": med, "skew_confidence": conf}


def deskew(arr: np.ndarray, angle_deg: float) -> np.ndarray:
    h, w = arr.shape[:2]
    matrix = cv2.getRotationMatrix2D((w / 2.0, h / 2.0), angle_deg, 1.0)
    return cv2.warpAffine(
        arr, matrix, (w, h), flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_REPLICATE,
    )


def correct_orientation(arr: np.ndarray, timeout_s: float = 2.0) -> OrientationOutcome:
    rotation = choose_rotation(arr, timeout_s=timeout_s)
    if rotation is None:
        return OrientationOutcome(arr.copy(), 0, None, False, timed_out=True)

    rotated = rotate_right_angle(arr, rotation)
    skew = estimate_skew(rotated)
    angle = skew["skew_angle_deg"]
    if abs(angle) >= MIN_SKEW_DEG and skew["skew_confidence"] >= MIN_SKEW_CONFIDENCE:
        logger.debug("Deskewing by %.2f deg (conf %.2f)", angle, skew["skew_confidence"])
        return OrientationOutcome(deskew(rotated, angle), rotation, angle, True)
    return OrientationOutcome(rotated, rotation, angle, False)
