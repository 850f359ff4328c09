"""
recognition.paddle_adapter — PaddleOCR-backed recognition.

PaddleOCR returns, per page, a list of ``[quad, (text, confidence)]``
entries, one per detected text line.  Lines are sorted top to bottom
and grouped into blocks wherever the vertical gap to the previous line
exceeds ``block_gap_ratio`` times the median line height.

The engine is built lazily on first use and cached on the adapter
instance, so separate adapters never share engine state.  PaddleOCR
predictors are not thread-safe: one adapter runs a single ``ocr`` call
at a time, and concurrent jobs sharing it queue on its lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Optional, Sequence

import cv2
import numpy as np

from normalization.utils import RasterImage

from .base import RecognitionAdapter, RecognitionError
from .models import BoundingBox, RecognitionResult, TextBlock, TextElement, TextLine

logger = logging.getLogger(__name__)


class PaddleOCRAdapter(RecognitionAdapter):
    name = "paddleocr"

    def __init__(self, lang: str = "en", use_angle_cls: bool = True, block_gap_ratio: float = 1.0):
        self.lang = lang
        self.use_angle_cls = use_angle_cls
        self.block_gap_ratio = block_gap_ratio
        self._engine: Optional[Any] = None
        self._lock = threading.RLock()

    def _get_engine(self) -> Any:
        with self._lock:
            if self._engine is None:
                try:
                    from paddleocr import PaddleOCR  # type: ignore
                except ImportError as exc:
                    raise RecognitionError(
                        "paddleocr is not installed; install the 'paddle' extra",
                    ) from exc
                self._engine = PaddleOCR(use_angle_cls=self.use_angle_cls, lang=self.lang)
            return self._engine

    @staticmethod
    def _to_bgr(arr: np.ndarray) -> np.ndarray:
        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2BGR)
        if arr.shape[2] == 4:
            return cv2.cvtColor(arr, cv2.COLOR_RGBA2BGR)
        return cv2.cvtColor(arr, cv2.COLOR_RGB2BGR)

    def _recognize(self, image: RasterImage) -> RecognitionResult:
        bgr = self._to_bgr(image.pixels)
        with self._lock:
            raw = self._get_engine().ocr(bgr, cls=self.use_angle_cls)
        lines = self.parse_output(raw)
        return RecognitionResult.from_blocks(self.group_lines(lines))

    @staticmethod
    def parse_output(raw: Any) -> List[TextLine]:
        """Convert raw PaddleOCR pages into :class:`TextLine` objects."""
        lines: List[TextLine] = []
        for page in raw or []:
            if not page:
                continue
            for item in page:
                try:
                    quad, (text, conf) = item[0], item[1]
                except (TypeError, ValueError, IndexError):
                    logger.debug("Skipping malformed OCR entry: %r", item)
                    continue
                text = str(text).strip()
                if not text:
                    continue
                box = BoundingBox.from_points(quad)
                conf = float(conf)
                elements = tuple(TextElement(tok, box, conf) for tok in text.split())
                lines.append(TextLine(text, box, conf, elements))
        return lines

    def group_lines(self, lines: Sequence[TextLine]) -> List[TextBlock]:
        if not lines:
            return []
        ordered = sorted(lines, key=lambda ln: ln.bounding_box.top if ln.bounding_box else 0.0)
        heights = [ln.bounding_box.height for ln in ordered if ln.bounding_box]
        median_h = float(np.median(heights)) if heights else 0.0
        max_gap = self.block_gap_ratio * median_h

        blocks: List[TextBlock] = []
        current: List[TextLine] = [ordered[0]]
        for prev, ln in zip(ordered, ordered[1:]):
            gap = 0.0
            if prev.bounding_box and ln.bounding_box:
                gap = ln.bounding_box.top - prev.bounding_box.bottom
            if gap > max_gap:
                blocks.append(TextBlock.from_lines(current))
                current = []
            current.append(ln)
        blocks.append(TextBlock.from_lines(current))
        return blocks
