"""
recognition.txt_adapter — Use an existing plain-text transcription.

Datasets often ship a ``.txt`` transcription next to every receipt
image.  Blank lines separate blocks (or, when there are none, every
line is its own block); each non-empty line becomes a
:class:`TextLine` with a synthetic box so reading order is preserved.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from normalization.utils import RasterImage

from .base import RecognitionAdapter, RecognitionError
from .models import RecognitionResult

# Cap on lines read from a transcription.
_MAX_LINES = 300


def split_blocks(text: str, max_lines: int = _MAX_LINES) -> List[List[str]]:
    """Group lines into blocks at blank lines.

    A transcription with no blank lines at all yields one block per
    line, matching how detectors usually segment short receipt rows.
    """
    stripped = [ln.strip() for ln in text.strip().splitlines()]
    non_empty = [ln for ln in stripped if ln]
    if len(non_empty) == len(stripped):
        return [[ln] for ln in non_empty[:max_lines]]

    blocks: List[List[str]] = []
    current: List[str] = []
    n = 0
    for ln in text.splitlines():
        ln = ln.strip()
        if not ln:
            if current:
                blocks.append(current)
                current = []
            continue
        current.append(ln)
        n += 1
        if n >= max_lines:
            break
    if current:
        blocks.append(current)
    return blocks


def read_transcription(txt_path: Union[str, Path], max_lines: int = _MAX_LINES) -> RecognitionResult:
    p = Path(txt_path)
    if not p.exists():
        raise RecognitionError(f"transcription not found: {p}")
    text = p.read_text(encoding="utf-8", errors="ignore")
    return RecognitionResult.from_text_blocks(split_blocks(text, max_lines=max_lines))


class TextFileAdapter(RecognitionAdapter):
    """Ignores pixels and returns the transcription at ``txt_path``."""

    name = "txt"

    def __init__(self, txt_path: Optional[Union[str, Path]] = None, max_lines: int = _MAX_LINES):
        self.txt_path = Path(txt_path) if txt_path is not None else None
        self.max_lines = max_lines

    def _recognize(self, image: RasterImage) -> RecognitionResult:
        if self.txt_path is None:
            raise RecognitionError("no transcription path configured")
        return read_transcription(self.txt_path, max_lines=self.max_lines)
