"""Recognition adapters and the text tree they produce."""

from .base import RecognitionAdapter, RecognitionError
from .models import BoundingBox, RecognitionResult, TextBlock, TextElement, TextLine
from .paddle_adapter import PaddleOCRAdapter
from .txt_adapter import TextFileAdapter, read_transcription

__all__ = [
    "BoundingBox",
    "PaddleOCRAdapter",
    "RecognitionAdapter",
    "RecognitionError",
    "RecognitionResult",
    "TextBlock",
    "TextElement",
    "TextFileAdapter",
    "TextLine",
    "read_transcription",
]
