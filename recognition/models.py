"""
recognition.models — Immutable text tree produced by a recognition engine.

``RecognitionResult`` -> ``TextBlock`` -> ``TextLine`` -> ``TextElement``.
Children are stored in tuples and there are no parent references, so a
result can be shared freely between threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class BoundingBox:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def union(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            min(self.left, other.left),
            min(self.top, other.top),
            max(self.right, other.right),
            max(self.bottom, other.bottom),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"left": self.left, "top": self.top, "right": self.right, "bottom": self.bottom}

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> Optional["BoundingBox"]:
        if d is None:
            return None
        return cls(float(d["left"]), float(d["top"]), float(d["right"]), float(d["bottom"]))

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> "BoundingBox":
        """Axis-aligned box around a polygon (e.g. an OCR quadrilateral)."""
        xs = [float(p[0]) for p in points]
        ys = [float(p[1]) for p in points]
        return cls(min(xs), min(ys), max(xs), max(ys))


def _union_all(boxes: Iterable[Optional[BoundingBox]]) -> Optional[BoundingBox]:
    out = None
    for b in boxes:
        if b is None:
            continue
        out = b if out is None else out.union(b)
    return out


@dataclass(frozen=True)
class TextElement:
    text: str
    bounding_box: Optional[BoundingBox] = None
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "bounding_box": self.bounding_box.to_dict() if self.bounding_box else None,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TextElement":
        return cls(d["text"], BoundingBox.from_dict(d.get("bounding_box")), d.get("confidence"))


@dataclass(frozen=True)
class TextLine:
    text: str
    bounding_box: Optional[BoundingBox] = None
    confidence: Optional[float] = None
    elements: Tuple[TextElement, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "bounding_box": self.bounding_box.to_dict() if self.bounding_box else None,
            "confidence": self.confidence,
            "elements": [e.to_dict() for e in self.elements],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TextLine":
        return cls(
            d["text"],
            BoundingBox.from_dict(d.get("bounding_box")),
            d.get("confidence"),
            tuple(TextElement.from_dict(e) for e in d.get("elements", [])),
        )


@dataclass(frozen=True)
class TextBlock:
    text: str
    bounding_box: Optional[BoundingBox] = None
    lines: Tuple[TextLine, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "bounding_box": self.bounding_box.to_dict() if self.bounding_box else None,
            "lines": [ln.to_dict() for ln in self.lines],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TextBlock":
        return cls(
            d["text"],
            BoundingBox.from_dict(d.get("bounding_box")),
            tuple(TextLine.from_dict(ln) for ln in d.get("lines", [])),
        )

    @classmethod
    def from_lines(cls, lines: Sequence[TextLine]) -> "TextBlock":
        lines = tuple(lines)
        return cls(
            "\n".join(ln.text for ln in lines),
            _union_all(ln.bounding_box for ln in lines),
            lines,
        )


@dataclass(frozen=True)
class RecognitionResult:
    full_text: str
    blocks: Tuple[TextBlock, ...] = ()

    @property
    def is_blank(self) -> bool:
        return not self.full_text.strip()

    def to_dict(self) -> Dict[str, Any]:
        return {"full_text": self.full_text, "blocks": [b.to_dict() for b in self.blocks]}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RecognitionResult":
        return cls(d.get("full_text", ""), tuple(TextBlock.from_dict(b) for b in d.get("blocks", [])))

    @classmethod
    def from_blocks(cls, blocks: Sequence[TextBlock]) -> "RecognitionResult":
        blocks = tuple(blocks)
        return cls("\n".join(b.text for b in blocks), blocks)

    @classmethod
    def from_text_blocks(
        cls,
        blocks: Sequence[Sequence[str]],
        line_height: float = 20.0,
        line_width: float = 400.0,
        block_gap: float = 20.0,
        confidence: Optional[float] = None,
    ) -> "RecognitionResult":
        """Build a tree from plain strings, laying lines out top to bottom.

        Each inner sequence becomes one block.  Lines receive synthetic,
        non-overlapping boxes so that reading order follows list order.
        """
        out: List[TextBlock] = []
        y = 0.0
        for block_lines in blocks:
            lines = []
            for text in block_lines:
                box = BoundingBox(0.0, y, line_width, y + line_height)
                elements = tuple(TextElement(tok, box, confidence) for tok in text.split())
                lines.append(TextLine(text, box, confidence, elements))
                y += line_height
            if lines:
                out.append(TextBlock.from_lines(lines))
            y += block_gap
        return cls.from_blocks(out)
