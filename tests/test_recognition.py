"""Tests for the recognition text tree and adapters."""

from unittest.mock import MagicMock

import numpy as np
import pytest

from normalization import RasterImage
from recognition import (
    BoundingBox,
    PaddleOCRAdapter,
    RecognitionAdapter,
    RecognitionError,
    RecognitionResult,
    TextFileAdapter,
    read_transcription,
)
from recognition.txt_adapter import split_blocks


def _blank_image() -> RasterImage:
    return RasterImage(np.full((40, 40), 255, dtype=np.uint8))


def _quad(top: float, bottom: float, left: float = 0.0, right: float = 100.0):
    return [[left, top], [right, top], [right, bottom], [left, bottom]]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

def test_from_text_blocks_builds_ordered_tree():
    res = RecognitionResult.from_text_blocks([["STORE", "Main St"], ["TOTAL 5.00"]])
    assert len(res.blocks) == 2
    assert res.blocks[0].text == "STORE\nMain St"
    assert res.full_text == "STORE\nMain St\nTOTAL 5.00"

    first, second = res.blocks
    assert first.bounding_box.bottom <= second.bounding_box.top
    assert [e.text for e in second.lines[0].elements] == ["TOTAL", "5.00"]


def test_recognition_result_dict_round_trip():
    res = RecognitionResult.from_text_blocks([["A line"], ["Another one", "third"]], confidence=0.9)
    assert RecognitionResult.from_dict(res.to_dict()) == res


def test_bounding_box_from_points():
    box = BoundingBox.from_points([[5, 10], [50, 12], [48, 30], [4, 28]])
    assert box == BoundingBox(4.0, 10.0, 50.0, 30.0)
    assert box.height == 20.0


def test_blank_result():
    assert RecognitionResult("  \n ").is_blank
    assert not RecognitionResult("x").is_blank


# ---------------------------------------------------------------------------
# Text transcription adapter
# ---------------------------------------------------------------------------

def test_split_blocks_without_blank_lines_is_one_block_per_line():
    assert split_blocks("A\nB\nC\n") == [["A"], ["B"], ["C"]]


def test_split_blocks_uses_blank_lines_as_separators():
    assert split_blocks("A\nB\n\nC\n\n\nD") == [["A", "B"], ["C"], ["D"]]


def test_text_file_adapter_reads_transcription(tmp_path):
    txt = tmp_path / "r.txt"
    txt.write_text("SHOP\n\nTOTAL 12.00\n", encoding="utf-8")
    res = TextFileAdapter(txt).recognize(_blank_image())
    assert [b.text for b in res.blocks] == ["SHOP", "TOTAL 12.00"]


def test_read_transcription_missing_file_is_permanent(tmp_path):
    with pytest.raises(RecognitionError) as info:
        read_transcription(tmp_path / "missing.txt")
    assert info.value.transient is False


def test_text_file_adapter_without_path():
    with pytest.raises(RecognitionError, match="no transcription"):
        TextFileAdapter().recognize(_blank_image())


# ---------------------------------------------------------------------------
# Error wrapping
# ---------------------------------------------------------------------------

class _Raising(RecognitionAdapter):
    name = "raising"

    def __init__(self, exc):
        self.exc = exc

    def _recognize(self, image):
        raise self.exc


def test_unexpected_engine_error_is_wrapped_as_permanent():
    with pytest.raises(RecognitionError, match="ValueError") as info:
        _Raising(ValueError("corrupt buffer")).recognize(_blank_image())
    assert info.value.transient is False


def test_engine_timeout_is_transient():
    with pytest.raises(RecognitionError) as info:
        _Raising(TimeoutError("busy")).recognize(_blank_image())
    assert info.value.transient is True


def test_recognition_error_passes_through_unchanged():
    err = RecognitionError("engine busy", transient=True)
    with pytest.raises(RecognitionError) as info:
        _Raising(err).recognize(_blank_image())
    assert info.value is err


# ---------------------------------------------------------------------------
# PaddleOCR adapter (engine mocked)
# ---------------------------------------------------------------------------

PADDLE_RAW = [[
    [_quad(0, 20), ("STORE", 0.99)],
    [_quad(22, 42), ("TOTAL 5.00", 0.95)],
    [_quad(100, 120), ("THANK YOU", 0.90)],
]]


def test_paddle_parse_output():
    lines = PaddleOCRAdapter.parse_output(PADDLE_RAW)
    assert [ln.text for ln in lines] == ["STORE", "TOTAL 5.00", "THANK YOU"]
    assert lines[1].confidence == pytest.approx(0.95)
    assert lines[1].bounding_box == BoundingBox(0.0, 22.0, 100.0, 42.0)


def test_paddle_parse_output_skips_empty_pages_and_bad_entries():
    raw = [None, [], [["bad"], [_quad(0, 10), ("ok", 0.5)]]]
    lines = PaddleOCRAdapter.parse_output(raw)
    assert [ln.text for ln in lines] == ["ok"]


def test_paddle_groups_lines_by_vertical_gap():
    adapter = PaddleOCRAdapter()
    blocks = adapter.group_lines(PaddleOCRAdapter.parse_output(PADDLE_RAW))
    assert [b.text for b in blocks] == ["STORE\nTOTAL 5.00", "THANK YOU"]


def test_paddle_recognize_uses_injected_engine():
    adapter = PaddleOCRAdapter()
    engine = MagicMock()
    engine.ocr.return_value = PADDLE_RAW
    adapter._engine = engine

    res = adapter.recognize(RasterImage(np.zeros((30, 30, 3), dtype=np.uint8)))
    assert len(res.blocks) == 2
    bgr = engine.ocr.call_args[0][0]
    assert bgr.shape == (30, 30, 3)


def test_paddle_adapters_do_not_share_engines():
    a, b = PaddleOCRAdapter(), PaddleOCRAdapter()
    a._engine = MagicMock()
    assert b._engine is None
