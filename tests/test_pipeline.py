"""Tests for the stage state machine, the orchestrator and record mapping."""

import json
import threading
import time
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock

import numpy as np
import pytest

from extraction import ExtractedReceipt, ExtractionEngine, LineItem, ReceiptCategory
from normalization import NormalizationOptions, RasterImage
from pipeline import (
    CancellationToken,
    FailureKind,
    IllegalTransition,
    PipelineStateMachine,
    ReceiptPipeline,
    Stage,
    run_jobs,
    to_record,
)
from pipeline.mapping import UNKNOWN_MERCHANT
from pipeline.serialization import json_sanitize, load_receipt, save_json
from recognition import PaddleOCRAdapter, RecognitionAdapter, RecognitionError, RecognitionResult
from validation import ReceiptValidator, ValidationResult

TODAY = date(2024, 3, 20)

BLOCKS = [
    ["CORNER CAFE"],
    ["Date: 03/18/2024"],
    ["SUBTOTAL: 38.00"],
    ["TAX: 4.50"],
    ["TOTAL: 42.50"],
]


class _StubRecognizer(RecognitionAdapter):
    name = "stub"

    def __init__(self, result=None, exc=None, on_call=None):
        self.result = result
        self.exc = exc
        self.on_call = on_call
        self.calls = 0

    def _recognize(self, image):
        self.calls += 1
        if self.on_call is not None:
            self.on_call()
        if self.exc is not None:
            raise self.exc
        return self.result


def _image() -> RasterImage:
    return RasterImage(np.full((60, 40, 3), 250, dtype=np.uint8))


def _pipeline(recognizer, **kwargs) -> ReceiptPipeline:
    kwargs.setdefault("validator", ReceiptValidator(today=lambda: TODAY))
    return ReceiptPipeline(
        recognizer=recognizer,
        options=NormalizationOptions.disabled(),
        **kwargs,
    )


def _ok_recognizer() -> _StubRecognizer:
    return _StubRecognizer(RecognitionResult.from_text_blocks(BLOCKS))


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

def test_state_machine_happy_path():
    sm = PipelineStateMachine()
    for stage in (Stage.NORMALIZING, Stage.RECOGNIZING, Stage.EXTRACTING, Stage.VALIDATING, Stage.SUCCEEDED):
        sm.advance(stage)
    assert sm.history[0] is Stage.IDLE
    assert sm.stage is Stage.SUCCEEDED


def test_state_machine_rejects_skips_and_moves_after_terminal():
    sm = PipelineStateMachine()
    with pytest.raises(IllegalTransition):
        sm.advance(Stage.EXTRACTING)
    sm.advance(Stage.FAILED)
    assert not sm.can_advance(Stage.NORMALIZING)
    with pytest.raises(IllegalTransition):
        sm.advance(Stage.FAILED)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def test_successful_run_emits_each_stage_once():
    events = list(_pipeline(_ok_recognizer()).events(_image()))
    assert [e.stage for e in events] == [
        Stage.NORMALIZING, Stage.RECOGNIZING, Stage.EXTRACTING, Stage.VALIDATING, Stage.SUCCEEDED,
    ]
    progress = [e.progress for e in events]
    assert progress == sorted(progress)
    assert progress[-1] == 1.0

    outcome = events[-1].outcome
    assert outcome.succeeded
    assert outcome.receipt.total == Decimal("42.50")
    assert outcome.validation.is_valid
    assert outcome.record.merchant_name == "CORNER CAFE"
    assert set(outcome.timing_ms) == {"normalize", "recognize", "extract", "validate"}


def test_run_reports_events_to_callback():
    seen = []
    outcome = _pipeline(_ok_recognizer()).run(_image(), on_event=seen.append)
    assert outcome.succeeded
    assert sum(1 for e in seen if e.is_terminal) == 1


def test_recognition_error_keeps_transient_flag():
    rec = _StubRecognizer(exc=RecognitionError("engine busy", transient=True))
    outcome = _pipeline(rec).run(_image())
    assert outcome.error.kind is FailureKind.RECOGNITION
    assert outcome.error.transient is True
    assert outcome.error.stage is Stage.RECOGNIZING
    assert outcome.receipt is None


def test_blank_text_fails_recognition():
    engine = MagicMock(spec=ExtractionEngine)
    outcome = _pipeline(_StubRecognizer(RecognitionResult("   ")), engine=engine).run(_image())
    assert outcome.error.kind is FailureKind.RECOGNITION
    assert outcome.error.transient is False
    engine.extract.assert_not_called()


@pytest.mark.parametrize("bad", [np.zeros((0, 10), dtype=np.uint8), "not an image"])
def test_bad_input_fails_before_any_stage(bad):
    rec = _ok_recognizer()
    events = list(_pipeline(rec).events(bad))
    assert [e.stage for e in events] == [Stage.FAILED]
    assert events[0].outcome.error.kind is FailureKind.INPUT
    assert rec.calls == 0


def test_raw_array_input_is_accepted():
    arr = np.full((60, 40), 250, dtype=np.uint8)
    assert _pipeline(_ok_recognizer()).run(arr).succeeded


def test_normalizer_crash_is_normalization_failure():
    def broken(image, options):
        raise RuntimeError("opencv exploded")

    outcome = _pipeline(_ok_recognizer(), normalizer=broken).run(_image())
    assert outcome.error.kind is FailureKind.NORMALIZATION
    assert "opencv exploded" in outcome.error.message


def test_cancel_during_recognition_stops_before_extraction():
    token = CancellationToken()
    engine = MagicMock(spec=ExtractionEngine)
    rec = _StubRecognizer(RecognitionResult.from_text_blocks(BLOCKS), on_call=token.cancel)

    events = list(_pipeline(rec, engine=engine).events(_image(), token=token))
    assert events[-1].stage is Stage.FAILED
    assert events[-1].outcome.error.kind is FailureKind.CANCELLED
    assert Stage.EXTRACTING not in [e.stage for e in events]
    engine.extract.assert_not_called()


def test_cancel_before_start():
    token = CancellationToken()
    token.cancel()
    rec = _ok_recognizer()
    outcome = _pipeline(rec).run(_image(), token=token)
    assert outcome.error.kind is FailureKind.CANCELLED
    assert rec.calls == 0


def test_unexpected_extraction_error():
    engine = MagicMock(spec=ExtractionEngine)
    engine.extract.side_effect = KeyError("boom")
    outcome = _pipeline(_ok_recognizer(), engine=engine).run(_image())
    assert outcome.error.kind is FailureKind.UNEXPECTED


def test_run_batch_keeps_input_order():
    pipe = _pipeline(_ok_recognizer())
    images = [_image(), np.zeros((0, 3), dtype=np.uint8), _image()]
    outcomes = pipe.run_batch(images, max_workers=3)
    assert [o.succeeded for o in outcomes] == [True, False, True]
    assert pipe.run_batch([]) == []


class _OverlapCountingEngine:
    """Stands in for PaddleOCR and records how many ``ocr`` calls overlap."""

    def __init__(self):
        self.active = 0
        self.peak = 0
        self._guard = threading.Lock()

    def ocr(self, img, cls=True):
        with self._guard:
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(0.02)
        with self._guard:
            self.active -= 1
        quad = [[0, 0], [200, 0], [200, 20], [0, 20]]
        return [[[quad, ("TOTAL 42.50", 0.9)]]]


def test_run_batch_serialises_calls_into_a_shared_engine():
    adapter = PaddleOCRAdapter()
    engine = _OverlapCountingEngine()
    adapter._engine = engine

    outcomes = _pipeline(adapter).run_batch([_image() for _ in range(4)], max_workers=4)
    assert all(o.succeeded for o in outcomes)
    assert engine.peak == 1


def test_missing_image_path_fails_only_its_job(tmp_path):
    good = tmp_path / "ok.png"
    _image().save(good)
    outcomes = _pipeline(_ok_recognizer()).run_batch([good, tmp_path / "missing.png"], max_workers=2)
    assert outcomes[0].succeeded
    assert outcomes[1].error.kind is FailureKind.INPUT
    assert "not found" in outcomes[1].error.message


def test_run_jobs_uses_each_jobs_pipeline():
    first = _StubRecognizer(RecognitionResult.from_text_blocks(BLOCKS))
    second = _StubRecognizer(RecognitionResult("  "))
    outcomes = run_jobs([(_pipeline(first), _image()), (_pipeline(second), _image())], max_workers=2)
    assert [o.succeeded for o in outcomes] == [True, False]
    assert first.calls == 1 and second.calls == 1
    assert run_jobs([]) == []


def test_outcome_to_dict_is_json_safe():
    outcome = _pipeline(_ok_recognizer()).run(_image())
    text = json.dumps(json_sanitize(outcome.to_dict()))
    assert '"42.50"' in text


# ---------------------------------------------------------------------------
# Record mapping
# ---------------------------------------------------------------------------

def test_to_record_defaults():
    receipt = ExtractedReceipt(
        merchant_name="  ",
        line_items=[LineItem("Coffee", Decimal("3.00"))],
        category=ReceiptCategory.DINING,
    )
    rec = to_record(receipt, ValidationResult(is_valid=False, confidence=0.2), id_factory=lambda: "r-1")
    assert rec.id == "r-1"
    assert rec.merchant_name == UNKNOWN_MERCHANT
    assert rec.total_amount == Decimal("0.00")
    assert rec.items[0].quantity == Decimal("1")
    assert rec.category == "Food & Dining"
    assert rec.needs_review is True


def test_to_record_confident_receipt_needs_no_review():
    receipt = ExtractedReceipt(merchant_name="SHOP", total=Decimal("5.00"))
    rec = to_record(receipt, ValidationResult(is_valid=True, confidence=0.9))
    assert rec.needs_review is False
    assert rec.notes is None
    assert rec.to_dict()["total_amount"] == "5.00"


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def test_json_sanitize_handles_domain_types():
    data = {
        "amount": Decimal("1.50"),
        "day": date(2024, 1, 2),
        "stage": Stage.FAILED,
        "n": np.int64(3),
        "nan": float("nan"),
        "arr": np.array([1, 2]),
    }
    assert json_sanitize(data) == {
        "amount": "1.50",
        "day": "2024-01-02",
        "stage": "FAILED",
        "n": 3,
        "nan": None,
        "arr": [1, 2],
    }


def test_load_receipt_unwraps_extract_output(tmp_path):
    receipt = ExtractedReceipt(merchant_name="SHOP", total=Decimal("5.00"))
    path = tmp_path / "out.json"
    save_json({"receipt": receipt.to_dict(), "validation": {}}, path)
    assert load_receipt(path) == receipt
