"""
pipeline.orchestrator — Run normalisation, recognition, extraction and
validation for one image and report progress as a stream of events.

Flow
----
  1. input check        — load files, reject non-images before any work (INPUT)
  2. normalize          — step failures are absorbed inside the normaliser
  3. recognize          — adapter errors or blank text fail the job (RECOGNITION)
  4. extract            — never fails on a missing field
  5. validate           — never raises; problems are data
  6. map                — caller-facing :class:`ReceiptRecord`

Every job yields exactly one progress event per stage it enters and
ends with exactly one terminal event (``SUCCEEDED`` or ``FAILED``).
There is no automatic retry.  A :class:`CancellationToken` is checked
before each stage; once it is set no further stage starts and the job
ends ``FAILED`` with kind ``CANCELLED``.

Usage
-----
    from pipeline import ReceiptPipeline
    from recognition import TextFileAdapter

    pipe = ReceiptPipeline(recognizer=TextFileAdapter("receipt.txt"))
    outcome = pipe.run("receipt.png")
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from tqdm import tqdm

from extraction.engine import ExtractionEngine
from normalization.normalizer import NormalizationOptions, NormalizationResult, normalize
from normalization.utils import InputError, RasterImage
from recognition.base import RecognitionAdapter, RecognitionError
from validation.validator import ReceiptValidator

from .events import (
    STAGE_PROGRESS,
    CancellationToken,
    FailureKind,
    PipelineError,
    PipelineEvent,
    PipelineOutcome,
    PipelineStateMachine,
    Stage,
)
from .mapping import to_record

logger = logging.getLogger(__name__)

Normalizer = Callable[[RasterImage, NormalizationOptions], NormalizationResult]
ImageSource = Union[RasterImage, np.ndarray, str, Path]


class ReceiptPipeline:
    """Sequences the four stages; every collaborator is injected.

    Parameters
    ----------
    recognizer : RecognitionAdapter
        Text recognition backend.
    engine : ExtractionEngine, optional
    validator : ReceiptValidator, optional
    options : NormalizationOptions, optional
    normalizer : callable, optional
        Replaces :func:`normalization.normalize` (mainly for tests).
    """

    def __init__(
        self,
        recognizer: RecognitionAdapter,
        engine: Optional[ExtractionEngine] = None,
        validator: Optional[ReceiptValidator] = None,
        options: Optional[NormalizationOptions] = None,
        normalizer: Optional[Normalizer] = None,
    ):
        self.recognizer = recognizer
        self.engine = engine or ExtractionEngine()
        self.validator = validator or ReceiptValidator()
        self.options = options or NormalizationOptions()
        self.normalizer = normalizer or normalize

    # ------------------------------------------------------------------
    # Event stream
    # ------------------------------------------------------------------

    @staticmethod
    def _enter(sm: PipelineStateMachine, stage: Stage, message: str = "") -> PipelineEvent:
        sm.advance(stage)
        return PipelineEvent(stage, STAGE_PROGRESS[stage], message)

    @staticmethod
    def _fail(
        sm: PipelineStateMachine,
        outcome: PipelineOutcome,
        kind: FailureKind,
        message: str,
        transient: bool = False,
    ) -> PipelineEvent:
        failed_at = sm.stage
        sm.advance(Stage.FAILED)
        outcome.error = PipelineError(kind, message, transient=transient, stage=failed_at)
        logger.warning("Pipeline failed at %s (%s): %s", failed_at.name, kind.name, message)
        return PipelineEvent(Stage.FAILED, STAGE_PROGRESS[Stage.FAILED], message, outcome)

    def events(
        self,
        image: ImageSource,
        token: Optional[CancellationToken] = None,
    ) -> Iterator[PipelineEvent]:
        """Process *image*, yielding stage events and one terminal event.

        A path is loaded here, so a missing or undecodable file ends this
        job with ``FAILED(INPUT)`` instead of raising.
        """
        sm = PipelineStateMachine()
        outcome = PipelineOutcome()

        def cancelled() -> bool:
            return token is not None and token.cancelled

        if isinstance(image, (str, Path, np.ndarray)):
            try:
                if isinstance(image, np.ndarray):
                    image = RasterImage.from_array(image)
                else:
                    image = RasterImage.from_file(image)
            except InputError as exc:
                yield self._fail(sm, outcome, FailureKind.INPUT, str(exc))
                return
        if not isinstance(image, RasterImage):
            yield self._fail(sm, outcome, FailureKind.INPUT, f"expected RasterImage, got {type(image).__name__}")
            return

        # 1) Normalize
        if cancelled():
            yield self._fail(sm, outcome, FailureKind.CANCELLED, "cancelled before normalization")
            return
        yield self._enter(sm, Stage.NORMALIZING)
        t0 = time.perf_counter()
        try:
            norm = self.normalizer(image, self.options)
        except InputError as exc:
            yield self._fail(sm, outcome, FailureKind.INPUT, str(exc))
            return
        except Exception as exc:
            yield self._fail(sm, outcome, FailureKind.NORMALIZATION, f"{type(exc).__name__}: {exc}")
            return
        outcome.timing_ms["normalize"] = (time.perf_counter() - t0) * 1000.0
        outcome.normalization = norm.to_dict()

        # 2) Recognize
        if cancelled():
            yield self._fail(sm, outcome, FailureKind.CANCELLED, "cancelled before recognition")
            return
        yield self._enter(sm, Stage.RECOGNIZING)
        t0 = time.perf_counter()
        try:
            recognized = self.recognizer.recognize(norm.processed_image)
        except RecognitionError as exc:
            yield self._fail(sm, outcome, FailureKind.RECOGNITION, str(exc), transient=exc.transient)
            return
        except Exception as exc:
            yield self._fail(sm, outcome, FailureKind.UNEXPECTED, f"{type(exc).__name__}: {exc}")
            return
        outcome.timing_ms["recognize"] = (time.perf_counter() - t0) * 1000.0
        if recognized.is_blank:
            yield self._fail(sm, outcome, FailureKind.RECOGNITION, "no text recognized")
            return

        # 3) Extract
        if cancelled():
            yield self._fail(sm, outcome, FailureKind.CANCELLED, "cancelled before extraction")
            return
        yield self._enter(sm, Stage.EXTRACTING)
        t0 = time.perf_counter()
        try:
            receipt = self.engine.extract(recognized)
        except Exception as exc:
            yield self._fail(sm, outcome, FailureKind.UNEXPECTED, f"{type(exc).__name__}: {exc}")
            return
        outcome.timing_ms["extract"] = (time.perf_counter() - t0) * 1000.0

        # 4) Validate
        if cancelled():
            yield self._fail(sm, outcome, FailureKind.CANCELLED, "cancelled before validation")
            return
        yield self._enter(sm, Stage.VALIDATING)
        t0 = time.perf_counter()
        try:
            validation = self.validator.validate(receipt)
            record = to_record(receipt, validation)
        except Exception as exc:
            yield self._fail(sm, outcome, FailureKind.UNEXPECTED, f"{type(exc).__name__}: {exc}")
            return
        outcome.timing_ms["validate"] = (time.perf_counter() - t0) * 1000.0

        outcome.receipt = receipt
        outcome.validation = validation
        outcome.record = record
        sm.advance(Stage.SUCCEEDED)
        yield PipelineEvent(Stage.SUCCEEDED, STAGE_PROGRESS[Stage.SUCCEEDED], "done", outcome)

    # ------------------------------------------------------------------
    # Convenience runners
    # ------------------------------------------------------------------

    def run(
        self,
        image: ImageSource,
        token: Optional[CancellationToken] = None,
        on_event: Optional[Callable[[PipelineEvent], None]] = None,
    ) -> PipelineOutcome:
        terminal = None
        for event in self.events(image, token=token):
            if on_event is not None:
                on_event(event)
            if event.is_terminal:
                terminal = event
        return terminal.outcome

    def run_batch(
        self,
        images: Sequence[ImageSource],
        max_workers: int = 4,
        token: Optional[CancellationToken] = None,
        show_progress: bool = False,
    ) -> List[PipelineOutcome]:
        """Process independent images concurrently; results keep input order."""
        return run_jobs([(self, img) for img in images], max_workers, token, show_progress)


def run_jobs(
    jobs: Sequence[Tuple[ReceiptPipeline, ImageSource]],
    max_workers: int = 4,
    token: Optional[CancellationToken] = None,
    show_progress: bool = False,
) -> List[PipelineOutcome]:
    """Run ``(pipeline, image)`` pairs in a thread pool; results keep input order.

    Each job gets its own state machine and outcome.  Pipelines may differ
    per job (one transcription per image) or be shared; a shared recognizer
    is responsible for serialising access to its engine.
    """
    if not jobs:
        return []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(jobs)))) as pool:
        results = pool.map(lambda job: job[0].run(job[1], token=token), jobs)
        if show_progress:
            results = tqdm(results, total=len(jobs), desc="Scanning", unit="receipt")
        return list(results)
