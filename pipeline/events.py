"""
pipeline.events — Stage state machine, progress events and failure types.

Stages advance one way only::

    IDLE -> NORMALIZING -> RECOGNIZING -> EXTRACTING -> VALIDATING -> SUCCEEDED
      \\________________________\\______________\\____________\\-> FAILED

``SUCCEEDED`` and ``FAILED`` are terminal.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from extraction.models import ExtractedReceipt
    from validation.models import ValidationResult

    from .mapping import ReceiptRecord


class Stage(enum.Enum):
    IDLE = "idle"
    NORMALIZING = "normalizing"
    RECOGNIZING = "recognizing"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.SUCCEEDED, Stage.FAILED)


_NEXT = {
    Stage.IDLE: Stage.NORMALIZING,
    Stage.NORMALIZING: Stage.RECOGNIZING,
    Stage.RECOGNIZING: Stage.EXTRACTING,
    Stage.EXTRACTING: Stage.VALIDATING,
    Stage.VALIDATING: Stage.SUCCEEDED,
}

# Fraction of the job complete on entering a stage
STAGE_PROGRESS = {
    Stage.IDLE: 0.0,
    Stage.NORMALIZING: 0.1,
    Stage.RECOGNIZING: 0.3,
    Stage.EXTRACTING: 0.7,
    Stage.VALIDATING: 0.9,
    Stage.SUCCEEDED: 1.0,
    Stage.FAILED: 1.0,
}


class IllegalTransition(RuntimeError):
    pass


class PipelineStateMachine:
    def __init__(self) -> None:
        self.stage = Stage.IDLE
        self.history: List[Stage] = [Stage.IDLE]

    def can_advance(self, target: Stage) -> bool:
        if self.stage.is_terminal:
            return False
        return target is Stage.FAILED or _NEXT.get(self.stage) is target

    def advance(self, target: Stage) -> Stage:
        if not self.can_advance(target):
            raise IllegalTransition(f"cannot move from {self.stage.name} to {target.name}")
        self.stage = target
        self.history.append(target)
        return target


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class FailureKind(enum.Enum):
    INPUT = "input"
    NORMALIZATION = "normalization"
    RECOGNITION = "recognition"
    CANCELLED = "cancelled"
    UNEXPECTED = "unexpected"


class PipelineError(Exception):
    """Typed cause of a failed job; ``transient`` marks retryable failures."""

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        transient: bool = False,
        stage: Optional[Stage] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.transient = transient
        self.stage = stage

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.name,
            "message": self.message,
            "transient": self.transient,
            "stage": self.stage.name if self.stage else None,
        }


class CancellationToken:
    """Thread-safe flag checked by the orchestrator between stages."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


# ---------------------------------------------------------------------------
# Results / events
# ---------------------------------------------------------------------------

@dataclass
class PipelineOutcome:
    """Terminal result of one job: either receipt + validation, or an error."""

    receipt: Optional["ExtractedReceipt"] = None
    validation: Optional["ValidationResult"] = None
    record: Optional["ReceiptRecord"] = None
    error: Optional[PipelineError] = None
    normalization: Dict[str, Any] = field(default_factory=dict)
    timing_ms: Dict[str, float] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.receipt is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "receipt": self.receipt.to_dict() if self.receipt else None,
            "validation": self.validation.to_dict() if self.validation else None,
            "record": self.record.to_dict() if self.record else None,
            "error": self.error.to_dict() if self.error else None,
            "normalization": self.normalization,
            "timing_ms": self.timing_ms,
        }


@dataclass(frozen=True)
class PipelineEvent:
    stage: Stage
    progress: float
    message: str = ""
    outcome: Optional[PipelineOutcome] = None

    @property
    def is_terminal(self) -> bool:
        return self.stage.is_terminal
