from .events import (
    CancellationToken,
    FailureKind,
    IllegalTransition,
    PipelineError,
    PipelineEvent,
    PipelineOutcome,
    PipelineStateMachine,
    Stage,
)
from .mapping import ReceiptRecord, to_record
from .orchestrator import ReceiptPipeline, run_jobs

__all__ = [
    "CancellationToken",
    "FailureKind",
    "IllegalTransition",
    "PipelineError",
    "PipelineEvent",
    "PipelineOutcome",
    "PipelineStateMachine",
    "ReceiptPipeline",
    "ReceiptRecord",
    "Stage",
    "run_jobs",
    "to_record",
]
