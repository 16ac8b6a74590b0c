"""
Error Hierarchy
===============

Exceptions raised by the ingestion pipeline.

Two families matter to the run:
    - ItemError: one video failed (bad dimensions, decode failure). The
      queue logs it, records the failure and keeps going.
    - PipelineStateError: an ordering invariant was broken (encoding before
      drain, adding labels after freeze). Always fatal.

TrainingError and ManifestSourceError are fatal as well.
"""

from typing import Optional


class IngestError(Exception):
    """Base class for all pipeline errors."""
    pass


# =============================================================================
# Per-item errors (isolated)
# =============================================================================

class ManifestRowError(IngestError):
    """Raised when a manifest record cannot be turned into a ManifestRow."""

    def __init__(self, message: str, line_number: Optional[int] = None) -> None:
        self.line_number = line_number
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)


class ItemError(IngestError):
    """Raised when a single video cannot be ingested."""

    def __init__(self, identifier: str, message: str) -> None:
        self.identifier = identifier
        super().__init__(f"{identifier}: {message}")


class DimensionError(ItemError):
    """Declared height or width is not a positive integer."""
    pass


class DecodeError(ItemError):
    """External decoder failed or produced no usable frames."""
    pass


# =============================================================================
# Fatal errors
# =============================================================================

class ManifestSourceError(IngestError):
    """Manifest source is missing, unreadable or lacks required columns."""
    pass


class PipelineStateError(IngestError):
    """An ordering or ownership invariant of the pipeline was violated."""
    pass


class UnknownLabelError(PipelineStateError):
    """Encoding requested for a label the vocabulary never saw."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"unknown label: {label!r}")


class VocabularyFrozenError(PipelineStateError):
    """Label added after the vocabulary was frozen."""
    pass


class StoreStateError(PipelineStateError):
    """Frame store used out of phase (append after seal, read before seal)."""
    pass


class QueueInvariantError(PipelineStateError):
    """In-flight count exceeded the configured concurrency limit."""
    pass


class TrainingError(IngestError):
    """Training interface failed for a batch."""

    def __init__(self, batch_index: int, cause: BaseException) -> None:
        self.batch_index = batch_index
        self.cause = cause
        super().__init__(f"training failed on batch {batch_index}: {cause}")
