"""
Data Models
===========

Typed values passed between pipeline stages.

Models:
    Manifest:
        - Split: train/test marker
        - ManifestRow: One manifest record
    Frames:
        - FramePair: Decoded frame + label
    Outcomes:
        - ItemStatus, ItemOutcome: Per-video result
    Batches:
        - Batch: Stacked frames + one-hot labels
        - EpochMetrics, TrainingReport, BatchResult: Trainer output
"""

from video_ingest.models.manifest import ManifestRow, Split
from video_ingest.models.frame import FramePair
from video_ingest.models.outcome import ItemOutcome, ItemStatus
from video_ingest.models.batch import Batch, BatchResult, EpochMetrics, TrainingReport

__all__ = [
    # Manifest
    "Split",
    "ManifestRow",
    # Frames
    "FramePair",
    # Outcomes
    "ItemStatus",
    "ItemOutcome",
    # Batches
    "Batch",
    "EpochMetrics",
    "TrainingReport",
    "BatchResult",
]
