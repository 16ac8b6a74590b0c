"""
Batch Models
============

Training batches handed to the training interface, and what came back.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from pydantic import BaseModel, Field


@dataclass(frozen=True, slots=True)
class Batch:
    """
    Contiguous slice of the frame store, stacked for training.

    Attributes:
        index: Zero-based position of this batch in the run
        frames: float32 array (N, H, W, 3)
        labels: float32 one-hot array (N, C), C = final vocabulary size
    """

    index: int
    frames: np.ndarray
    labels: np.ndarray

    @property
    def size(self) -> int:
        """Number of pairs in this batch."""
        return int(self.frames.shape[0])

    @property
    def num_classes(self) -> int:
        """Width of the one-hot label vectors."""
        return int(self.labels.shape[1])

    def __repr__(self) -> str:
        return (
            f"Batch(index={self.index}, "
            f"frames={self.frames.shape}, "
            f"labels={self.labels.shape})"
        )


class EpochMetrics(BaseModel):
    """Metrics reported by the trainer at the end of one epoch."""

    epoch: int = Field(..., ge=1, description="One-based epoch number")
    loss: float = Field(..., description="Training loss")
    accuracy: float = Field(..., ge=0.0, le=1.0, description="Training accuracy")
    val_loss: Optional[float] = Field(default=None, description="Validation loss")
    val_accuracy: Optional[float] = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Validation accuracy",
    )


class TrainingReport(BaseModel):
    """Per-epoch metrics for one batch."""

    epochs: List[EpochMetrics] = Field(default_factory=list)

    @property
    def final(self) -> Optional[EpochMetrics]:
        """Metrics of the last epoch, if any."""
        return self.epochs[-1] if self.epochs else None


class BatchResult(BaseModel):
    """Training outcome of one batch."""

    batch_index: int = Field(..., ge=0)
    size: int = Field(..., ge=1)
    report: Optional[TrainingReport] = Field(
        default=None,
        description="None when no trainer consumed the batch (dry run)",
    )
