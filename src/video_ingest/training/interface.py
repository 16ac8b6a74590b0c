"""
Training Interface
==================

Protocol for the external training collaborator.

The pipeline hands it one batch at a time and awaits the result before
assembling the next one. Anything raised from train_batch is wrapped in
TrainingError by the batch assembler and ends the run.
"""

from typing import Protocol

from video_ingest.config import TrainingConfig
from video_ingest.models.batch import Batch, TrainingReport


class Trainer(Protocol):
    """
    Protocol for training backends.

    Implementations:
        - TorchTrainer: Small CNN trained with PyTorch
    """

    async def train_batch(self, batch: Batch, config: TrainingConfig) -> TrainingReport:
        """
        Fit the model on one batch.

        Args:
            batch: Stacked frames and one-hot labels
            config: Epoch count, validation split, batch size

        Returns:
            Per-epoch metrics
        """
        ...
