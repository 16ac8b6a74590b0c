"""
Batch Assembler
===============

Slices the sealed frame store into fixed-size batches and hands them to
the trainer one at a time.

Design Rules:
    - Runs only after drain, against a FrozenVocabulary
    - Contiguous slices of batch_size pairs; the last may be shorter
    - Strictly sequential: the next batch is built only after the trainer
      returns for the previous one
    - A trainer failure ends the run (TrainingError); no retry
"""

import logging
import math
from typing import Iterator, List, Optional, Sequence

import numpy as np

from video_ingest.config import TrainingConfig
from video_ingest.errors import TrainingError
from video_ingest.ingestion.vocabulary import FrozenVocabulary
from video_ingest.models.batch import Batch, BatchResult
from video_ingest.models.frame import FramePair
from video_ingest.training.interface import Trainer


logger = logging.getLogger(__name__)


class BatchAssembler:
    """
    Fixed-size batch slicing + sequential trainer handoff.

    Attributes:
        batch_size: Pairs per batch

    Example:
        assembler = BatchAssembler(batch_size=32)
        results = await assembler.run(store.snapshot(), vocabulary.freeze(),
                                      trainer, settings.training)
    """

    def __init__(self, batch_size: int = 32) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.batch_size = batch_size

    def batch_count(self, total: int) -> int:
        """Number of batches for `total` pairs: ceil(total / batch_size)."""
        return math.ceil(total / self.batch_size)

    def iter_batches(
        self,
        pairs: Sequence[FramePair],
        vocabulary: FrozenVocabulary,
    ) -> Iterator[Batch]:
        """
        Lazily build batches from `pairs`.

        Raises:
            UnknownLabelError: If a pair's label is not in the vocabulary
        """
        for index, start in enumerate(range(0, len(pairs), self.batch_size)):
            chunk = pairs[start:start + self.batch_size]
            frames = np.stack([pair.frame for pair in chunk]).astype(np.float32)
            labels = vocabulary.encode(pair.label for pair in chunk)
            yield Batch(index=index, frames=frames, labels=labels)

    async def run(
        self,
        pairs: Sequence[FramePair],
        vocabulary: FrozenVocabulary,
        trainer: Optional[Trainer],
        config: TrainingConfig,
    ) -> List[BatchResult]:
        """
        Assemble every batch and train on each in order.

        Args:
            pairs: Sealed store contents
            vocabulary: Frozen vocabulary
            trainer: Training backend, or None to only assemble (dry run)
            config: Passed through to the trainer

        Returns:
            One BatchResult per batch

        Raises:
            TrainingError: If the trainer fails on any batch
        """
        total = self.batch_count(len(pairs))
        logger.info(
            f"Assembling {total} batches from {len(pairs)} pairs "
            f"(batch_size={self.batch_size}, classes={len(vocabulary)})"
        )

        results: List[BatchResult] = []
        for batch in self.iter_batches(pairs, vocabulary):
            logger.info(f"Batch {batch.index + 1}/{total}: {batch!r}")

            report = None
            if trainer is not None:
                try:
                    report = await trainer.train_batch(batch, config)
                except Exception as e:
                    logger.error(f"Training failed on batch {batch.index}: {e}")
                    raise TrainingError(batch.index, e) from e

            results.append(BatchResult(
                batch_index=batch.index,
                size=batch.size,
                report=report,
            ))

        return results
