"""
Torch Trainer
=============

Reference training backend: a small convolutional classifier.

Model:
    Conv2d(3 -> 32, 3x3) -> ReLU -> MaxPool(2)
    -> Flatten -> Linear(128) -> ReLU -> Linear(num_classes)

Each batch is split into a training part and a held-out validation part
(validation_split of the batch, taken from the end), then fitted for
`epochs` epochs with Adam and cross-entropy against the one-hot labels.

The model is built lazily from the first batch: input shape from the
frames, output width from the label vectors (final vocabulary size).
"""

import asyncio
import logging
from typing import Optional, Tuple

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F
from torch.utils.data import DataLoader, TensorDataset

from video_ingest.config import TrainingConfig
from video_ingest.models.batch import Batch, EpochMetrics, TrainingReport


logger = logging.getLogger(__name__)


class FrameClassifier(nn.Module):
    """Single-conv-layer frame classifier."""

    def __init__(self, height: int, width: int, num_classes: int) -> None:
        super().__init__()
        if height < 4 or width < 4:
            raise ValueError(f"frames too small for the classifier: {height}x{width}")

        self.features = nn.Sequential(
            nn.Conv2d(3, 32, kernel_size=3),
            nn.ReLU(),
            nn.MaxPool2d(2),
        )
        flat = 32 * ((height - 2) // 2) * ((width - 2) // 2)
        self.head = nn.Sequential(
            nn.Flatten(),
            nn.Linear(flat, 128),
            nn.ReLU(),
            nn.Linear(128, num_classes),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.head(self.features(x))


def split_validation(size: int, validation_split: float) -> int:
    """
    Number of samples held out for validation.

    Always leaves at least one training sample; a single-sample batch
    gets no validation.
    """
    if size < 2 or validation_split <= 0:
        return 0
    held_out = int(round(size * validation_split))
    return max(0, min(held_out, size - 1))


class TorchTrainer:
    """
    PyTorch implementation of the Trainer protocol.

    Attributes:
        device: Torch device
        model: Built on the first batch
        batches_seen: Batches trained so far

    Example:
        trainer = TorchTrainer(device="cpu", seed=0)
        report = await trainer.train_batch(batch, settings.training)
    """

    def __init__(self, device: str = "cpu", seed: Optional[int] = None) -> None:
        self.device = torch.device(device)
        self.seed = seed
        self.model: Optional[FrameClassifier] = None
        self.optimizer: Optional[torch.optim.Optimizer] = None
        self._input_shape: Optional[Tuple[int, int, int]] = None
        self._num_classes: Optional[int] = None
        self.batches_seen: int = 0

        if seed is not None:
            torch.manual_seed(seed)

    async def train_batch(self, batch: Batch, config: TrainingConfig) -> TrainingReport:
        """Fit on one batch in a worker thread."""
        return await asyncio.to_thread(self._fit, batch, config)

    def _ensure_model(self, batch: Batch, config: TrainingConfig) -> None:
        shape = tuple(batch.frames.shape[1:])
        if self.model is None:
            height, width, channels = shape
            if channels != 3:
                raise ValueError(f"expected 3-channel frames, got {channels}")
            self.model = FrameClassifier(height, width, batch.num_classes).to(self.device)
            self.optimizer = torch.optim.Adam(
                self.model.parameters(), lr=config.learning_rate
            )
            self._input_shape = shape
            self._num_classes = batch.num_classes
            logger.info(
                f"Built FrameClassifier: input={height}x{width}x3, "
                f"classes={batch.num_classes}, device={self.device}"
            )
            return

        if shape != self._input_shape or batch.num_classes != self._num_classes:
            raise ValueError(
                f"batch {batch.index} shape {shape}/{batch.num_classes} classes does not "
                f"match model {self._input_shape}/{self._num_classes} classes"
            )

    def _to_tensors(self, frames: np.ndarray, labels: np.ndarray) -> Tuple[torch.Tensor, torch.Tensor]:
        # NHWC uint8-range -> NCHW [0, 1]
        x = torch.from_numpy(np.ascontiguousarray(frames)).permute(0, 3, 1, 2) / 255.0
        y = torch.from_numpy(np.ascontiguousarray(labels))
        return x.float(), y.float()

    def _fit(self, batch: Batch, config: TrainingConfig) -> TrainingReport:
        self._ensure_model(batch, config)
        assert self.model is not None and self.optimizer is not None

        x, y = self._to_tensors(batch.frames, batch.labels)
        held_out = split_validation(batch.size, config.validation_split)
        train_end = batch.size - held_out

        loader = DataLoader(
            TensorDataset(x[:train_end], y[:train_end]),
            batch_size=config.batch_size,
            shuffle=True,
        )
        val_x, val_y = x[train_end:], y[train_end:]

        report = TrainingReport()
        for epoch in range(1, config.epochs + 1):
            self.model.train()
            total_loss = 0.0
            correct = 0
            seen = 0
            for xb, yb in loader:
                xb, yb = xb.to(self.device), yb.to(self.device)
                self.optimizer.zero_grad()
                logits = self.model(xb)
                loss = F.cross_entropy(logits, yb)
                loss.backward()
                self.optimizer.step()

                total_loss += loss.item() * xb.shape[0]
                correct += (logits.argmax(dim=1) == yb.argmax(dim=1)).sum().item()
                seen += xb.shape[0]

            metrics = EpochMetrics(
                epoch=epoch,
                loss=total_loss / seen,
                accuracy=correct / seen,
            )
            if held_out:
                val_loss, val_acc = self._evaluate(val_x, val_y)
                metrics.val_loss = val_loss
                metrics.val_accuracy = val_acc

            report.epochs.append(metrics)
            logger.info(
                f"Batch {batch.index} epoch {epoch} finished. "
                f"Accuracy: {metrics.accuracy:.4f}, Loss: {metrics.loss:.4f}"
            )

        self.batches_seen += 1
        return report

    @torch.no_grad()
    def _evaluate(self, x: torch.Tensor, y: torch.Tensor) -> Tuple[float, float]:
        assert self.model is not None
        self.model.eval()
        x, y = x.to(self.device), y.to(self.device)
        logits = self.model(x)
        loss = F.cross_entropy(logits, y).item()
        accuracy = (logits.argmax(dim=1) == y.argmax(dim=1)).float().mean().item()
        return loss, accuracy
