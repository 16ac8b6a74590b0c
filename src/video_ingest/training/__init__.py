"""
Training Module
===============

The training collaborator that consumes assembled batches.

    - Trainer: Protocol the batch assembler calls
    - TorchTrainer: Reference CNN backend
"""

from video_ingest.training.interface import Trainer
from video_ingest.training.torch_trainer import FrameClassifier, TorchTrainer


__all__ = [
    "Trainer",
    "TorchTrainer",
    "FrameClassifier",
]
