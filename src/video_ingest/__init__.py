"""
video-ingest
============

Concurrent ingestion of a labeled video dataset into training batches.

A manifest lists videos with a label, declared resolution and split. Each
video is decoded by ffmpeg into frames, the frames are accumulated with
their labels, and once every video has been processed the accumulated
pairs are sliced into fixed-size batches with one-hot labels and handed to
a trainer.

Components:
    - manifest: Streaming manifest reader
    - extraction: ffmpeg decoder + frame read-back
    - ingestion: Vocabulary, frame store, worker, queue, drain detection
    - batching: Batch assembly and trainer handoff
    - training: Trainer protocol + PyTorch reference trainer

Example:
    from video_ingest.config import load_config
    from video_ingest.pipeline import IngestionPipeline
    from video_ingest.training import TorchTrainer

    summary = asyncio.run(IngestionPipeline(load_config(), TorchTrainer()).run())
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
