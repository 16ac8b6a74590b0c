"""
Ingestion Module
================

Concurrent video ingestion into shared in-memory state.

    - LabelVocabulary / FrozenVocabulary: Label discovery and encoding
    - FrameStore: Append-only frame/label accumulation
    - SplitPathResolver: Manifest row -> video file
    - VideoWorker: One row end to end
    - IngestionQueue: Bounded-concurrency worker pool
    - CompletionDetector: One-shot drain signal

Example:
    queue = IngestionQueue(worker.process, concurrency=3)
    detector = CompletionDetector(queue)
    queue.start()

    await reader.feed(queue)
    detector.reader_finished()
    await detector.wait()
"""

from video_ingest.ingestion.vocabulary import FrozenVocabulary, LabelVocabulary
from video_ingest.ingestion.store import FrameStore
from video_ingest.ingestion.paths import PathResolver, SplitPathResolver
from video_ingest.ingestion.worker import VideoWorker, parse_dimension
from video_ingest.ingestion.queue import IngestionQueue
from video_ingest.ingestion.completion import CompletionDetector


__all__ = [
    "LabelVocabulary",
    "FrozenVocabulary",
    "FrameStore",
    "PathResolver",
    "SplitPathResolver",
    "VideoWorker",
    "parse_dimension",
    "IngestionQueue",
    "CompletionDetector",
]
