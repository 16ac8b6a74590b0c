"""
Ingestion Pipeline
==================

Wires every stage together for one run.

    ManifestReader -> IngestionQueue -> VideoWorker (x K) -> FrameExtractor
                                                          -> FrameStore
    CompletionDetector watches the queue -> BatchAssembler -> Trainer

Phases:
    1. Ingestion: rows are read and processed concurrently; vocabulary and
       store grow
    2. Drain: reader finished, nothing pending, nothing in flight
    3. Assembly: store sealed, vocabulary frozen, batches trained in order

Per-item failures shrink the dataset but never stop the run. Structural
errors and trainer errors end it.
"""

import logging
import time
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from video_ingest.batching.assembler import BatchAssembler
from video_ingest.config import Settings
from video_ingest.extraction.decoder import FFmpegDecoder
from video_ingest.extraction.frame_extractor import FrameExtractor
from video_ingest.ingestion.completion import CompletionDetector
from video_ingest.ingestion.paths import PathResolver, SplitPathResolver
from video_ingest.ingestion.queue import IngestionQueue
from video_ingest.ingestion.store import FrameStore
from video_ingest.ingestion.vocabulary import LabelVocabulary
from video_ingest.ingestion.worker import VideoWorker
from video_ingest.manifest.reader import ManifestReader
from video_ingest.models.batch import BatchResult
from video_ingest.training.interface import Trainer


logger = logging.getLogger(__name__)


class FailedItem(BaseModel):
    """One video that produced no pairs."""

    identifier: str
    error: str = ""


class RunSummary(BaseModel):
    """Outcome of one pipeline run."""

    rows_read: int = Field(default=0, ge=0, description="Valid manifest rows")
    rows_skipped: int = Field(default=0, ge=0, description="Malformed manifest rows")
    items_succeeded: int = Field(default=0, ge=0)
    items_failed: int = Field(default=0, ge=0)
    failed_items: List[FailedItem] = Field(
        default_factory=list,
        description="Failed videos in settle order; repeated identifiers kept",
    )
    total_pairs: int = Field(default=0, ge=0, description="Frame/label pairs stored")
    vocabulary: Dict[str, int] = Field(default_factory=dict)
    batches: List[BatchResult] = Field(default_factory=list)
    ingest_seconds: float = Field(default=0.0, ge=0)
    train_seconds: float = Field(default=0.0, ge=0)

    @property
    def batch_count(self) -> int:
        return len(self.batches)

    @property
    def failed_identifiers(self) -> List[str]:
        return [item.identifier for item in self.failed_items]


class IngestionPipeline:
    """
    One-shot ingestion + batching run.

    Every collaborator can be injected; defaults are built from settings.

    Attributes:
        settings: Full configuration
        vocabulary: Growing label vocabulary
        store: Frame store
        queue: Ingestion queue
        detector: Drain detector

    Example:
        pipeline = IngestionPipeline(settings, trainer=TorchTrainer())
        summary = await pipeline.run()
        print(summary.total_pairs, summary.batch_count)
    """

    def __init__(
        self,
        settings: Settings,
        trainer: Optional[Trainer] = None,
        extractor: Optional[FrameExtractor] = None,
        resolve_path: Optional[PathResolver] = None,
        reader: Optional[ManifestReader] = None,
    ) -> None:
        self.settings = settings
        self.trainer = trainer

        self.extractor = extractor or FrameExtractor(
            FFmpegDecoder(
                ffmpeg_path=settings.extraction.ffmpeg_path,
                image_pattern=settings.extraction.image_pattern,
                timeout_seconds=settings.extraction.timeout_seconds,
            ),
            output_size=(
                settings.extraction.output_height,
                settings.extraction.output_width,
            ),
            scratch_dir=settings.extraction.scratch_dir,
        )
        self.resolve_path = resolve_path or SplitPathResolver.from_config(settings.videos)
        self.reader = reader or ManifestReader(settings.manifest.path, settings.manifest)

        self.vocabulary = LabelVocabulary()
        self.store = FrameStore()
        self.worker = VideoWorker(
            extractor=self.extractor,
            store=self.store,
            vocabulary=self.vocabulary,
            resolve_path=self.resolve_path,
            frame_rate=settings.extraction.frame_rate,
        )
        self.queue = IngestionQueue(
            self.worker.process,
            concurrency=settings.ingestion.concurrency,
            max_pending=settings.ingestion.max_pending,
        )
        self.detector = CompletionDetector(self.queue)
        self.assembler = BatchAssembler(batch_size=settings.training.batch_size)

    async def ingest(self) -> None:
        """
        Run phase 1 and wait for drain.

        Raises:
            ManifestSourceError: If the manifest can't be read
            PipelineStateError: If a worker broke a pipeline invariant
        """
        self.queue.start()
        try:
            try:
                await self.reader.feed(self.queue)
            finally:
                self.detector.reader_finished()
            await self.detector.wait()
        finally:
            await self.queue.shutdown()

        if self.queue.fatal_error is not None:
            raise self.queue.fatal_error

    async def run(self) -> RunSummary:
        """
        Ingest, drain, then assemble and train.

        Returns:
            RunSummary

        Raises:
            ManifestSourceError, PipelineStateError, TrainingError
        """
        logger.info(
            f"Starting run: manifest={self.reader.path}, "
            f"concurrency={self.queue.concurrency}, "
            f"batch_size={self.assembler.batch_size}"
        )

        started = time.monotonic()
        await self.ingest()
        ingest_seconds = time.monotonic() - started

        self.store.seal()
        frozen = self.vocabulary.freeze()
        pairs = self.store.snapshot()

        logger.info(
            f"Ingestion complete in {ingest_seconds:.1f}s: "
            f"{len(self.queue.succeeded)} videos ok, {len(self.queue.failed)} failed, "
            f"{len(pairs)} pairs, {len(frozen)} labels"
        )

        started = time.monotonic()
        batches = await self.assembler.run(
            pairs, frozen, self.trainer, self.settings.training
        )
        train_seconds = time.monotonic() - started

        logger.info(f"Training complete: {len(batches)} batches in {train_seconds:.1f}s")

        return RunSummary(
            rows_read=self.reader.rows_read,
            rows_skipped=self.reader.rows_skipped,
            items_succeeded=len(self.queue.succeeded),
            items_failed=len(self.queue.failed),
            failed_items=[
                FailedItem(identifier=o.identifier, error=o.error or "")
                for o in self.queue.failed
            ],
            total_pairs=len(pairs),
            vocabulary=frozen.to_dict(),
            batches=batches,
            ingest_seconds=ingest_seconds,
            train_seconds=train_seconds,
        )

    def get_metrics(self) -> dict:
        """Combined component metrics."""
        return {
            "reader": self.reader.metrics(),
            "queue": self.queue.metrics(),
            "store": self.store.metrics(),
            "extractor": self.extractor.get_metrics(),
            "vocabulary_size": self.vocabulary.size(),
        }
