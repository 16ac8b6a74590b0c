"""
Video Worker
============

Processes one manifest row end to end.

Steps:
    1. Resolve the video path from split + identifier
    2. Trim the label and register it in the vocabulary
    3. Validate declared height/width
    4. Extract frames at the configured rate and declared resolution
    5. Append every (frame, label) pair to the store

The label is registered before extraction, so the vocabulary reflects the
manifest even when a video later fails to decode.
"""

import logging

from video_ingest.errors import DecodeError, DimensionError
from video_ingest.extraction.frame_extractor import FrameExtractor
from video_ingest.ingestion.paths import PathResolver
from video_ingest.ingestion.store import FrameStore
from video_ingest.ingestion.vocabulary import LabelVocabulary
from video_ingest.models.frame import FramePair
from video_ingest.models.manifest import ManifestRow


logger = logging.getLogger(__name__)


def parse_dimension(identifier: str, name: str, raw: str) -> int:
    """
    Parse a declared dimension.

    Raises:
        DimensionError: If `raw` is not a positive integer
    """
    try:
        value = int(raw.strip())
    except (AttributeError, ValueError):
        raise DimensionError(identifier, f"invalid {name} {raw!r}")
    if value <= 0:
        raise DimensionError(identifier, f"{name} must be positive, got {value}")
    return value


class VideoWorker:
    """
    Turns a ManifestRow into stored frame/label pairs.

    Attributes:
        extractor: Frame extractor
        store: Shared frame store
        vocabulary: Shared growing vocabulary
        resolve_path: ManifestRow -> video Path
        frame_rate: Sampling rate for every video

    Example:
        worker = VideoWorker(extractor, store, vocabulary, resolver, frame_rate=3.0)
        count = await worker.process(row)
    """

    def __init__(
        self,
        extractor: FrameExtractor,
        store: FrameStore,
        vocabulary: LabelVocabulary,
        resolve_path: PathResolver,
        frame_rate: float = 3.0,
    ) -> None:
        if frame_rate <= 0:
            raise ValueError("frame_rate must be positive")

        self.extractor = extractor
        self.store = store
        self.vocabulary = vocabulary
        self.resolve_path = resolve_path
        self.frame_rate = frame_rate

    async def process(self, row: ManifestRow) -> int:
        """
        Ingest one video.

        Returns:
            Number of pairs appended to the store

        Raises:
            DimensionError: If declared dimensions are invalid
            DecodeError: If extraction fails or yields no frames
        """
        logger.info(f"Processing video: {row.identifier}")
        video_path = self.resolve_path(row)

        label = row.label.strip()
        if not label:
            logger.warning(f"Empty label for video {row.identifier}")
        self.vocabulary.add(label)

        height = parse_dimension(row.identifier, "height", row.height)
        width = parse_dimension(row.identifier, "width", row.width)

        frames = await self.extractor.extract(
            video_path, self.frame_rate, width, height
        )
        if not frames:
            raise DecodeError(row.identifier, "no frames extracted")

        size = self.store.append([FramePair(frame, label) for frame in frames])

        logger.info(
            f"Processed video: {row.identifier}, label={label!r}, "
            f"frames={len(frames)}, store size={size}"
        )
        return len(frames)

    async def __call__(self, row: ManifestRow) -> int:
        return await self.process(row)
