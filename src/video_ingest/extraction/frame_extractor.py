"""
Frame Extractor
===============

Turns one video into a list of RGB frames at the pipeline output resolution.

Steps per call:
    1. Create a private scratch directory
    2. Run the decoder into it (sample rate + declared resolution)
    3. Read every image back in file-name order
    4. Resize each image to the global output resolution
    5. Delete the scratch directory

Design Rules:
    - Each call gets its own scratch directory; concurrent calls never
      see each other's files
    - The scratch directory is removed on success and on failure
    - Within one video, frame order is the decoder's order
"""

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import cv2
import numpy as np

from video_ingest.errors import DecodeError
from video_ingest.extraction.decoder import VideoDecoder


logger = logging.getLogger(__name__)


_IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".bmp"}


class FrameExtractor:
    """
    Scoped decode + read-back of video frames.

    Attributes:
        decoder: Backend that writes image files
        output_size: (height, width) of every returned frame
        scratch_dir: Parent directory for scratch dirs (None = system temp)

    Example:
        extractor = FrameExtractor(FFmpegDecoder(), output_size=(480, 640))
        frames = await extractor.extract(Path("a.mp4"), 3.0, 640, 480)
    """

    def __init__(
        self,
        decoder: VideoDecoder,
        output_size: Tuple[int, int] = (480, 640),
        scratch_dir: Optional[str] = None,
    ) -> None:
        """
        Initialize frame extractor.

        Args:
            decoder: VideoDecoder implementation
            output_size: (height, width) of returned frames. Both >= 1.
            scratch_dir: Created if it doesn't exist
        """
        if output_size[0] < 1 or output_size[1] < 1:
            raise ValueError("output_size must be positive")

        self.decoder = decoder
        self.output_size = output_size
        self.scratch_dir = scratch_dir
        if scratch_dir is not None:
            Path(scratch_dir).mkdir(parents=True, exist_ok=True)

        self._calls: int = 0
        self._failures: int = 0
        self._frames_extracted: int = 0

    async def extract(
        self,
        source: Path,
        frame_rate: float,
        width: int,
        height: int,
    ) -> List[np.ndarray]:
        """
        Decode `source` and return its frames.

        Args:
            source: Video file
            frame_rate: Sampling rate passed to the decoder
            width: Declared width used for the decode step
            height: Declared height used for the decode step

        Returns:
            RGB uint8 frames (H, W, 3) at output_size, in decoder order.
            May be empty if the decoder produced nothing.

        Raises:
            DecodeError: If the video is missing, the decoder fails or an
                image can't be read back
        """
        self._calls += 1
        logger.info(f"Extracting frames from: {source}")

        if not source.exists():
            self._failures += 1
            raise DecodeError(source.name, f"video file not found: {source}")

        # Directory creation and removal touch the filesystem; keep them off the loop
        scratch = await asyncio.to_thread(
            tempfile.TemporaryDirectory, prefix="frames_", dir=self.scratch_dir
        )
        try:
            scratch_path = Path(scratch.name)
            await self.decoder.decode(
                source, scratch_path, frame_rate, width, height
            )
            frames = await asyncio.to_thread(
                lambda: list(self.iter_frames(scratch_path))
            )
        except DecodeError:
            self._failures += 1
            raise
        finally:
            await asyncio.to_thread(scratch.cleanup)

        self._frames_extracted += len(frames)
        logger.info(f"Extracted {len(frames)} frames from {source}")
        return frames

    def iter_frames(self, directory: Path) -> Iterator[np.ndarray]:
        """
        Lazily read back decoded images from `directory`.

        Files are visited in lexicographic name order, which is frame order
        for zero-padded decoder output.

        Raises:
            DecodeError: If an image can't be decoded
        """
        files = sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix.lower() in _IMAGE_SUFFIXES
        )
        for path in files:
            yield self.load_frame(path)

    def load_frame(self, path: Path) -> np.ndarray:
        """
        Decode one image file to an RGB array at output_size.

        Raises:
            DecodeError: If OpenCV can't decode the file
        """
        bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if bgr is None:
            raise DecodeError(path.name, "cv2.imread returned None")

        if len(bgr.shape) != 3 or bgr.shape[2] != 3:
            raise DecodeError(path.name, f"invalid image shape {bgr.shape}")

        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)

        out_h, out_w = self.output_size
        if rgb.shape[:2] != (out_h, out_w):
            # cv2 takes (width, height)
            rgb = cv2.resize(rgb, (out_w, out_h), interpolation=cv2.INTER_LINEAR)

        return rgb

    def get_metrics(self) -> dict:
        """Extractor counters for observability."""
        return {
            "calls": self._calls,
            "failures": self._failures,
            "frames_extracted": self._frames_extracted,
            "output_size": self.output_size,
        }
