"""
Extraction Module
=================

Video decoding and frame read-back.

    - VideoDecoder: Protocol for the external decoder
    - FFmpegDecoder: ffmpeg subprocess backend
    - FrameExtractor: Scoped decode + read-back + resize

Example:
    from video_ingest.extraction import FFmpegDecoder, FrameExtractor

    extractor = FrameExtractor(FFmpegDecoder(), output_size=(480, 640))
    frames = await extractor.extract(path, 3.0, 640, 480)
"""

from video_ingest.extraction.decoder import FFmpegDecoder, VideoDecoder
from video_ingest.extraction.frame_extractor import FrameExtractor


__all__ = [
    "VideoDecoder",
    "FFmpegDecoder",
    "FrameExtractor",
]
