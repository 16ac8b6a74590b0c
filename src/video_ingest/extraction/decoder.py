"""
Video Decoder
=============

Wrapper around the external decoding process.

The decoder samples a video at a fixed rate, resizes every sampled frame
and writes one image file per frame into a directory it is given. It does
not read anything back; that is the frame extractor's job.

Implementations:
    - FFmpegDecoder: Runs the ffmpeg CLI as a subprocess
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Protocol

from video_ingest.errors import DecodeError


logger = logging.getLogger(__name__)


class VideoDecoder(Protocol):
    """
    Protocol for decoder backends.

    Implementations write image files named so that lexicographic order
    equals frame order, and raise DecodeError on failure.
    """

    async def decode(
        self,
        source: Path,
        output_dir: Path,
        frame_rate: float,
        width: int,
        height: int,
    ) -> None:
        """
        Decode `source` into image files under `output_dir`.

        Args:
            source: Video file
            output_dir: Existing, empty directory owned by the caller
            frame_rate: Frames sampled per second of video
            width: Output width of each written image
            height: Output height of each written image

        Raises:
            DecodeError: If decoding fails
        """
        ...


class FFmpegDecoder:
    """
    Decoder backed by the ffmpeg command line tool.

    Attributes:
        ffmpeg_path: Executable name or path
        image_pattern: printf-style output name with a zero-padded index
        timeout_seconds: Kill ffmpeg after this long (None = no limit)

    Example:
        decoder = FFmpegDecoder(ffmpeg_path="/usr/bin/ffmpeg")
        await decoder.decode(Path("a.mp4"), Path(tmp), 3.0, 640, 480)
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        image_pattern: str = "frame_%04d.jpg",
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.image_pattern = image_pattern
        self.timeout_seconds = timeout_seconds

    def build_command(
        self,
        source: Path,
        output_dir: Path,
        frame_rate: float,
        width: int,
        height: int,
    ) -> list:
        """Build the ffmpeg argument vector."""
        return [
            self.ffmpeg_path,
            "-hide_banner",
            "-loglevel", "error",
            "-nostdin",
            "-y",
            "-i", str(source),
            "-vf", f"fps={frame_rate:g}",
            "-s", f"{width}x{height}",
            str(output_dir / self.image_pattern),
        ]

    async def decode(
        self,
        source: Path,
        output_dir: Path,
        frame_rate: float,
        width: int,
        height: int,
    ) -> None:
        """Run ffmpeg and wait for it to finish."""
        cmd = self.build_command(source, output_dir, frame_rate, width, height)
        logger.debug(f"Running decoder: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise DecodeError(
                source.name,
                f"ffmpeg executable not found: {self.ffmpeg_path}",
            )

        try:
            _, stderr = await asyncio.wait_for(
                proc.communicate(),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise DecodeError(
                source.name,
                f"ffmpeg timed out after {self.timeout_seconds}s",
            )

        if proc.returncode != 0:
            lines = stderr.decode(errors="replace").strip().splitlines()
            detail = lines[-1] if lines else "no output"
            raise DecodeError(
                source.name,
                f"ffmpeg failed ({proc.returncode}): {detail}",
            )
