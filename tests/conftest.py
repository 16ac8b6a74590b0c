"""
Test Configuration
==================

Pytest fixtures and test configuration for video-ingest.
"""

import asyncio
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import cv2
import numpy as np
import pytest

from video_ingest.config import Settings
from video_ingest.errors import DecodeError
from video_ingest.models.manifest import ManifestRow, Split


MANIFEST_HEADER = ["attachment_id", "text", "height", "width", "train"]

# Small output resolution keeps stacked batches tiny
OUTPUT_SIZE = (8, 10)


class FakeDecoder:
    """
    Stand-in for ffmpeg that writes real PNG files.

    Frame i of a video is a solid image with R=255, G=0, B=10*i so tests
    can check order and channel conversion after read-back.
    """

    def __init__(
        self,
        frames: Optional[Dict[str, int]] = None,
        failing: Iterable[str] = (),
        default_frames: int = 2,
        delay: float = 0.0,
    ) -> None:
        self.frames = frames or {}
        self.failing = set(failing)
        self.default_frames = default_frames
        self.delay = delay
        self.calls: List[dict] = []
        self.active = 0
        self.max_active = 0

    async def decode(self, source: Path, output_dir: Path, frame_rate: float, width: int, height: int) -> None:
        identifier = source.stem
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            self.calls.append({
                "identifier": identifier,
                "output_dir": output_dir,
                "frame_rate": frame_rate,
                "width": width,
                "height": height,
            })
            if identifier in self.failing:
                raise DecodeError(identifier, "simulated decoder failure")

            count = self.frames.get(identifier, self.default_frames)
            for i in range(count):
                image = np.zeros((height, width, 3), dtype=np.uint8)
                image[:, :, 0] = (10 * i) % 256  # B
                image[:, :, 2] = 255             # R
                cv2.imwrite(str(output_dir / f"frame_{i + 1:04d}.png"), image)

            if self.delay:
                await asyncio.sleep(self.delay)

            # Files written by this call only
            assert len(list(output_dir.iterdir())) == count
        finally:
            self.active -= 1


def write_manifest(path: Path, rows: Sequence[Sequence[str]], delimiter: str = "\t") -> Path:
    lines = [delimiter.join(MANIFEST_HEADER)]
    lines.extend(delimiter.join(str(v) for v in row) for row in rows)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def create_videos(root: Path, rows: Sequence[Sequence[str]]) -> None:
    """Create empty placeholder video files for manifest rows."""
    for row in rows:
        identifier, split = str(row[0]), str(row[4])
        folder = "train" if split.strip().lower() in ("true", "1", "train") else "test"
        (root / folder).mkdir(parents=True, exist_ok=True)
        (root / folder / f"{identifier}.mp4").write_bytes(b"\x00")


@pytest.fixture
def fake_decoder_factory():
    """Build FakeDecoder instances."""
    return FakeDecoder


@pytest.fixture
def video_root(tmp_path):
    root = tmp_path / "videos"
    root.mkdir()
    return root


@pytest.fixture
def make_dataset(tmp_path, video_root):
    """Write a manifest and matching placeholder videos; return manifest path."""

    def _make(rows: Sequence[Sequence[str]], with_videos: bool = True) -> Path:
        if with_videos:
            create_videos(video_root, rows)
        return write_manifest(tmp_path / "annotations.csv", rows)

    return _make


@pytest.fixture
def make_settings(tmp_path, video_root):
    """Settings pointed at the temp dataset."""

    def _make(concurrency: int = 3, batch_size: int = 32, epochs: int = 1) -> Settings:
        return Settings.model_validate({
            "manifest": {"path": str(tmp_path / "annotations.csv")},
            "videos": {"root_dir": str(video_root)},
            "extraction": {
                "output_height": OUTPUT_SIZE[0],
                "output_width": OUTPUT_SIZE[1],
                "scratch_dir": str(tmp_path / "scratch"),
            },
            "ingestion": {"concurrency": concurrency},
            "training": {"batch_size": batch_size, "epochs": epochs},
        })

    return _make


@pytest.fixture
def sample_row():
    """Provide a sample ManifestRow for testing."""
    return ManifestRow(
        identifier="1",
        label="  a ",
        height="480",
        width="640",
        split=Split.TRAIN,
        line_number=2,
    )
