"""
Frame Extraction Tests
======================

Decoder command construction, read-back order, resizing, and scratch
directory scoping.
"""

import asyncio
import tempfile
import threading
from pathlib import Path

import cv2
import numpy as np
import pytest

from conftest import FakeDecoder
from video_ingest.errors import DecodeError
from video_ingest.extraction import FFmpegDecoder, FrameExtractor


@pytest.fixture
def video(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00")
    return path


class TestFFmpegDecoder:
    """Tests for the ffmpeg wrapper."""

    def test_build_command(self, tmp_path):
        decoder = FFmpegDecoder(ffmpeg_path="/opt/ffmpeg", image_pattern="f_%04d.jpg")
        cmd = decoder.build_command(Path("in.mp4"), tmp_path, 3.0, 640, 480)

        assert cmd[0] == "/opt/ffmpeg"
        assert cmd[cmd.index("-i") + 1] == "in.mp4"
        assert cmd[cmd.index("-vf") + 1] == "fps=3"
        assert cmd[cmd.index("-s") + 1] == "640x480"
        assert cmd[-1] == str(tmp_path / "f_%04d.jpg")

    def test_missing_executable(self, tmp_path, video):
        decoder = FFmpegDecoder(ffmpeg_path=str(tmp_path / "no-such-ffmpeg"))
        with pytest.raises(DecodeError) as exc:
            asyncio.run(decoder.decode(video, tmp_path, 3.0, 64, 48))
        assert "not found" in str(exc.value)


class TestFrameExtractor:
    """Tests for FrameExtractor."""

    def test_frames_in_decoder_order(self, tmp_path, video):
        extractor = FrameExtractor(FakeDecoder(default_frames=4), output_size=(8, 10))

        frames = asyncio.run(extractor.extract(video, 3.0, 64, 48))

        assert len(frames) == 4
        # B channel of frame i is 10*i; RGB order puts it last
        assert [int(f[0, 0, 2]) for f in frames] == [0, 10, 20, 30]
        assert all(int(f[0, 0, 0]) == 255 for f in frames)

    def test_frames_resized_to_output(self, tmp_path, video):
        extractor = FrameExtractor(FakeDecoder(default_frames=1), output_size=(8, 10))

        frames = asyncio.run(extractor.extract(video, 3.0, 64, 48))

        assert frames[0].shape == (8, 10, 3)
        assert frames[0].dtype == np.uint8

    def test_decoder_receives_declared_resolution(self, video):
        decoder = FakeDecoder(default_frames=1)
        extractor = FrameExtractor(decoder, output_size=(8, 10))

        asyncio.run(extractor.extract(video, 2.5, 64, 48))

        call = decoder.calls[0]
        assert (call["width"], call["height"], call["frame_rate"]) == (64, 48, 2.5)

    def test_zero_frames_returns_empty(self, video):
        extractor = FrameExtractor(FakeDecoder(default_frames=0), output_size=(8, 10))
        assert asyncio.run(extractor.extract(video, 3.0, 64, 48)) == []

    def test_scratch_removed_on_success(self, tmp_path, video):
        scratch = tmp_path / "scratch"
        decoder = FakeDecoder(default_frames=2)
        extractor = FrameExtractor(decoder, output_size=(8, 10), scratch_dir=str(scratch))

        asyncio.run(extractor.extract(video, 3.0, 64, 48))

        assert not decoder.calls[0]["output_dir"].exists()
        assert list(scratch.iterdir()) == []

    def test_scratch_removed_on_failure(self, tmp_path, video):
        scratch = tmp_path / "scratch"
        decoder = FakeDecoder(failing={"clip"})
        extractor = FrameExtractor(decoder, output_size=(8, 10), scratch_dir=str(scratch))

        with pytest.raises(DecodeError):
            asyncio.run(extractor.extract(video, 3.0, 64, 48))

        assert list(scratch.iterdir()) == []
        assert extractor.get_metrics()["failures"] == 1

    def test_scratch_cleanup_runs_off_loop_thread(self, tmp_path, video, monkeypatch):
        loop_thread = threading.get_ident()
        cleanup_threads = []
        original_cleanup = tempfile.TemporaryDirectory.cleanup

        def recording_cleanup(self):
            cleanup_threads.append(threading.get_ident())
            original_cleanup(self)

        monkeypatch.setattr(tempfile.TemporaryDirectory, "cleanup", recording_cleanup)
        extractor = FrameExtractor(
            FakeDecoder(default_frames=1), output_size=(8, 10), scratch_dir=str(tmp_path / "scratch")
        )

        asyncio.run(extractor.extract(video, 3.0, 64, 48))

        assert len(cleanup_threads) == 1
        assert cleanup_threads[0] != loop_thread
        assert list((tmp_path / "scratch").iterdir()) == []

    def test_concurrent_calls_use_distinct_scratch(self, tmp_path):
        videos = []
        for name in ("a", "b", "c"):
            path = tmp_path / f"{name}.mp4"
            path.write_bytes(b"\x00")
            videos.append(path)
        decoder = FakeDecoder(frames={"a": 1, "b": 2, "c": 3}, delay=0.02)
        extractor = FrameExtractor(decoder, output_size=(8, 10), scratch_dir=str(tmp_path / "scratch"))

        async def run_all():
            return await asyncio.gather(*(extractor.extract(v, 3.0, 16, 12) for v in videos))

        results = asyncio.run(run_all())

        assert [len(frames) for frames in results] == [1, 2, 3]
        assert decoder.max_active == 3
        assert len({call["output_dir"] for call in decoder.calls}) == 3

    def test_missing_video(self, tmp_path):
        extractor = FrameExtractor(FakeDecoder(), output_size=(8, 10))
        with pytest.raises(DecodeError):
            asyncio.run(extractor.extract(tmp_path / "gone.mp4", 3.0, 64, 48))

    def test_unreadable_image(self, tmp_path):
        (tmp_path / "frame_0001.jpg").write_bytes(b"not an image")
        extractor = FrameExtractor(FakeDecoder(), output_size=(8, 10))
        with pytest.raises(DecodeError):
            list(extractor.iter_frames(tmp_path))

    def test_iter_frames_ignores_other_files(self, tmp_path):
        cv2.imwrite(str(tmp_path / "frame_0001.png"), np.zeros((4, 4, 3), dtype=np.uint8))
        (tmp_path / "ffmpeg.log").write_text("log")
        extractor = FrameExtractor(FakeDecoder(), output_size=(4, 4))
        assert len(list(extractor.iter_frames(tmp_path))) == 1

    def test_invalid_output_size(self):
        with pytest.raises(ValueError):
            FrameExtractor(FakeDecoder(), output_size=(0, 10))
