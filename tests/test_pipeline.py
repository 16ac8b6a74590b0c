"""
Pipeline Tests
==============

End-to-end runs with a fake decoder.
"""

import asyncio

import numpy as np
import pytest

from conftest import FakeDecoder, OUTPUT_SIZE
from video_ingest.errors import ManifestSourceError, TrainingError
from video_ingest.extraction import FrameExtractor
from video_ingest.models.batch import EpochMetrics, TrainingReport
from video_ingest.pipeline import IngestionPipeline


class CapturingTrainer:
    def __init__(self, fail=False):
        self.batches = []
        self.configs = []
        self.fail = fail

    async def train_batch(self, batch, config):
        if self.fail:
            raise RuntimeError("nan loss")
        self.batches.append(batch)
        self.configs.append(config)
        return TrainingReport(epochs=[EpochMetrics(epoch=1, loss=1.0, accuracy=0.0)])


def build(settings, decoder, trainer):
    extractor = FrameExtractor(
        decoder,
        output_size=OUTPUT_SIZE,
        scratch_dir=settings.extraction.scratch_dir,
    )
    return IngestionPipeline(settings, trainer=trainer, extractor=extractor)


class TestIngestionPipeline:
    """End-to-end pipeline scenarios."""

    def test_two_video_scenario(self, make_dataset, make_settings):
        make_dataset([
            ["1", "a", "480", "640", "True"],
            ["2", "b", "480", "640", "False"],
        ])
        trainer = CapturingTrainer()
        pipeline = build(make_settings(batch_size=8), FakeDecoder(frames={"1": 2, "2": 3}), trainer)

        summary = asyncio.run(pipeline.run())

        assert summary.total_pairs == 5
        assert summary.vocabulary == {"a": 0, "b": 1}
        assert summary.batch_count == 1
        batch = trainer.batches[0]
        assert batch.frames.shape == (5, OUTPUT_SIZE[0], OUTPUT_SIZE[1], 3)
        assert batch.labels.shape == (5, 2)
        np.testing.assert_array_equal(batch.labels.sum(axis=1), np.ones(5))
        assert sorted(batch.labels.argmax(axis=1).tolist()) == [0, 0, 1, 1, 1]

    def test_pairs_per_video_match_extracted_frames(self, make_dataset, make_settings):
        make_dataset([[str(i), f"w{i}", "48", "64", "True"] for i in range(4)])
        counts = {"0": 1, "1": 2, "2": 3, "3": 4}
        pipeline = build(make_settings(), FakeDecoder(frames=counts, delay=0.01), None)

        summary = asyncio.run(pipeline.run())

        assert summary.total_pairs == 10
        by_id = {o.identifier: o.frame_count for o in pipeline.queue.succeeded}
        assert by_id == counts

        pairs = pipeline.store.snapshot()
        for identifier, count in counts.items():
            label = f"w{identifier}"
            positions = [i for i, p in enumerate(pairs) if p.label == label]
            # contiguous block, frames in decoder order
            assert positions == list(range(positions[0], positions[0] + count))
            assert [int(pairs[i].frame[0, 0, 2]) for i in positions] == [10 * k for k in range(count)]

    def test_non_numeric_dimension_is_isolated(self, make_dataset, make_settings):
        make_dataset([
            ["1", "a", "480", "640", "True"],
            ["2", "b", "tall", "640", "True"],
            ["3", "c", "480", "640", "False"],
        ])
        decoder = FakeDecoder(frames={"1": 2, "3": 1})
        pipeline = build(make_settings(), decoder, CapturingTrainer())

        summary = asyncio.run(pipeline.run())

        assert summary.items_succeeded == 2
        assert summary.items_failed == 1
        assert summary.failed_identifiers == ["2"]
        assert "height" in summary.failed_items[0].error
        assert summary.total_pairs == 3
        assert {p.label for p in pipeline.store.snapshot()} == {"a", "c"}
        # label is still registered even though the video failed
        assert "b" in summary.vocabulary
        assert "2" not in {call["identifier"] for call in decoder.calls}

    def test_one_decode_failure_of_five(self, make_dataset, make_settings):
        make_dataset([[str(i), "a", "48", "64", "True"] for i in range(5)])
        decoder = FakeDecoder(failing={"3"}, default_frames=2, delay=0.01)
        pipeline = build(make_settings(concurrency=3), decoder, CapturingTrainer())

        summary = asyncio.run(pipeline.run())

        assert summary.items_succeeded == 4
        assert summary.failed_identifiers == ["3"]
        assert summary.total_pairs == 8
        assert decoder.max_active <= 3

    def test_repeated_identifier_failures_all_reported(self, make_dataset, make_settings):
        make_dataset([
            ["7", "a", "tall", "64", "True"],
            ["8", "a", "48", "64", "True"],
            ["7", "a", "48", "wide", "True"],
        ])
        pipeline = build(make_settings(), FakeDecoder(), CapturingTrainer())

        summary = asyncio.run(pipeline.run())

        assert summary.items_failed == 2
        assert summary.failed_identifiers == ["7", "7"]
        errors = sorted(item.error for item in summary.failed_items)
        assert "height" in errors[0]
        assert "width" in errors[1]

    def test_missing_video_file_fails_item(self, make_dataset, make_settings, video_root):
        make_dataset([["1", "a", "48", "64", "True"]], with_videos=False)
        pipeline = build(make_settings(), FakeDecoder(), CapturingTrainer())

        summary = asyncio.run(pipeline.run())

        assert summary.items_failed == 1
        assert summary.total_pairs == 0
        assert summary.batch_count == 0

    def test_empty_manifest(self, make_dataset, make_settings):
        make_dataset([])
        trainer = CapturingTrainer()
        pipeline = build(make_settings(), FakeDecoder(), trainer)

        summary = asyncio.run(pipeline.run())

        assert summary.rows_read == 0
        assert summary.batch_count == 0
        assert trainer.batches == []
        assert pipeline.detector.fire_count == 1

    def test_batches_follow_configured_size(self, make_dataset, make_settings):
        make_dataset([[str(i), "a", "48", "64", "True"] for i in range(3)])
        trainer = CapturingTrainer()
        pipeline = build(make_settings(batch_size=4), FakeDecoder(default_frames=3), trainer)

        summary = asyncio.run(pipeline.run())

        assert [b.size for b in summary.batches] == [4, 4, 1]
        assert all(c.batch_size == 4 for c in trainer.configs)

    def test_scratch_is_clean_after_run(self, make_dataset, make_settings, tmp_path):
        make_dataset([["1", "a", "48", "64", "True"], ["2", "b", "48", "64", "True"]])
        settings = make_settings()
        asyncio.run(build(settings, FakeDecoder(failing={"2"}), None).run())
        assert list((tmp_path / "scratch").iterdir()) == []

    def test_vocabulary_frozen_after_run(self, make_dataset, make_settings):
        make_dataset([["1", "a", "48", "64", "True"]])
        pipeline = build(make_settings(), FakeDecoder(), None)
        asyncio.run(pipeline.run())
        assert pipeline.vocabulary.is_frozen
        assert pipeline.store.sealed

    def test_training_error_aborts(self, make_dataset, make_settings):
        make_dataset([["1", "a", "48", "64", "True"]])
        pipeline = build(make_settings(), FakeDecoder(), CapturingTrainer(fail=True))
        with pytest.raises(TrainingError):
            asyncio.run(pipeline.run())

    def test_missing_manifest_aborts(self, make_settings):
        pipeline = build(make_settings(), FakeDecoder(), None)
        with pytest.raises(ManifestSourceError):
            asyncio.run(pipeline.run())

    def test_metrics(self, make_dataset, make_settings):
        make_dataset([["1", "a", "48", "64", "True"]])
        pipeline = build(make_settings(), FakeDecoder(default_frames=2), None)
        asyncio.run(pipeline.run())

        metrics = pipeline.get_metrics()
        assert metrics["queue"]["succeeded"] == 1
        assert metrics["store"]["pairs"] == 2
        assert metrics["reader"]["rows_read"] == 1
        assert metrics["vocabulary_size"] == 1
