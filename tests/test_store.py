"""
Frame Store Tests
=================

Atomic appends and the seal/snapshot phase change.
"""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from video_ingest.errors import StoreStateError
from video_ingest.ingestion import FrameStore
from video_ingest.models.frame import FramePair


def pairs_for(label, count):
    return [FramePair(np.full((2, 2, 3), i, dtype=np.uint8), label) for i in range(count)]


class TestFrameStore:
    """Tests for FrameStore."""

    def test_append_preserves_order(self):
        store = FrameStore()
        store.append(pairs_for("a", 3))
        store.append(pairs_for("b", 2))
        store.seal()

        snapshot = store.snapshot()
        assert [p.label for p in snapshot] == ["a", "a", "a", "b", "b"]
        assert [int(p.frame[0, 0, 0]) for p in snapshot] == [0, 1, 2, 0, 1]

    def test_append_returns_size(self):
        store = FrameStore()
        assert store.append(pairs_for("a", 4)) == 4
        assert store.append(pairs_for("b", 1)) == 5
        assert len(store) == 5

    def test_concurrent_appends_are_not_interleaved(self):
        store = FrameStore()
        labels = [f"v{i}" for i in range(40)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda label: store.append(pairs_for(label, 5)), labels))

        store.seal()
        snapshot = store.snapshot()
        assert len(snapshot) == 200
        for start in range(0, 200, 5):
            block = snapshot[start:start + 5]
            assert len({p.label for p in block}) == 1
            assert [int(p.frame[0, 0, 0]) for p in block] == [0, 1, 2, 3, 4]

    def test_snapshot_before_seal_fails(self):
        store = FrameStore()
        store.append(pairs_for("a", 1))
        with pytest.raises(StoreStateError):
            store.snapshot()

    def test_append_after_seal_fails(self):
        store = FrameStore()
        store.seal()
        with pytest.raises(StoreStateError):
            store.append(pairs_for("a", 1))

    def test_metrics(self):
        store = FrameStore()
        store.append(pairs_for("a", 2))
        assert store.metrics() == {"pairs": 2, "appends": 1, "sealed": False}
