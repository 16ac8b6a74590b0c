"""
Frame Store
===========

Append-only accumulation of (frame, label) pairs shared by all workers.

Design Rules:
    - append() is atomic: one worker's pairs are never interleaved with
      another worker's
    - The lock covers the list extension only, never decode work
    - Once sealed, the store is read-only and snapshot() becomes available

All frames stay in memory until the run ends. Memory use grows with the
dataset; there is no spilling.
"""

import logging
import threading
from typing import List, Sequence, Tuple

from video_ingest.errors import StoreStateError
from video_ingest.models.frame import FramePair


logger = logging.getLogger(__name__)


class FrameStore:
    """
    Thread-safe append-only frame/label store.

    Example:
        store = FrameStore()

        # Workers (during ingestion)
        store.append([FramePair(frame, "hello"), ...])

        # Assembler (after drain)
        store.seal()
        pairs = store.snapshot()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pairs: List[FramePair] = []
        self._sealed: bool = False
        self._append_count: int = 0

    def append(self, pairs: Sequence[FramePair]) -> int:
        """
        Append pairs as one atomic block.

        Returns:
            Store size after the append

        Raises:
            StoreStateError: If the store was sealed
        """
        with self._lock:
            if self._sealed:
                raise StoreStateError("append after seal")
            self._pairs.extend(pairs)
            self._append_count += 1
            return len(self._pairs)

    def seal(self) -> None:
        """Make the store read-only. Idempotent."""
        with self._lock:
            if not self._sealed:
                self._sealed = True
                logger.info(
                    f"FrameStore sealed: {len(self._pairs)} pairs "
                    f"from {self._append_count} appends"
                )

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __len__(self) -> int:
        with self._lock:
            return len(self._pairs)

    def snapshot(self) -> Tuple[FramePair, ...]:
        """
        Full accumulated sequence in append order.

        Raises:
            StoreStateError: If called before seal()
        """
        with self._lock:
            if not self._sealed:
                raise StoreStateError("snapshot before drain")
            return tuple(self._pairs)

    def metrics(self) -> dict:
        """Store counters for observability."""
        with self._lock:
            return {
                "pairs": len(self._pairs),
                "appends": self._append_count,
                "sealed": self._sealed,
            }
