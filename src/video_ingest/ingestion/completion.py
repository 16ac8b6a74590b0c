"""
Completion Detector
===================

Signals drain: the manifest reader has finished AND the ingestion queue
has no pending and no in-flight rows.

The detector is event driven. The queue notifies it every time a row
settles, and the reader notifies it once at end of stream; each
notification re-checks the drain predicate. The first true check sets an
asyncio.Event, exactly once. With zero rows, the reader's notification
alone fires it.
"""

import asyncio
import logging
from typing import Optional

from video_ingest.ingestion.queue import IngestionQueue


logger = logging.getLogger(__name__)


class CompletionDetector:
    """
    One-shot drain signal for an IngestionQueue.

    Example:
        detector = CompletionDetector(queue)

        await reader.feed(queue)
        detector.reader_finished()

        await detector.wait()
    """

    def __init__(self, queue: IngestionQueue) -> None:
        self.queue = queue
        self._reader_done: bool = False
        self._drained = asyncio.Event()
        self._fire_count: int = 0
        queue.add_settle_listener(self.observe)

    @property
    def reader_done(self) -> bool:
        return self._reader_done

    @property
    def drained(self) -> bool:
        return self._drained.is_set()

    @property
    def fire_count(self) -> int:
        """How many times drain was signalled (0 or 1)."""
        return self._fire_count

    def reader_finished(self) -> None:
        """Mark end of manifest stream. Later calls are ignored."""
        if self._reader_done:
            return
        self._reader_done = True
        logger.info("Manifest reader finished, watching for drain")
        self.observe()

    def observe(self) -> None:
        """Check the drain predicate and fire if it holds."""
        if self._drained.is_set() or not self._reader_done:
            return
        if self.queue.pending_count() == 0 and self.queue.in_flight_count() == 0:
            self._fire_count += 1
            self._drained.set()
            logger.info(f"Ingestion drained: {self.queue.metrics()}")

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for drain.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            True once drained, False if timeout occurred.
        """
        try:
            if timeout is not None:
                await asyncio.wait_for(self._drained.wait(), timeout=timeout)
            else:
                await self._drained.wait()
            return True
        except asyncio.TimeoutError:
            return False
