"""
Ingestion Queue
===============

Bounded-concurrency task queue that runs video workers.

This module provides the IngestionQueue class which:
    - Accepts manifest rows via submit()
    - Runs at most K handlers at once (K consumer tasks)
    - Exposes pending and in-flight counts
    - Records one ItemOutcome per row
    - Notifies listeners every time a row settles

Design Rules:
    - A failing row never stops the queue or other rows
    - A row counts as in-flight from dequeue until its outcome is recorded
    - Structural errors (PipelineStateError) are kept as fatal_error for
      the pipeline to re-raise after drain
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from video_ingest.errors import ItemError, PipelineStateError, QueueInvariantError
from video_ingest.models.manifest import ManifestRow
from video_ingest.models.outcome import ItemOutcome, ItemStatus


logger = logging.getLogger(__name__)


RowHandler = Callable[[ManifestRow], Awaitable[int]]
SettleListener = Callable[[], None]


class IngestionQueue:
    """
    asyncio worker pool with a concurrency limit.

    Attributes:
        concurrency: Maximum rows processed at once (K)
        outcomes: One ItemOutcome per settled row, in completion order
        fatal_error: First structural error raised by a handler, if any

    Example:
        queue = IngestionQueue(worker.process, concurrency=3)
        queue.start()

        await queue.submit(row)
        ...
        await queue.join()
        await queue.shutdown()
    """

    def __init__(
        self,
        handler: RowHandler,
        concurrency: int = 3,
        max_pending: int = 0,
    ) -> None:
        """
        Initialize ingestion queue.

        Args:
            handler: Coroutine processing one row, returning frames stored
            concurrency: K, must be >= 1
            max_pending: Queue capacity before submit() waits (0 = unbounded)
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if max_pending < 0:
            raise ValueError("max_pending must be >= 0")

        self.handler = handler
        self.concurrency = concurrency
        self.max_pending = max_pending

        self._queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []
        self._listeners: List[SettleListener] = []
        self._in_flight: int = 0
        self._total_submitted: int = 0

        self.outcomes: List[ItemOutcome] = []
        self.fatal_error: Optional[PipelineStateError] = None

    def add_settle_listener(self, listener: SettleListener) -> None:
        """Call `listener` after every row settles (success or failure)."""
        self._listeners.append(listener)

    def start(self) -> None:
        """Spawn K consumer tasks. Must be called inside a running loop."""
        if self._tasks:
            return
        self._queue = asyncio.Queue(maxsize=self.max_pending)
        self._tasks = [
            asyncio.create_task(self._consume(slot), name=f"video-worker-{slot}")
            for slot in range(self.concurrency)
        ]
        logger.info(f"IngestionQueue started with concurrency={self.concurrency}")

    async def submit(self, row: ManifestRow) -> None:
        """
        Enqueue a row.

        Waits only if max_pending > 0 and the queue is full.
        """
        if self._queue is None:
            raise RuntimeError("IngestionQueue.start() was not called")
        self._total_submitted += 1
        await self._queue.put(row)

    def pending_count(self) -> int:
        """Rows accepted but not yet picked up by a worker."""
        return self._queue.qsize() if self._queue is not None else 0

    def in_flight_count(self) -> int:
        """Rows currently being processed."""
        return self._in_flight

    def is_idle(self) -> bool:
        """No pending and no in-flight rows."""
        return self.pending_count() == 0 and self._in_flight == 0

    async def join(self) -> None:
        """Wait until every submitted row has settled."""
        if self._queue is not None:
            await self._queue.join()

    async def shutdown(self) -> None:
        """Cancel consumer tasks."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("IngestionQueue stopped")

    @property
    def succeeded(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status == ItemStatus.SUCCEEDED]

    @property
    def failed(self) -> List[ItemOutcome]:
        return [o for o in self.outcomes if o.status == ItemStatus.FAILED]

    async def _consume(self, slot: int) -> None:
        """Consumer loop for one concurrency slot."""
        assert self._queue is not None
        while True:
            row = await self._queue.get()
            self._in_flight += 1
            try:
                if self._in_flight > self.concurrency:
                    raise QueueInvariantError(
                        f"in-flight {self._in_flight} exceeds limit {self.concurrency}"
                    )
                frame_count = await self.handler(row)
                self._record(ItemOutcome(
                    identifier=row.identifier,
                    status=ItemStatus.SUCCEEDED,
                    frame_count=frame_count,
                ))
            except ItemError as e:
                logger.error(f"Video failed: {e}")
                self._record_failure(row, str(e))
            except PipelineStateError as e:
                logger.critical(f"Pipeline invariant violated on {row.identifier}: {e}")
                if self.fatal_error is None:
                    self.fatal_error = e
                self._record_failure(row, str(e))
            except Exception as e:
                logger.error(
                    f"Unexpected error processing {row.identifier}: {e}",
                    exc_info=True,
                )
                self._record_failure(row, str(e))
            finally:
                self._in_flight -= 1
                self._queue.task_done()
                self._notify()

    def _record(self, outcome: ItemOutcome) -> None:
        self.outcomes.append(outcome)

    def _record_failure(self, row: ManifestRow, message: str) -> None:
        self._record(ItemOutcome(
            identifier=row.identifier,
            status=ItemStatus.FAILED,
            error=message,
        ))

    def _notify(self) -> None:
        for listener in self._listeners:
            listener()

    def metrics(self) -> dict:
        """
        Get queue metrics for observability.

        Returns:
            Dict with pending, in_flight, concurrency, submitted,
            succeeded, failed
        """
        return {
            "pending": self.pending_count(),
            "in_flight": self._in_flight,
            "concurrency": self.concurrency,
            "submitted": self._total_submitted,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
        }
