from __future__ import annotations

import asyncio
from enum import Enum
from typing import TYPE_CHECKING

from app.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 1000


class PoolState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


class EnrichmentWorkerPool:
    """Fixed set of asyncio workers draining a bounded queue of bookmark ids.

    `submit` never waits: when the pool is not running or the queue is full
    the id is dropped and logged. `stop` discards whatever is still queued,
    lets busy workers finish their current bookmark and then joins them.
    A stopped pool cannot be started again.
    """

    def __init__(
        self,
        handler: Callable[[int], Awaitable[object]],
        *,
        worker_count: int = 5,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._handler = handler
        self._worker_count = max(1, worker_count)
        self._queue: asyncio.Queue[int] = asyncio.Queue(maxsize=max(1, queue_size))
        self._workers: list[asyncio.Task[None]] = []
        self._busy: set[int] = set()
        self._state = PoolState.NOT_STARTED

    @property
    def state(self) -> PoolState:
        return self._state

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._state is PoolState.RUNNING:
            return
        if self._state is PoolState.STOPPED:
            raise RuntimeError("Enrichment worker pool cannot be restarted after stop()")
        self._state = PoolState.RUNNING
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"enrichment-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info(
            "Enrichment worker pool started: %d workers, queue size %d",
            self._worker_count,
            self._queue.maxsize,
        )

    def submit(self, bookmark_id: int) -> bool:
        if self._state is not PoolState.RUNNING:
            logger.info("Enrichment pool not running; skipping bookmark %s", bookmark_id)
            return False
        try:
            self._queue.put_nowait(bookmark_id)
        except asyncio.QueueFull:
            logger.warning(
                "Enrichment queue full (size=%d); dropping bookmark %s",
                self._queue.maxsize,
                bookmark_id,
            )
            return False
        return True

    async def stop(self) -> None:
        if self._state is PoolState.STOPPED:
            return
        was_running = self._state is PoolState.RUNNING
        self._state = PoolState.STOPPED
        if not was_running:
            return

        discarded = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            discarded += 1
        if discarded:
            logger.warning("Discarded %d queued enrichment tasks on shutdown", discarded)

        for index, task in enumerate(self._workers):
            if index not in self._busy:
                task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Enrichment worker pool stopped")

    async def _worker(self, index: int) -> None:
        logger.debug("Enrichment worker %d ready", index)
        while self._state is PoolState.RUNNING:
            bookmark_id = await self._queue.get()
            self._busy.add(index)
            try:
                await self._handler(bookmark_id)
            except Exception as err:
                logger.error(
                    "Enrichment failed for bookmark %s (%s): %s",
                    bookmark_id,
                    type(err).__name__,
                    err,
                )
            finally:
                self._busy.discard(index)
                self._queue.task_done()
