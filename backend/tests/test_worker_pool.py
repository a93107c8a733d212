from __future__ import annotations

import asyncio
import logging

import pytest

from app.background.enrichment import EnrichmentWorkerPool, PoolState


class Recorder:
    def __init__(self) -> None:
        self.seen: list[int] = []
        self.done = asyncio.Event()
        self.expected = 1

    async def __call__(self, bookmark_id: int) -> None:
        self.seen.append(bookmark_id)
        if len(self.seen) >= self.expected:
            self.done.set()


class TestLifecycle:
    async def test_states(self) -> None:
        pool = EnrichmentWorkerPool(Recorder(), worker_count=2)
        assert pool.state is PoolState.NOT_STARTED

        pool.start()
        pool.start()
        assert pool.state is PoolState.RUNNING

        await pool.stop()
        assert pool.state is PoolState.STOPPED
        with pytest.raises(RuntimeError):
            pool.start()

    def test_worker_count_is_at_least_one(self) -> None:
        assert EnrichmentWorkerPool(Recorder(), worker_count=0).worker_count == 1

    async def test_stop_before_start(self) -> None:
        pool = EnrichmentWorkerPool(Recorder())
        await pool.stop()
        assert pool.state is PoolState.STOPPED


class TestSubmit:
    async def test_full_queue_drops_exactly_one(self, caplog) -> None:
        capacity = 5
        pool = EnrichmentWorkerPool(Recorder(), worker_count=1, queue_size=capacity)
        pool.start()

        with caplog.at_level(logging.WARNING, logger="app.background.enrichment"):
            accepted = [pool.submit(i) for i in range(capacity + 1)]

        assert accepted.count(True) == capacity
        assert accepted[-1] is False
        assert pool.pending == capacity
        assert sum("dropping bookmark" in r.getMessage() for r in caplog.records) == 1
        await pool.stop()

    async def test_submit_before_start_is_never_delivered(self) -> None:
        handler = Recorder()
        pool = EnrichmentWorkerPool(handler, worker_count=2)

        assert pool.submit(1) is False

        pool.start()
        assert pool.submit(2) is True
        await asyncio.wait_for(handler.done.wait(), timeout=2)
        await pool.stop()

        assert handler.seen == [2]

    async def test_submit_after_stop_is_dropped(self) -> None:
        pool = EnrichmentWorkerPool(Recorder())
        pool.start()
        await pool.stop()
        assert pool.submit(1) is False


class TestWorkers:
    async def test_handler_failure_does_not_kill_worker(self) -> None:
        processed: list[int] = []
        finished = asyncio.Event()

        async def handler(bookmark_id: int) -> None:
            if bookmark_id == 1:
                raise RuntimeError("AI endpoint unreachable")
            processed.append(bookmark_id)
            finished.set()

        pool = EnrichmentWorkerPool(handler, worker_count=1)
        pool.start()
        pool.submit(1)
        pool.submit(2)

        await asyncio.wait_for(finished.wait(), timeout=2)
        await pool.stop()

        assert processed == [2]

    async def test_stop_finishes_in_flight_and_discards_queued(self) -> None:
        started = asyncio.Event()
        gate = asyncio.Event()
        processed: list[int] = []

        async def handler(bookmark_id: int) -> None:
            started.set()
            await gate.wait()
            processed.append(bookmark_id)

        pool = EnrichmentWorkerPool(handler, worker_count=1)
        pool.start()
        for i in (1, 2, 3):
            pool.submit(i)
        await asyncio.wait_for(started.wait(), timeout=2)

        stopping = asyncio.create_task(pool.stop())
        await asyncio.sleep(0.01)
        assert not stopping.done()
        assert pool.pending == 0

        gate.set()
        await asyncio.wait_for(stopping, timeout=2)

        assert processed == [1]

    async def test_many_workers_share_the_queue(self) -> None:
        handler = Recorder()
        handler.expected = 20
        pool = EnrichmentWorkerPool(handler, worker_count=4, queue_size=50)
        pool.start()
        for i in range(20):
            assert pool.submit(i)

        await asyncio.wait_for(handler.done.wait(), timeout=2)
        await pool.stop()

        assert sorted(handler.seen) == list(range(20))
