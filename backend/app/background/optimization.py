from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from app.utils.logging import get_logger

if TYPE_CHECKING:
    from app.core.services.tag_optimizer import TagOptimizer

logger = get_logger(__name__)


class TagOptimizationScheduler:
    """Runs a real (non-preview) optimization every `interval_seconds`."""

    def __init__(self, optimizer: TagOptimizer, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._optimizer = optimizer
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="tag-optimization-scheduler")
        logger.info("Tag optimization scheduled every %s seconds", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def run_once(self) -> None:
        try:
            result = await self._optimizer.optimize(dry_run=False)
        except Exception as err:
            logger.error("Scheduled tag optimization failed: %s", err)
            return
        logger.info(
            "Scheduled tag optimization: %d merges, %d promotions",
            result.summary.total_merges,
            result.summary.total_promotions,
        )

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            await self.run_once()
