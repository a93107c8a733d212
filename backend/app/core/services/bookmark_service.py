from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError

from app.core.exceptions import NotFoundError, ValidationFailure
from app.core.models.bookmark import BookmarkCreate
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from app.core.models.bookmark import Bookmark, BookmarkUpdate
    from app.core.repositories.bookmark_repository import BookmarkRepository
    from app.core.services.workflow_engine import WorkflowEngine

logger = get_logger(__name__)


class EnrichmentQueue(Protocol):
    def submit(self, bookmark_id: int) -> bool: ...


class BookmarkService:
    """Bookmark mutations plus their side effects.

    Every create/update runs the workflow engine for that bookmark before
    returning and, when async enrichment is on, queues the bookmark for the
    worker pool.
    """

    def __init__(
        self,
        repo: BookmarkRepository,
        workflow_engine: WorkflowEngine,
        enrichment_queue: EnrichmentQueue | None = None,
        *,
        enable_async_ai: bool = True,
    ) -> None:
        self._repo = repo
        self._workflows = workflow_engine
        self._queue = enrichment_queue
        self._enable_async_ai = enable_async_ai

    async def create_bookmark(self, data: BookmarkCreate) -> Bookmark:
        """Create a bookmark, or update the existing one with the same URL."""
        bookmark = await self._repo.create(data)
        await self._after_write(bookmark)
        return bookmark

    async def get_bookmark(self, bookmark_id: int) -> Bookmark:
        bookmark = await self._repo.get(bookmark_id)
        if bookmark is None:
            raise NotFoundError("bookmark", bookmark_id)
        return bookmark

    async def list_bookmarks(
        self, *, limit: int = 50, offset: int = 0, filters: Mapping[str, Any] | None = None
    ) -> tuple[Sequence[Bookmark], int]:
        """Return one page of bookmarks and the total matching the filters."""
        items = await self._repo.list(limit=limit, offset=offset, filters=filters)
        total = await self._repo.count(filters)
        return items, total

    async def update_bookmark(self, bookmark_id: int, changes: BookmarkUpdate) -> Bookmark:
        """Apply a partial update over the stored record."""
        existing = await self.get_bookmark(bookmark_id)
        patch = {k: v for k, v in changes.model_dump(exclude_unset=True).items() if v is not None}
        try:
            data = BookmarkCreate.model_validate(
                {**BookmarkCreate.from_bookmark(existing).model_dump(), **patch}
            )
        except ValidationError as err:
            raise ValidationFailure(str(err)) from err

        bookmark = await self._repo.update(bookmark_id, data)
        if bookmark is None:
            raise NotFoundError("bookmark", bookmark_id)
        await self._after_write(bookmark)
        return bookmark

    async def delete_bookmark(self, bookmark_id: int) -> None:
        if not await self._repo.delete(bookmark_id):
            raise NotFoundError("bookmark", bookmark_id)
        logger.info("Deleted bookmark %s", bookmark_id)

    async def request_enrichment(self, bookmark_id: int) -> bool:
        """Queue a bookmark for re-enrichment. Returns whether it was accepted."""
        await self.get_bookmark(bookmark_id)
        if self._queue is None:
            logger.info("Enrichment unavailable; bookmark %s not queued", bookmark_id)
            return False
        return self._queue.submit(bookmark_id)

    async def _after_write(self, bookmark: Bookmark) -> None:
        try:
            await self._workflows.execute_workflows_for_bookmark(bookmark)
        except Exception as err:
            logger.error("Workflow execution failed for bookmark %s: %s", bookmark.id, err)

        if self._enable_async_ai and self._queue is not None:
            self._queue.submit(bookmark.id)
