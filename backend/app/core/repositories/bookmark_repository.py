from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from app.core.models.bookmark import Bookmark, BookmarkCreate


class BookmarkRepository(ABC):
    """Abstract repository interface for bookmarks.

    Recognised filter keys for `list`/`count`: `q` (substring of title,
    description or URL), `unread` (bool), `shared` (bool). Unknown keys are ignored.
    """

    @abstractmethod
    async def create(self, data: BookmarkCreate) -> Bookmark:  # pragma: no cover - interface only
        """Insert a bookmark with its tag associations in one transaction.

        A URL that already exists turns the call into an update of that record.
        """

    @abstractmethod
    async def update(self, bookmark_id: int, data: BookmarkCreate) -> Bookmark | None:  # pragma: no cover
        """Replace all fields and the tag set atomically. None if the id is unknown."""

    @abstractmethod
    async def get(self, bookmark_id: int) -> Bookmark | None:  # pragma: no cover
        """Fetch a bookmark by id or return None if not found."""

    @abstractmethod
    async def get_by_url(self, url: str) -> Bookmark | None:  # pragma: no cover
        """Fetch a bookmark by its unique URL."""

    @abstractmethod
    async def list(
        self, *, limit: int = 50, offset: int = 0, filters: Mapping[str, Any] | None = None
    ) -> Sequence[Bookmark]:  # pragma: no cover
        """Return bookmarks newest first."""

    @abstractmethod
    async def delete(self, bookmark_id: int) -> bool:  # pragma: no cover
        """Delete a bookmark. Return True if a row was removed."""

    @abstractmethod
    async def count(self, filters: Mapping[str, Any] | None = None) -> int:  # pragma: no cover
        """Count bookmarks matching the filters."""
