from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.core.exceptions import DuplicateUrlError
from app.core.models.bookmark import Bookmark
from app.core.repositories.bookmark_repository import BookmarkRepository
from app.utils.logging import get_logger

from .base import SupabaseRepository

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from app.core.models.bookmark import BookmarkCreate

logger = get_logger(__name__)

# PostgREST `or=(...)` syntax reserves these characters.
_FILTER_RESERVED = str.maketrans("", "", ",()")


class SupabaseBookmarkRepository(SupabaseRepository, BookmarkRepository):
    """Bookmarks stored in Postgres.

    Reads go through the `bookmarks_with_tags` view. Writes call the
    `upsert_bookmark`/`update_bookmark` functions so the row and its tag
    associations commit together.
    """

    TABLE_NAME = "bookmarks"
    VIEW_NAME = "bookmarks_with_tags"

    async def create(self, data: BookmarkCreate) -> Bookmark:
        bookmark_id = await self._rpc("upsert_bookmark", {"p_bookmark": data.model_dump(mode="json")})
        logger.debug("Upserted bookmark %s (%s)", bookmark_id, data.url)
        created = await self.get(int(bookmark_id))
        if created is None:
            raise LookupError(f"bookmark {bookmark_id} vanished after upsert")
        return created

    async def update(self, bookmark_id: int, data: BookmarkCreate) -> Bookmark | None:
        owner = await self.get_by_url(data.url)
        if owner is not None and owner.id != bookmark_id:
            raise DuplicateUrlError(data.url, owner.id)
        updated_id = await self._rpc(
            "update_bookmark", {"p_id": bookmark_id, "p_bookmark": data.model_dump(mode="json")}
        )
        if updated_id is None:
            return None
        return await self.get(bookmark_id)

    async def get(self, bookmark_id: int) -> Bookmark | None:
        resp = await self._run(
            lambda: self._client.table(self.VIEW_NAME)
            .select("*")
            .eq("id", bookmark_id)
            .limit(1)
            .execute()
        )
        row = self._first(resp.data)
        return self._row_to_bookmark(row) if row else None

    async def get_by_url(self, url: str) -> Bookmark | None:
        resp = await self._run(
            lambda: self._client.table(self.VIEW_NAME)
            .select("*")
            .eq("url", url)
            .limit(1)
            .execute()
        )
        row = self._first(resp.data)
        return self._row_to_bookmark(row) if row else None

    async def list(
        self, *, limit: int = 50, offset: int = 0, filters: Mapping[str, Any] | None = None
    ) -> Sequence[Bookmark]:
        def _query():
            q = self._apply_filters(self._client.table(self.VIEW_NAME).select("*"), filters)
            return (
                q
                .order("date_added", desc=True)
                .range(offset, offset + limit - 1)
                .execute()
            )

        resp = await self._run(_query)
        return [self._row_to_bookmark(r) for r in resp.data or []]

    async def delete(self, bookmark_id: int) -> bool:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .delete()
            .eq("id", bookmark_id)
            .execute()
        )
        return len(resp.data or []) > 0

    async def count(self, filters: Mapping[str, Any] | None = None) -> int:
        resp = await self._run(
            lambda: self._apply_filters(
                self._client.table(self.TABLE_NAME).select("id", count="exact"), filters
            )
            .limit(1)
            .execute()
        )
        return int(resp.count or 0)

    @staticmethod
    def _apply_filters(query: Any, filters: Mapping[str, Any] | None) -> Any:
        filters = filters or {}
        q = filters.get("q")
        if isinstance(q, str) and q.strip():
            term = q.strip().translate(_FILTER_RESERVED)
            query = query.or_(f"title.ilike.%{term}%,description.ilike.%{term}%,url.ilike.%{term}%")
        for key in ("unread", "shared"):
            value = filters.get(key)
            if isinstance(value, bool):
                query = query.eq(key, value)
        return query

    @staticmethod
    def _row_to_bookmark(row: dict[str, Any]) -> Bookmark:
        normalized = dict(row)
        if normalized.get("tag_names") is None:
            normalized["tag_names"] = []
        for field in ("title", "description", "notes"):
            if normalized.get(field) is None:
                normalized[field] = ""
        return Bookmark.model_validate(normalized)
