from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.core.exceptions import MergeIncompleteError, StorageError
from app.core.models.tag import Tag
from app.core.repositories.tag_repository import TagRepository

from .base import SupabaseRepository

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from app.core.models.tag import TagCategory

_COLUMNS = "id,name,category,usage_count,last_used,date_added"


class SupabaseTagRepository(SupabaseRepository, TagRepository):
    """Tag catalog stored in Postgres. Merges run in the `merge_tags` function."""

    TABLE_NAME = "tags"

    async def list(self) -> Sequence[Tag]:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME).select(_COLUMNS).order("name").execute()
        )
        return [self._row_to_tag(r) for r in resp.data or []]

    async def get(self, tag_id: int) -> Tag | None:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME).select(_COLUMNS).eq("id", tag_id).limit(1).execute()
        )
        row = self._first(resp.data)
        return self._row_to_tag(row) if row else None

    async def list_by_categories(self, categories: Iterable[TagCategory]) -> Sequence[Tag]:
        values = [c.value for c in categories]
        if not values:
            return []
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select(_COLUMNS)
            .in_("category", values)
            .order("usage_count", desc=True)
            .order("name")
            .execute()
        )
        return [self._row_to_tag(r) for r in resp.data or []]

    async def update_category(self, tag_id: int, category: TagCategory) -> None:
        await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .update({"category": category.value})
            .eq("id", tag_id)
            .execute()
        )

    async def get_bookmark_count(self, tag_id: int) -> int:
        resp = await self._run(
            lambda: self._client.table("bookmark_tags")
            .select("bookmark_id", count="exact")
            .eq("tag_id", tag_id)
            .limit(1)
            .execute()
        )
        return int(resp.count or 0)

    async def merge_bookmarks(self, source_id: int, target_id: int) -> None:
        await self._rpc("merge_tag_bookmarks", {"p_source_id": source_id, "p_target_id": target_id})

    async def record_synonym(self, main_id: int, synonym_id: int, score: float, auto_merged: bool) -> None:
        synonym = await self.get(synonym_id)
        await self._run(
            lambda: self._client.table("tag_synonyms")
            .upsert(
                {
                    "main_tag_id": main_id,
                    "synonym_tag_id": synonym_id,
                    "synonym_name": synonym.name if synonym else "",
                    "similarity_score": score,
                    "auto_merged": auto_merged,
                },
                on_conflict="main_tag_id,synonym_tag_id",
                ignore_duplicates=True,
            )
            .execute()
        )

    async def delete(self, tag_id: int) -> None:
        await self._run(lambda: self._client.table(self.TABLE_NAME).delete().eq("id", tag_id).execute())

    async def increment_usage(self, tag_id: int) -> None:
        await self._rpc("increment_tag_usage", {"p_tag_id": tag_id})

    async def merge_tags(self, source_id: int, target_id: int) -> None:
        try:
            await self._rpc("merge_tags", {"p_source_id": source_id, "p_target_id": target_id})
        except StorageError as err:
            raise MergeIncompleteError(source_id, target_id, str(err)) from err

    async def get_top_tags(self, limit: int) -> Sequence[Tag]:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select(_COLUMNS)
            .gt("usage_count", 0)
            .order("usage_count", desc=True)
            .order("name")
            .limit(limit)
            .execute()
        )
        return [self._row_to_tag(r) for r in resp.data or []]

    async def count_by_category(self, category: TagCategory) -> int:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("id", count="exact")
            .eq("category", category.value)
            .limit(1)
            .execute()
        )
        return int(resp.count or 0)

    @staticmethod
    def _row_to_tag(row: dict[str, Any]) -> Tag:
        normalized = dict(row)
        if normalized.get("category") is None:
            normalized["category"] = "candidate"
        if normalized.get("usage_count") is None:
            normalized["usage_count"] = 0
        if normalized.get("last_used") is None:
            normalized["last_used"] = normalized.get("date_added")
        return Tag.model_validate(normalized)
