from __future__ import annotations

from app.core.repositories.folder_repository import FolderRepository

from .base import SupabaseRepository


class SupabaseFolderRepository(SupabaseRepository, FolderRepository):
    TABLE_NAME = "bookmark_folders"

    async def add_bookmark(self, bookmark_id: int, folder_id: int) -> None:
        await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .upsert(
                {"bookmark_id": bookmark_id, "folder_id": folder_id},
                on_conflict="bookmark_id,folder_id",
                ignore_duplicates=True,
            )
            .execute()
        )

    async def remove_bookmark(self, bookmark_id: int, folder_id: int) -> None:
        await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .delete()
            .eq("bookmark_id", bookmark_id)
            .eq("folder_id", folder_id)
            .execute()
        )

    async def list_bookmark_folder_ids(self, bookmark_id: int) -> list[int]:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("folder_id")
            .eq("bookmark_id", bookmark_id)
            .order("folder_id")
            .execute()
        )
        return [int(r["folder_id"]) for r in resp.data or []]
