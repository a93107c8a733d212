from __future__ import annotations

from abc import ABC, abstractmethod


class FolderRepository(ABC):
    """Folder membership as seen by the automation core."""

    @abstractmethod
    async def add_bookmark(self, bookmark_id: int, folder_id: int) -> None:  # pragma: no cover - interface only
        """Add a bookmark to a folder. Re-adding an existing member is a no-op."""

    @abstractmethod
    async def remove_bookmark(self, bookmark_id: int, folder_id: int) -> None:  # pragma: no cover
        """Remove a bookmark from a folder if present."""

    @abstractmethod
    async def list_bookmark_folder_ids(self, bookmark_id: int) -> list[int]:  # pragma: no cover
        """Ids of the folders containing the bookmark."""
