from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from app.core.models.tag import Tag, TagCategory


class TagRepository(ABC):
    """Abstract repository interface for the shared tag catalog."""

    @abstractmethod
    async def list(self) -> Sequence[Tag]:  # pragma: no cover - interface only
        """Return every tag ordered by name."""

    @abstractmethod
    async def get(self, tag_id: int) -> Tag | None:  # pragma: no cover
        """Fetch a tag by id."""

    @abstractmethod
    async def list_by_categories(self, categories: Iterable[TagCategory]) -> Sequence[Tag]:  # pragma: no cover
        """Return tags in the given categories, usage_count descending then name."""

    @abstractmethod
    async def update_category(self, tag_id: int, category: TagCategory) -> None:  # pragma: no cover
        """Persist a category change for one tag."""

    @abstractmethod
    async def get_bookmark_count(self, tag_id: int) -> int:  # pragma: no cover
        """Number of bookmarks currently associated with the tag."""

    @abstractmethod
    async def merge_bookmarks(self, source_id: int, target_id: int) -> None:  # pragma: no cover
        """Move every association of `source_id` to `target_id`, skipping duplicates."""

    @abstractmethod
    async def record_synonym(
        self, main_id: int, synonym_id: int, score: float, auto_merged: bool
    ) -> None:  # pragma: no cover
        """Append an audit edge. Duplicate edges are ignored."""

    @abstractmethod
    async def delete(self, tag_id: int) -> None:  # pragma: no cover
        """Delete a tag row and its associations."""

    @abstractmethod
    async def increment_usage(self, tag_id: int) -> None:  # pragma: no cover
        """Add one to usage_count and touch last_used."""

    @abstractmethod
    async def merge_tags(self, source_id: int, target_id: int) -> None:  # pragma: no cover
        """Merge `source_id` into `target_id` as one transaction.

        Transfers associations, records the synonym edge (target as main,
        similarity 0, auto-merged), deletes the source and increments the
        target's usage. Raises `MergeIncompleteError` if any step fails; the
        source tag is then left untouched.
        """

    @abstractmethod
    async def get_top_tags(self, limit: int) -> Sequence[Tag]:  # pragma: no cover
        """Most used tags (usage_count > 0), ties broken by name."""

    @abstractmethod
    async def count_by_category(self, category: TagCategory) -> int:  # pragma: no cover
        """Number of tags in a category."""
