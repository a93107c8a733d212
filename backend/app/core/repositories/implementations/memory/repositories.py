from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.core.exceptions import DuplicateUrlError, MergeIncompleteError
from app.core.models.base import utcnow
from app.core.models.bookmark import Bookmark
from app.core.models.workflow import Workflow
from app.core.repositories.bookmark_repository import BookmarkRepository
from app.core.repositories.folder_repository import FolderRepository
from app.core.repositories.tag_repository import TagRepository
from app.core.repositories.workflow_repository import WorkflowRepository
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from app.core.models.bookmark import BookmarkCreate
    from app.core.models.tag import Tag, TagCategory
    from app.core.models.workflow import WorkflowCreate

    from .store import InMemoryStore

logger = get_logger(__name__)


class InMemoryBookmarkRepository(BookmarkRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def create(self, data: BookmarkCreate) -> Bookmark:
        with self._store.transaction():
            existing_id = self._store.find_bookmark_id_by_url(data.url)
            if existing_id is not None:
                logger.info("URL already stored (id=%s); updating instead", existing_id)
                return self._write(existing_id, data)

            bookmark_id = self._store.next_id("bookmarks")
            now = utcnow()
            self._store.bookmarks[bookmark_id] = Bookmark(
                id=bookmark_id,
                date_added=now,
                date_modified=now,
                **data.model_dump(exclude={"tag_names"}),
            )
            self._store.set_bookmark_tags(bookmark_id, data.tag_names)
            return self._store.bookmark_with_tags(bookmark_id)

    async def update(self, bookmark_id: int, data: BookmarkCreate) -> Bookmark | None:
        with self._store.transaction():
            if bookmark_id not in self._store.bookmarks:
                return None
            owner_id = self._store.find_bookmark_id_by_url(data.url)
            if owner_id is not None and owner_id != bookmark_id:
                raise DuplicateUrlError(data.url, owner_id)
            return self._write(bookmark_id, data)

    async def get(self, bookmark_id: int) -> Bookmark | None:
        with self._store.locked():
            return self._store.bookmark_with_tags(bookmark_id)

    async def get_by_url(self, url: str) -> Bookmark | None:
        with self._store.locked():
            bookmark_id = self._store.find_bookmark_id_by_url(url)
            return self._store.bookmark_with_tags(bookmark_id) if bookmark_id is not None else None

    async def list(
        self, *, limit: int = 50, offset: int = 0, filters: Mapping[str, Any] | None = None
    ) -> Sequence[Bookmark]:
        with self._store.locked():
            rows = [
                self._store.bookmark_with_tags(bid)
                for bid in self._store.bookmarks
            ]
        rows = [b for b in rows if self._store.matches_filters(b, filters)]
        rows.sort(key=lambda b: (b.date_added, b.id), reverse=True)
        return rows[offset : offset + limit]

    async def delete(self, bookmark_id: int) -> bool:
        with self._store.transaction():
            if self._store.bookmarks.pop(bookmark_id, None) is None:
                return False
            self._store.bookmark_tags.pop(bookmark_id, None)
            self._store.bookmark_folders = {
                pair for pair in self._store.bookmark_folders if pair[0] != bookmark_id
            }
            return True

    async def count(self, filters: Mapping[str, Any] | None = None) -> int:
        with self._store.locked():
            return sum(
                1
                for bid in self._store.bookmarks
                if self._store.matches_filters(self._store.bookmark_with_tags(bid), filters)
            )

    def _write(self, bookmark_id: int, data: BookmarkCreate) -> Bookmark:
        current = self._store.bookmarks[bookmark_id]
        self._store.bookmarks[bookmark_id] = current.model_copy(
            update={**data.model_dump(exclude={"tag_names"}), "date_modified": utcnow()}
        )
        self._store.set_bookmark_tags(bookmark_id, data.tag_names)
        return self._store.bookmark_with_tags(bookmark_id)


class InMemoryTagRepository(TagRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def list(self) -> Sequence[Tag]:
        with self._store.locked():
            tags = list(self._store.tags.values())
        return sorted(tags, key=lambda t: t.name)

    async def get(self, tag_id: int) -> Tag | None:
        with self._store.locked():
            return self._store.tags.get(tag_id)

    async def list_by_categories(self, categories: Iterable[TagCategory]) -> Sequence[Tag]:
        wanted = set(categories)
        with self._store.locked():
            tags = [t for t in self._store.tags.values() if t.category in wanted]
        return sorted(tags, key=lambda t: (-t.usage_count, t.name))

    async def update_category(self, tag_id: int, category: TagCategory) -> None:
        with self._store.locked():
            tag = self._store.tags.get(tag_id)
            if tag is not None:
                self._store.tags[tag_id] = tag.model_copy(update={"category": category})

    async def get_bookmark_count(self, tag_id: int) -> int:
        with self._store.locked():
            return len(self._store.tag_bookmark_ids(tag_id))

    async def merge_bookmarks(self, source_id: int, target_id: int) -> None:
        with self._store.transaction():
            self._store.move_associations(source_id, target_id)

    async def record_synonym(self, main_id: int, synonym_id: int, score: float, auto_merged: bool) -> None:
        with self._store.locked():
            self._store.record_synonym(main_id, synonym_id, score, auto_merged)

    async def delete(self, tag_id: int) -> None:
        with self._store.transaction():
            self._store.delete_tag(tag_id)

    async def increment_usage(self, tag_id: int) -> None:
        with self._store.locked():
            self._store.increment_usage(tag_id)

    async def merge_tags(self, source_id: int, target_id: int) -> None:
        try:
            with self._store.transaction():
                if source_id not in self._store.tags or target_id not in self._store.tags:
                    raise LookupError("source or target tag no longer exists")
                self._store.move_associations(source_id, target_id)
                self._store.record_synonym(target_id, source_id, 0.0, True)
                self._store.delete_tag(source_id)
                self._store.increment_usage(target_id)
        except Exception as err:
            raise MergeIncompleteError(source_id, target_id, str(err)) from err

    async def get_top_tags(self, limit: int) -> Sequence[Tag]:
        with self._store.locked():
            tags = [t for t in self._store.tags.values() if t.usage_count > 0]
        return sorted(tags, key=lambda t: (-t.usage_count, t.name))[:limit]

    async def count_by_category(self, category: TagCategory) -> int:
        with self._store.locked():
            return sum(1 for t in self._store.tags.values() if t.category == category)


class InMemoryFolderRepository(FolderRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def add_bookmark(self, bookmark_id: int, folder_id: int) -> None:
        with self._store.locked():
            self._store.bookmark_folders.add((bookmark_id, folder_id))

    async def remove_bookmark(self, bookmark_id: int, folder_id: int) -> None:
        with self._store.locked():
            self._store.bookmark_folders.discard((bookmark_id, folder_id))

    async def list_bookmark_folder_ids(self, bookmark_id: int) -> list[int]:
        with self._store.locked():
            return sorted(fid for bid, fid in self._store.bookmark_folders if bid == bookmark_id)


class InMemoryWorkflowRepository(WorkflowRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def create(self, data: WorkflowCreate) -> Workflow:
        with self._store.transaction():
            workflow_id = self._store.next_id("workflows")
            priority = max((w.priority for w in self._store.workflows.values()), default=0) + 1
            now = utcnow()
            workflow = Workflow(
                id=workflow_id,
                priority=priority,
                date_added=now,
                date_modified=now,
                **data.model_dump(),
            )
            self._store.workflows[workflow_id] = workflow
            return workflow

    async def get(self, workflow_id: int) -> Workflow | None:
        with self._store.locked():
            return self._store.workflows.get(workflow_id)

    async def list(self) -> Sequence[Workflow]:
        with self._store.locked():
            workflows = list(self._store.workflows.values())
        return sorted(workflows, key=lambda w: (w.priority, w.id))

    async def update(self, workflow_id: int, data: WorkflowCreate) -> Workflow | None:
        with self._store.transaction():
            current = self._store.workflows.get(workflow_id)
            if current is None:
                return None
            workflow = Workflow(
                id=workflow_id,
                priority=current.priority,
                date_added=current.date_added,
                date_modified=utcnow(),
                **data.model_dump(),
            )
            self._store.workflows[workflow_id] = workflow
            return workflow

    async def delete(self, workflow_id: int) -> bool:
        with self._store.transaction():
            return self._store.workflows.pop(workflow_id, None) is not None

    async def toggle(self, workflow_id: int) -> Workflow | None:
        with self._store.transaction():
            current = self._store.workflows.get(workflow_id)
            if current is None:
                return None
            toggled = current.model_copy(update={"enabled": not current.enabled, "date_modified": utcnow()})
            self._store.workflows[workflow_id] = toggled
            return toggled
