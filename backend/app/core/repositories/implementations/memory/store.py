from __future__ import annotations

import copy
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from app.core.models.base import utcnow
from app.core.models.tag import Tag, TagCategory, TagSynonym
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from app.core.models.bookmark import Bookmark
    from app.core.models.workflow import Workflow

logger = get_logger(__name__)


class InMemoryStore:
    """Process-local bookmark/tag/folder/workflow tables.

    All four in-memory repositories share one store. Every public operation
    holds the store lock; multi-table writes run inside `transaction()`, which
    restores the previous state if the block raises.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.bookmarks: dict[int, Bookmark] = {}
        self.tags: dict[int, Tag] = {}
        # bookmark id -> tag ids in association order
        self.bookmark_tags: dict[int, dict[int, None]] = defaultdict(dict)
        self.bookmark_folders: set[tuple[int, int]] = set()
        self.synonyms: list[TagSynonym] = []
        self.workflows: dict[int, Workflow] = {}
        self._sequences: dict[str, int] = defaultdict(int)

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._lock:
            yield

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield
            except BaseException:
                self._restore(snapshot)
                logger.debug("In-memory transaction rolled back")
                raise

    def next_id(self, table: str) -> int:
        self._sequences[table] += 1
        return self._sequences[table]

    # Bookmarks -------------------------------------------------------------

    def bookmark_with_tags(self, bookmark_id: int) -> Bookmark | None:
        row = self.bookmarks.get(bookmark_id)
        if row is None:
            return None
        names = [self.tags[tid].name for tid in self.bookmark_tags.get(bookmark_id, {}) if tid in self.tags]
        return row.model_copy(update={"tag_names": names})

    def find_bookmark_id_by_url(self, url: str) -> int | None:
        for bookmark_id, row in self.bookmarks.items():
            if row.url == url:
                return bookmark_id
        return None

    @staticmethod
    def matches_filters(bookmark: Bookmark, filters: Mapping[str, Any] | None) -> bool:
        if not filters:
            return True
        q = filters.get("q")
        if isinstance(q, str) and q:
            needle = q.casefold()
            haystacks = (bookmark.title, bookmark.description, bookmark.url)
            if not any(needle in h.casefold() for h in haystacks):
                return False
        for key in ("unread", "shared"):
            value = filters.get(key)
            if isinstance(value, bool) and getattr(bookmark, key) != value:
                return False
        return True

    def set_bookmark_tags(self, bookmark_id: int, names: list[str]) -> None:
        """Replace a bookmark's tag set. Only newly added associations count as usage."""
        previous = self.bookmark_tags.get(bookmark_id, {})
        current: dict[int, None] = {}
        for name in names:
            tag_id = self.get_or_create_tag(name)
            if tag_id in current:
                continue
            current[tag_id] = None
            if tag_id not in previous:
                self.increment_usage(tag_id)
        self.bookmark_tags[bookmark_id] = current

    # Tags ------------------------------------------------------------------

    def get_or_create_tag(self, name: str) -> int:
        for tag in self.tags.values():
            if tag.name == name:
                return tag.id
        tag_id = self.next_id("tags")
        self.tags[tag_id] = Tag(id=tag_id, name=name, category=TagCategory.CANDIDATE)
        return tag_id

    def tag_bookmark_ids(self, tag_id: int) -> list[int]:
        return [bid for bid, tag_ids in self.bookmark_tags.items() if tag_id in tag_ids]

    def move_associations(self, source_id: int, target_id: int) -> None:
        for tag_ids in self.bookmark_tags.values():
            if source_id not in tag_ids:
                continue
            # Rebuild to keep the target in the source's position.
            rebuilt: dict[int, None] = {}
            for tid in tag_ids:
                rebuilt[target_id if tid == source_id else tid] = None
            tag_ids.clear()
            tag_ids.update(rebuilt)

    def record_synonym(self, main_id: int, synonym_id: int, score: float, auto_merged: bool) -> None:
        for edge in self.synonyms:
            if edge.main_tag_id == main_id and edge.synonym_tag_id == synonym_id:
                return
        synonym = self.tags.get(synonym_id)
        self.synonyms.append(
            TagSynonym(
                main_tag_id=main_id,
                synonym_tag_id=synonym_id,
                synonym_name=synonym.name if synonym else "",
                similarity_score=score,
                auto_merged=auto_merged,
            )
        )

    def delete_tag(self, tag_id: int) -> None:
        self.tags.pop(tag_id, None)
        for tag_ids in self.bookmark_tags.values():
            tag_ids.pop(tag_id, None)

    def increment_usage(self, tag_id: int) -> None:
        tag = self.tags.get(tag_id)
        if tag is None:
            return
        self.tags[tag_id] = tag.model_copy(update={"usage_count": tag.usage_count + 1, "last_used": utcnow()})

    # Internals -------------------------------------------------------------

    def _snapshot(self) -> dict[str, Any]:
        return {
            "bookmarks": dict(self.bookmarks),
            "tags": dict(self.tags),
            "bookmark_tags": copy.deepcopy(self.bookmark_tags),
            "bookmark_folders": set(self.bookmark_folders),
            "synonyms": list(self.synonyms),
            "workflows": dict(self.workflows),
            "sequences": dict(self._sequences),
        }

    def _restore(self, snapshot: dict[str, Any]) -> None:
        self.bookmarks = snapshot["bookmarks"]
        self.tags = snapshot["tags"]
        self.bookmark_tags = snapshot["bookmark_tags"]
        self.bookmark_folders = snapshot["bookmark_folders"]
        self.synonyms = snapshot["synonyms"]
        self.workflows = snapshot["workflows"]
        self._sequences = defaultdict(int, snapshot["sequences"])
