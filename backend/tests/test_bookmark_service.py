from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.exceptions import DuplicateUrlError, NotFoundError, ValidationFailure
from app.core.models.bookmark import BookmarkCreate, BookmarkUpdate
from app.core.models.workflow import WorkflowCreate
from app.core.services.bookmark_service import BookmarkService


class FakeQueue:
    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.submitted: list[int] = []

    def submit(self, bookmark_id: int) -> bool:
        self.submitted.append(bookmark_id)
        return self.accept


@pytest.fixture
def queue() -> FakeQueue:
    return FakeQueue()


@pytest.fixture
def service(repos, workflow_engine, queue) -> BookmarkService:
    return BookmarkService(repos.bookmarks, workflow_engine, queue)


class TestValidation:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("example.com/page", "https://example.com/page"),
            ("  http://example.com  ", "http://example.com"),
        ],
    )
    def test_url_normalisation(self, raw: str, expected: str) -> None:
        assert BookmarkCreate(url=raw).url == expected

    @pytest.mark.parametrize("raw", ["", "ftp://example.com", "https://"])
    def test_bad_urls(self, raw: str) -> None:
        with pytest.raises(ValidationError):
            BookmarkCreate(url=raw)

    def test_truncation_and_tag_cleanup(self) -> None:
        data = BookmarkCreate(
            url="example.com",
            title="t" * 250,
            notes="n" * 2500,
            tag_names=[" python ", "", "python", "web"],
        )

        assert len(data.title) == 200
        assert data.title.endswith("...")
        assert len(data.notes) == 2000
        assert data.tag_names == ["python", "web"]

    def test_tag_limits(self) -> None:
        with pytest.raises(ValidationError):
            BookmarkCreate(url="example.com", tag_names=[f"t{i}" for i in range(51)])
        with pytest.raises(ValidationError):
            BookmarkCreate(url="example.com", tag_names=["x" * 101])


class TestCreate:
    async def test_runs_workflows_and_queues_enrichment(
        self, service, workflow_engine, repos, queue
    ) -> None:
        await workflow_engine.create_workflow(
            WorkflowCreate(
                name="code",
                triggers=[{"trigger_type": "url_match", "config": {"value": "github.com"}}],
                actions=[{"action_type": "move_to_folder", "config": {"folder_id": 4}}],
            )
        )

        bookmark = await service.create_bookmark(BookmarkCreate(url="github.com/psf/black"))

        assert bookmark.url == "https://github.com/psf/black"
        assert await repos.folders.list_bookmark_folder_ids(bookmark.id) == [4]
        assert queue.submitted == [bookmark.id]

    async def test_duplicate_url_updates_existing(self, service, repos) -> None:
        first = await service.create_bookmark(BookmarkCreate(url="https://example.com", title="One"))
        second = await service.create_bookmark(
            BookmarkCreate(url="https://example.com", title="Two", tag_names=["x"])
        )

        assert second.id == first.id
        assert second.title == "Two"
        assert await repos.bookmarks.count() == 1

    async def test_async_ai_disabled_skips_queue(self, repos, workflow_engine, queue) -> None:
        service = BookmarkService(repos.bookmarks, workflow_engine, queue, enable_async_ai=False)
        await service.create_bookmark(BookmarkCreate(url="https://example.com"))
        assert queue.submitted == []

    async def test_workflow_failure_does_not_fail_write(
        self, service, workflow_engine, repos, monkeypatch
    ) -> None:
        async def broken(bookmark):
            raise RuntimeError("rules table locked")

        monkeypatch.setattr(workflow_engine, "execute_workflows_for_bookmark", broken)

        bookmark = await service.create_bookmark(BookmarkCreate(url="https://example.com"))

        assert await repos.bookmarks.get(bookmark.id) is not None


class TestTagUsage:
    async def test_only_new_associations_count(self, service, repos) -> None:
        bookmark = await service.create_bookmark(
            BookmarkCreate(url="https://example.com", tag_names=["a"])
        )
        await service.update_bookmark(bookmark.id, BookmarkUpdate(tag_names=["a", "b"]))
        await service.update_bookmark(bookmark.id, BookmarkUpdate(title="retitled"))

        usage = {t.name: t.usage_count for t in await repos.tags.list()}
        assert usage == {"a": 1, "b": 1}


class TestUpdateAndDelete:
    async def test_partial_update_keeps_other_fields(self, service) -> None:
        bookmark = await service.create_bookmark(
            BookmarkCreate(url="https://example.com", title="T", description="D", tag_names=["a"])
        )

        updated = await service.update_bookmark(bookmark.id, BookmarkUpdate(unread=True))

        assert updated.unread is True
        assert (updated.title, updated.description, updated.tag_names) == ("T", "D", ["a"])

    async def test_invalid_update(self, service) -> None:
        bookmark = await service.create_bookmark(BookmarkCreate(url="https://example.com"))
        with pytest.raises(ValidationFailure):
            await service.update_bookmark(bookmark.id, BookmarkUpdate(url="ftp://nope"))

    async def test_update_cannot_take_another_bookmarks_url(self, service, repos, queue) -> None:
        first = await service.create_bookmark(BookmarkCreate(url="https://a.example"))
        await service.create_bookmark(BookmarkCreate(url="https://b.example"))
        queue.submitted.clear()

        with pytest.raises(DuplicateUrlError):
            await service.update_bookmark(first.id, BookmarkUpdate(url="https://b.example"))

        assert (await repos.bookmarks.get(first.id)).url == "https://a.example"
        assert await repos.bookmarks.count() == 2
        assert queue.submitted == []

    async def test_unknown_ids(self, service) -> None:
        with pytest.raises(NotFoundError):
            await service.update_bookmark(42, BookmarkUpdate(title="x"))
        with pytest.raises(NotFoundError):
            await service.delete_bookmark(42)
        with pytest.raises(NotFoundError):
            await service.request_enrichment(42)

    async def test_delete_removes_bookmark(self, service, repos) -> None:
        bookmark = await service.create_bookmark(BookmarkCreate(url="https://example.com"))
        await service.delete_bookmark(bookmark.id)
        assert await repos.bookmarks.get(bookmark.id) is None


class TestListAndEnrichment:
    async def test_filters(self, service) -> None:
        await service.create_bookmark(BookmarkCreate(url="https://a.com", title="Rust book", unread=True))
        await service.create_bookmark(BookmarkCreate(url="https://b.com", title="Go tour"))

        items, total = await service.list_bookmarks(filters={"q": "rust"})
        assert total == 1
        assert items[0].url == "https://a.com"

        items, total = await service.list_bookmarks(filters={"unread": False})
        assert [b.url for b in items] == ["https://b.com"]

    async def test_request_enrichment(self, service, queue, repos, workflow_engine) -> None:
        bookmark = await service.create_bookmark(BookmarkCreate(url="https://example.com"))
        queue.submitted.clear()

        assert await service.request_enrichment(bookmark.id) is True
        assert queue.submitted == [bookmark.id]

        no_pool = BookmarkService(repos.bookmarks, workflow_engine, None)
        assert await no_pool.request_enrichment(bookmark.id) is False
