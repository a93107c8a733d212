"""Shared fixtures: in-memory store, repositories, services and fake AI clients."""

from __future__ import annotations

import os

os.environ.setdefault("APP_STORAGE_BACKEND", "memory")
os.environ.setdefault("APP_AI_ENABLED", "false")

import pytest

from app.container import Repositories, build_memory_repositories
from app.core.models.bookmark import BookmarkCreate
from app.core.models.tag import Tag, TagCategory
from app.core.repositories.implementations.memory.store import InMemoryStore
from app.core.schemas.enrichment import BookmarkEnrichmentResult, PageMetadata
from app.core.services.tag_optimizer import TagOptimizer
from app.core.services.workflow_engine import WorkflowEngine


class FakeEnrichmentClient:
    """Records prompts and returns canned results."""

    def __init__(
        self,
        *,
        metadata: PageMetadata | None = None,
        result: BookmarkEnrichmentResult | None = None,
        scrape_error: Exception | None = None,
        complete_error: Exception | None = None,
    ) -> None:
        self.metadata = metadata or PageMetadata()
        self.result = result or BookmarkEnrichmentResult()
        self.scrape_error = scrape_error
        self.complete_error = complete_error
        self.scraped: list[str] = []
        self.prompts: list[str] = []

    async def scrape_metadata(self, url: str) -> PageMetadata:
        self.scraped.append(url)
        if self.scrape_error:
            raise self.scrape_error
        return self.metadata

    async def complete(self, prompt: str) -> BookmarkEnrichmentResult:
        self.prompts.append(prompt)
        if self.complete_error:
            raise self.complete_error
        return self.result


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def repos(store: InMemoryStore) -> Repositories:
    return build_memory_repositories(store)


@pytest.fixture
def workflow_engine(repos: Repositories) -> WorkflowEngine:
    return WorkflowEngine(repos.workflows, repos.bookmarks, repos.folders)


@pytest.fixture
def optimizer(repos: Repositories) -> TagOptimizer:
    return TagOptimizer(repos.tags)


@pytest.fixture
def fake_enrichment() -> FakeEnrichmentClient:
    return FakeEnrichmentClient()


@pytest.fixture
def enrichment_client_factory():
    return FakeEnrichmentClient


@pytest.fixture
def add_tag(store: InMemoryStore):
    """Insert a tag row directly with a given category and usage."""

    def _add(name: str, usage: int = 0, category: TagCategory = TagCategory.CANDIDATE) -> Tag:
        with store.locked():
            tag_id = store.next_id("tags")
            tag = Tag(id=tag_id, name=name, category=category, usage_count=usage)
            store.tags[tag_id] = tag
        return tag

    return _add


@pytest.fixture
def tag_bookmark(store: InMemoryStore):
    """Associate an existing tag with a bookmark without touching usage counts."""

    def _link(bookmark_id: int, tag: Tag) -> None:
        with store.locked():
            store.bookmark_tags[bookmark_id][tag.id] = None

    return _link


@pytest.fixture
def make_bookmark(repos: Repositories):
    async def _make(url: str, **fields):
        return await repos.bookmarks.create(BookmarkCreate(url=url, **fields))

    return _make
