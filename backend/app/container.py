from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from app.background.enrichment import EnrichmentWorkerPool
from app.background.optimization import TagOptimizationScheduler
from app.clients.enrichment_client import EnrichmentClient
from app.core.repositories.implementations.memory.repositories import (
    InMemoryBookmarkRepository,
    InMemoryFolderRepository,
    InMemoryTagRepository,
    InMemoryWorkflowRepository,
)
from app.core.repositories.implementations.memory.store import InMemoryStore
from app.core.services.bookmark_service import BookmarkService
from app.core.services.enrichment_service import EnrichmentBackend, EnrichmentService
from app.core.services.tag_optimizer import TagOptimizer
from app.core.services.workflow_engine import WorkflowEngine
from app.utils.logging import get_logger
from app.utils.openai_client import create_openai_client

if TYPE_CHECKING:
    from app.config import Settings
    from app.core.repositories.bookmark_repository import BookmarkRepository
    from app.core.repositories.folder_repository import FolderRepository
    from app.core.repositories.tag_repository import TagRepository
    from app.core.repositories.workflow_repository import WorkflowRepository

logger = get_logger(__name__)


@dataclass
class Repositories:
    bookmarks: BookmarkRepository
    tags: TagRepository
    folders: FolderRepository
    workflows: WorkflowRepository


@dataclass
class AutomationContainer:
    """Everything the HTTP layer needs, wired once per application."""

    settings: Settings
    repositories: Repositories
    workflow_engine: WorkflowEngine
    tag_optimizer: TagOptimizer
    bookmark_service: BookmarkService
    enrichment_service: EnrichmentService | None = None
    worker_pool: EnrichmentWorkerPool | None = None
    scheduler: TagOptimizationScheduler | None = None
    http_client: httpx.AsyncClient | None = field(default=None, repr=False)

    async def start(self) -> None:
        if self.worker_pool is not None:
            self.worker_pool.start()
        if self.scheduler is not None:
            self.scheduler.start()

    async def aclose(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.stop()
        if self.worker_pool is not None:
            await self.worker_pool.stop()
        if self.http_client is not None:
            await self.http_client.aclose()


def build_memory_repositories(store: InMemoryStore | None = None) -> Repositories:
    store = store or InMemoryStore()
    return Repositories(
        bookmarks=InMemoryBookmarkRepository(store),
        tags=InMemoryTagRepository(store),
        folders=InMemoryFolderRepository(store),
        workflows=InMemoryWorkflowRepository(store),
    )


def build_supabase_repositories(settings: Settings) -> Repositories:
    from app.core.repositories.implementations.supabase.bookmark_repository import (
        SupabaseBookmarkRepository,
    )
    from app.core.repositories.implementations.supabase.folder_repository import (
        SupabaseFolderRepository,
    )
    from app.core.repositories.implementations.supabase.tag_repository import (
        SupabaseTagRepository,
    )
    from app.core.repositories.implementations.supabase.workflow_repository import (
        SupabaseWorkflowRepository,
    )
    from app.db.base import create_supabase_admin_client

    client = create_supabase_admin_client(settings)
    return Repositories(
        bookmarks=SupabaseBookmarkRepository(client),
        tags=SupabaseTagRepository(client),
        folders=SupabaseFolderRepository(client),
        workflows=SupabaseWorkflowRepository(client),
    )


def build_container(
    settings: Settings,
    *,
    repositories: Repositories | None = None,
    enrichment_backend: EnrichmentBackend | None = None,
) -> AutomationContainer:
    """Wire repositories, services and background workers from settings.

    `repositories` and `enrichment_backend` override what the settings would
    build, which is how tests run without Supabase or network access.
    """
    if repositories is None:
        if settings.storage_backend == "memory":
            repositories = build_memory_repositories()
        else:
            repositories = build_supabase_repositories(settings)
    logger.info("Using %s storage backend", settings.storage_backend)

    workflow_engine = WorkflowEngine(
        repositories.workflows, repositories.bookmarks, repositories.folders
    )
    tag_optimizer = TagOptimizer(repositories.tags)

    http_client: httpx.AsyncClient | None = None
    enrichment_service: EnrichmentService | None = None
    worker_pool: EnrichmentWorkerPool | None = None
    if settings.ai_enabled:
        if enrichment_backend is None:
            http_client = httpx.AsyncClient()
            enrichment_backend = EnrichmentClient(
                http_client=http_client,
                openai_client=create_openai_client(settings),
                model=settings.ai_model,
                temperature=settings.ai_temperature,
                max_tokens=settings.ai_max_tokens,
                scrape_timeout=settings.scrape_timeout_seconds,
                scrape_max_bytes=settings.scrape_max_bytes,
                user_agent=settings.scrape_user_agent,
            )
        enrichment_service = EnrichmentService(repositories.bookmarks, enrichment_backend)
    if enrichment_service is not None and settings.async_enrichment_active:
        worker_pool = EnrichmentWorkerPool(
            enrichment_service.enrich_bookmark,
            worker_count=settings.ai_worker_count,
            queue_size=settings.enrichment_queue_size,
        )

    scheduler = None
    if settings.tag_optimize_interval_seconds > 0:
        scheduler = TagOptimizationScheduler(tag_optimizer, settings.tag_optimize_interval_seconds)

    bookmark_service = BookmarkService(
        repositories.bookmarks,
        workflow_engine,
        worker_pool,
        enable_async_ai=settings.async_enrichment_active,
    )

    return AutomationContainer(
        settings=settings,
        repositories=repositories,
        workflow_engine=workflow_engine,
        tag_optimizer=tag_optimizer,
        bookmark_service=bookmark_service,
        enrichment_service=enrichment_service,
        worker_pool=worker_pool,
        scheduler=scheduler,
        http_client=http_client,
    )
