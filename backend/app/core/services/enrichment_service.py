from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from app.core.models.bookmark import MAX_TAG_LENGTH, MAX_TAGS, BookmarkCreate
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from app.core.models.bookmark import Bookmark
    from app.core.repositories.bookmark_repository import BookmarkRepository
    from app.core.schemas.enrichment import BookmarkEnrichmentResult, PageMetadata

logger = get_logger(__name__)

_RESPONSE_FORMAT = """Return only JSON in this format (no markdown code fences):
{{
  "title": "a concise title (at most 20 words)",
  "description": "a 100-150 word summary of the page's main point, purpose or value",
  "tags": ["tag1", "tag2", "tag3"]
}}

Requirements:
1. Keep the title short and clear{title_hint}
2. The description should capture the page's core value, not list its contents
3. Give 3-5 accurate category tags
4. Return only the JSON object, nothing else"""


class EnrichmentBackend(Protocol):
    async def scrape_metadata(self, url: str) -> PageMetadata: ...

    async def complete(self, prompt: str) -> BookmarkEnrichmentResult: ...


def build_prompt(url: str, metadata: PageMetadata | None) -> str:
    """Build the enrichment prompt. Without usable page metadata only the URL is sent."""
    page_title = metadata.best_title if metadata else ""
    page_description = metadata.best_description if metadata else ""

    if page_title or page_description:
        return (
            "Analyze this web page and return bookmark information as JSON.\n\n"
            f"URL: {url}\n"
            f"Page title: {page_title}\n"
            f"Page description: {page_description}\n\n"
            + _RESPONSE_FORMAT.format(title_hint=", based on the real page title")
        )
    return (
        "Analyze this web page URL and return bookmark information as JSON.\n\n"
        f"URL: {url}\n\n"
        + _RESPONSE_FORMAT.format(title_hint="")
    )


def merge_enrichment(bookmark: Bookmark, result: BookmarkEnrichmentResult) -> BookmarkCreate | None:
    """Fold an AI result into a bookmark.

    Title and description are replaced only by non-empty values; tags are
    appended when not already present (exact match). Returns None when nothing
    would change.
    """
    title = result.title.strip() or bookmark.title
    description = result.description.strip() or bookmark.description
    tags = list(bookmark.tag_names)
    for tag in result.tags:
        if tag not in tags and len(tag) <= MAX_TAG_LENGTH:
            tags.append(tag)
    tags = tags[:MAX_TAGS]

    if title == bookmark.title and description == bookmark.description and tags == bookmark.tag_names:
        return None

    current = BookmarkCreate.from_bookmark(bookmark).model_dump()
    return BookmarkCreate.model_validate(
        {**current, "title": title, "description": description, "tag_names": tags}
    )


class EnrichmentService:
    """Scrape -> prompt -> complete -> merge -> persist for one bookmark."""

    def __init__(self, bookmark_repo: BookmarkRepository, client: EnrichmentBackend) -> None:
        self._bookmarks = bookmark_repo
        self._client = client

    async def enrich_bookmark(self, bookmark_id: int) -> bool:
        """Enrich one bookmark. Returns True if it was updated.

        A failed scrape degrades to a URL-only prompt; completion failures
        propagate as `EnrichmentError`.
        """
        bookmark = await self._bookmarks.get(bookmark_id)
        if bookmark is None:
            logger.warning("Bookmark %s disappeared before enrichment", bookmark_id)
            return False

        metadata = None
        try:
            metadata = await self._client.scrape_metadata(bookmark.url)
        except Exception as err:
            logger.warning("Scrape failed for %s, falling back to URL only: %s", bookmark.url, err)

        result = await self._client.complete(build_prompt(bookmark.url, metadata))
        logger.debug("AI result for bookmark %s: %s", bookmark_id, result)

        update = merge_enrichment(bookmark, result)
        if update is None:
            logger.info("Enrichment produced no changes for bookmark %s", bookmark_id)
            return False

        await self._bookmarks.update(bookmark_id, update)
        logger.info("Enriched bookmark %s", bookmark_id)
        return True
