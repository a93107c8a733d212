from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.models.tag import Tag, TagCategory
from app.core.schemas.optimization import (
    OptimizationAction,
    OptimizationResult,
    OptimizationSummary,
    TagStats,
    TopTag,
)
from app.core.services.similarity import similarity
from app.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.core.repositories.tag_repository import TagRepository

logger = get_logger(__name__)

DYNAMIC_USAGE_THRESHOLD = 3
FIXED_USAGE_THRESHOLD = 10
MERGE_SIMILARITY_THRESHOLD = 0.80
OPTIMIZATION_NEEDED_DYNAMIC_COUNT = 50
TOP_TAGS_LIMIT = 10

MERGEABLE_CATEGORIES = frozenset({TagCategory.DYNAMIC, TagCategory.CANDIDATE})


def next_category(tag: Tag) -> TagCategory | None:
    """Category a tag is promoted to on this pass, or None.

    Promotion moves at most one step: candidate -> dynamic -> fixed. Core and
    fixed tags are never touched.
    """
    if tag.category is TagCategory.CANDIDATE and tag.usage_count >= DYNAMIC_USAGE_THRESHOLD:
        return TagCategory.DYNAMIC
    if tag.category is TagCategory.DYNAMIC and tag.usage_count >= FIXED_USAGE_THRESHOLD:
        return TagCategory.FIXED
    return None


def choose_merge_direction(a: Tag, b: Tag) -> tuple[Tag, Tag]:
    """Return (source, target): the less used tag is merged away.

    Equal usage falls back to name order, the lexicographically smaller name
    being the source, so repeated runs over the same catalog agree.
    """
    if a.usage_count != b.usage_count:
        return (a, b) if a.usage_count < b.usage_count else (b, a)
    return (a, b) if a.name <= b.name else (b, a)


class TagOptimizer:
    """Promotes busy tags and folds near-duplicate tags into each other."""

    def __init__(self, tag_repo: TagRepository) -> None:
        self._tags = tag_repo

    async def optimize(
        self,
        *,
        dry_run: bool = True,
        enable_merge: bool = True,
        enable_promotion: bool = True,
    ) -> OptimizationResult:
        snapshot = list(await self._tags.list())
        result = OptimizationResult(
            preview=dry_run,
            summary=OptimizationSummary(tags_before=len(snapshot)),
        )
        logger.info(
            "Tag optimization started (dry_run=%s, merge=%s, promotion=%s, tags=%d)",
            dry_run,
            enable_merge,
            enable_promotion,
            len(snapshot),
        )

        categories = {tag.id: tag.category for tag in snapshot}
        if enable_promotion:
            await self._promote(snapshot, categories, result, dry_run=dry_run)
        if enable_merge:
            candidates = [t for t in snapshot if categories[t.id] in MERGEABLE_CATEGORIES]
            await self._merge(candidates, result, dry_run=dry_run)

        summary = result.summary
        summary.tags_after = summary.tags_before - summary.total_merges
        logger.info(
            "Tag optimization finished: %d promotions, %d merges, %d failures",
            summary.total_promotions,
            summary.total_merges,
            summary.total_failures,
        )
        return result

    async def _promote(
        self,
        snapshot: Sequence[Tag],
        categories: dict[int, TagCategory],
        result: OptimizationResult,
        *,
        dry_run: bool,
    ) -> None:
        for tag in snapshot:
            target = next_category(tag)
            if target is None:
                continue
            if not dry_run:
                try:
                    await self._tags.update_category(tag.id, target)
                except Exception as err:
                    logger.error("Failed to promote tag %s (%s): %s", tag.id, tag.name, err)
                    result.summary.total_failures += 1
                    result.errors.append(f"promote {tag.name}: {err}")
                    continue
            categories[tag.id] = target
            result.actions.append(
                OptimizationAction(
                    type="promote",
                    tag=tag.name,
                    from_category=tag.category,
                    to_category=target,
                    usage_count=tag.usage_count,
                )
            )
            result.summary.total_promotions += 1

    async def _merge(
        self,
        candidates: list[Tag],
        result: OptimizationResult,
        *,
        dry_run: bool,
    ) -> None:
        """Greedy pairwise merge.

        Dry runs still mark sources consumed, so a preview lists the same
        merges a real run would make.
        """
        if len(candidates) < 2:
            return
        candidates.sort(key=lambda t: (-t.usage_count, t.name))

        consumed: set[int] = set()
        for i, first in enumerate(candidates):
            if first.id in consumed:
                continue
            for second in candidates[i + 1 :]:
                if second.id in consumed:
                    continue
                score = similarity(first.name, second.name)
                if score <= MERGE_SIMILARITY_THRESHOLD:
                    continue

                source, target = choose_merge_direction(first, second)
                try:
                    affected = await self._tags.get_bookmark_count(source.id)
                    if not dry_run:
                        await self._tags.merge_tags(source.id, target.id)
                except Exception as err:
                    logger.error(
                        "Failed to merge tag %s (%s) into %s (%s): %s",
                        source.id,
                        source.name,
                        target.id,
                        target.name,
                        err,
                    )
                    result.summary.total_failures += 1
                    result.errors.append(f"merge {source.name} -> {target.name}: {err}")
                    continue

                consumed.add(source.id)
                result.actions.append(
                    OptimizationAction(
                        type="merge",
                        source=source.name,
                        target=target.name,
                        similarity=score,
                        affected_bookmarks=affected,
                    )
                )
                result.summary.total_merges += 1
                if source.id == first.id:
                    break

    async def get_stats(self) -> TagStats:
        counts = {
            category: await self._tags.count_by_category(category) for category in TagCategory
        }
        top = await self._tags.get_top_tags(TOP_TAGS_LIMIT)
        return TagStats(
            total=sum(counts.values()),
            core=counts[TagCategory.CORE],
            fixed=counts[TagCategory.FIXED],
            dynamic=counts[TagCategory.DYNAMIC],
            candidate=counts[TagCategory.CANDIDATE],
            optimization_needed=counts[TagCategory.DYNAMIC] > OPTIMIZATION_NEEDED_DYNAMIC_COUNT,
            top_tags=[TopTag(name=t.name, count=t.usage_count, category=t.category) for t in top],
        )
