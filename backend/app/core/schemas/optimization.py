from __future__ import annotations

from typing import Literal

from pydantic import Field

from app.core.models.base import AppBaseModel
from app.core.models.tag import TagCategory  # noqa: TCH001


class OptimizationAction(AppBaseModel):
    """One merge or promotion, proposed (preview) or applied."""

    type: Literal["merge", "promote"]
    # merge
    source: str | None = None
    target: str | None = None
    similarity: float | None = None
    affected_bookmarks: int | None = None
    # promote
    tag: str | None = None
    from_category: TagCategory | None = Field(default=None, alias="from")
    to_category: TagCategory | None = Field(default=None, alias="to")
    usage_count: int | None = None


class OptimizationSummary(AppBaseModel):
    total_merges: int = 0
    total_promotions: int = 0
    total_failures: int = 0
    tags_before: int = 0
    tags_after: int = 0


class OptimizationResult(AppBaseModel):
    preview: bool
    actions: list[OptimizationAction] = Field(default_factory=list)
    summary: OptimizationSummary = Field(default_factory=OptimizationSummary)
    errors: list[str] = Field(default_factory=list)


class TopTag(AppBaseModel):
    name: str
    count: int
    category: TagCategory


class TagStats(AppBaseModel):
    total: int = 0
    core: int = 0
    fixed: int = 0
    dynamic: int = 0
    candidate: int = 0
    optimization_needed: bool = False
    top_tags: list[TopTag] = Field(default_factory=list)
