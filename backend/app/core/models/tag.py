from __future__ import annotations

from datetime import datetime  # noqa: TCH003
from enum import Enum

from pydantic import Field

from .base import AppBaseModel, utcnow


class TagCategory(str, Enum):
    """Lifecycle state of a tag. Promotion only moves right:
    candidate -> dynamic -> fixed. Core is assigned externally and never promoted.
    """

    CORE = "core"
    FIXED = "fixed"
    DYNAMIC = "dynamic"
    CANDIDATE = "candidate"


class Tag(AppBaseModel):
    """Shared tag referenced by bookmarks through an association."""

    id: int
    name: str
    category: TagCategory = TagCategory.CANDIDATE
    usage_count: int = Field(default=0, ge=0)
    last_used: datetime = Field(default_factory=utcnow)
    date_added: datetime = Field(default_factory=utcnow)


class TagSynonym(AppBaseModel):
    """Audit edge written on every merge. Never read back by the optimizer."""

    main_tag_id: int
    synonym_tag_id: int
    synonym_name: str = ""
    similarity_score: float = 0.0
    auto_merged: bool = False
    date_added: datetime = Field(default_factory=utcnow)
