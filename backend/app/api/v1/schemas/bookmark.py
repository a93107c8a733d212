from __future__ import annotations

from datetime import datetime  # noqa: TCH003

from pydantic import Field

from app.core.models.base import AppBaseModel


class BookmarkRead(AppBaseModel):
    id: int
    url: str
    title: str
    description: str
    notes: str
    is_favorite: bool
    unread: bool
    shared: bool
    tag_names: list[str] = Field(default_factory=list)
    date_added: datetime
    date_modified: datetime


class BookmarkListResponse(AppBaseModel):
    items: list[BookmarkRead]
    total: int
    limit: int
    offset: int


class EnhanceResponse(AppBaseModel):
    bookmark_id: int
    queued: bool = False
    updated: bool = False
