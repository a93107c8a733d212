from __future__ import annotations

import re
from urllib.parse import urlsplit

from pydantic import Field, field_validator

from .base import AppBaseModel, TimestampedModel

MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 1000
MAX_NOTES_LENGTH = 2000
MAX_TAGS = 50
MAX_TAG_LENGTH = 100

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def normalize_url(value: str) -> str:
    """Trim, default the scheme to https and require an http(s) URL with a host."""
    url = (value or "").strip()
    if not url:
        raise ValueError("URL must not be empty")
    if not _SCHEME_RE.match(url):
        url = "https://" + url
    parts = urlsplit(url)
    if parts.scheme not in {"http", "https"}:
        raise ValueError(f"Unsupported URL scheme: {parts.scheme} (only http and https)")
    if not parts.netloc:
        raise ValueError("URL is missing a host")
    return url


def truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


def normalize_tag_names(tags: list[str]) -> list[str]:
    """Strip names, drop empties and exact duplicates, keep first-seen order."""
    if len(tags) > MAX_TAGS:
        raise ValueError(f"Too many tags (max {MAX_TAGS})")
    normalized: list[str] = []
    for tag in tags:
        name = (tag or "").strip()
        if not name:
            continue
        if len(name) > MAX_TAG_LENGTH:
            raise ValueError(f"Tag name too long: {name[:20]}... (max {MAX_TAG_LENGTH})")
        if name not in normalized:
            normalized.append(name)
    return normalized


class Bookmark(TimestampedModel):
    """Bookmark domain model. URL is the unique key."""

    id: int
    url: str
    title: str = ""
    description: str = ""
    notes: str = ""
    is_favorite: bool = False
    unread: bool = False
    shared: bool = False
    tag_names: list[str] = Field(default_factory=list)


class BookmarkCreate(AppBaseModel):
    """Validated input for creating (or upserting) a bookmark."""

    url: str
    title: str = ""
    description: str = ""
    notes: str = ""
    is_favorite: bool = False
    unread: bool = False
    shared: bool = False
    tag_names: list[str] = Field(default_factory=list)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return normalize_url(v)

    @field_validator("title")
    @classmethod
    def truncate_title(cls, v: str) -> str:
        return truncate(v, MAX_TITLE_LENGTH)

    @field_validator("description")
    @classmethod
    def truncate_description(cls, v: str) -> str:
        return truncate(v, MAX_DESCRIPTION_LENGTH)

    @field_validator("notes")
    @classmethod
    def truncate_notes(cls, v: str) -> str:
        return truncate(v, MAX_NOTES_LENGTH)

    @field_validator("tag_names")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return normalize_tag_names(v)

    @classmethod
    def from_bookmark(cls, bookmark: Bookmark) -> BookmarkCreate:
        return cls(
            url=bookmark.url,
            title=bookmark.title,
            description=bookmark.description,
            notes=bookmark.notes,
            is_favorite=bookmark.is_favorite,
            unread=bookmark.unread,
            shared=bookmark.shared,
            tag_names=list(bookmark.tag_names),
        )


class BookmarkUpdate(AppBaseModel):
    """Partial update; unset fields keep their stored values."""

    url: str | None = None
    title: str | None = None
    description: str | None = None
    notes: str | None = None
    is_favorite: bool | None = None
    unread: bool | None = None
    shared: bool | None = None
    tag_names: list[str] | None = None
