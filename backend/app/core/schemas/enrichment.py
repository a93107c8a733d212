from __future__ import annotations

from pydantic import ConfigDict, Field, field_validator

from app.core.models.base import AppBaseModel


class PageMetadata(AppBaseModel):
    """Metadata scraped from a page's <head>."""

    title: str = ""
    description: str = ""
    og_title: str = ""
    og_description: str = ""

    @property
    def best_title(self) -> str:
        return self.og_title or self.title

    @property
    def best_description(self) -> str:
        return self.og_description or self.description


class BookmarkEnrichmentResult(AppBaseModel):
    """Validated AI output: `{title, description, tags[]}`."""

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "examples": [
                {
                    "title": "FastAPI documentation",
                    "description": "Reference and tutorials for building APIs with FastAPI.",
                    "tags": ["python", "web", "api"],
                }
            ]
        },
    )

    title: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)

    @field_validator("title", "description", mode="before")
    @classmethod
    def none_to_empty(cls, v: object) -> object:
        return "" if v is None else v

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v: object) -> list[str]:
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("tags must be a list of strings")
        return [t.strip() for t in v if isinstance(t, str) and t.strip()]
