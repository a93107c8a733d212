from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


class AppBaseModel(PydanticBaseModel):
    """Base model for all domain models."""

    model_config = ConfigDict(
        from_attributes=True,
        extra="forbid",
        populate_by_name=True,
    )


class TimestampedModel(AppBaseModel):
    """Base model with creation/modification timestamps."""

    date_added: datetime = Field(default_factory=utcnow)
    date_modified: datetime = Field(default_factory=utcnow)
