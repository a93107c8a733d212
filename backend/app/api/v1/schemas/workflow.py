from __future__ import annotations

from pydantic import Field

from app.core.models.base import AppBaseModel


class WorkflowApplyRequest(AppBaseModel):
    """Empty lists select all enabled workflows / all bookmarks."""

    workflow_ids: list[int] = Field(default_factory=list)
    bookmark_ids: list[int] = Field(default_factory=list)
