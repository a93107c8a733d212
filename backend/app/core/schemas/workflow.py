from __future__ import annotations

from pydantic import Field

from app.core.models.base import AppBaseModel


class WorkflowApplyReport(AppBaseModel):
    """Outcome of a bulk workflow run. Per-item failures are listed, not raised."""

    workflows: int = 0
    bookmarks: int = 0
    matches: int = 0
    actions_executed: int = 0
    errors: list[str] = Field(default_factory=list)
