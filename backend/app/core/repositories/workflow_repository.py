from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.core.models.workflow import Workflow, WorkflowCreate


class WorkflowRepository(ABC):
    """Persistence for workflow definitions.

    Create and update write the workflow row and its trigger/action rows in a
    single transaction.
    """

    @abstractmethod
    async def create(self, data: WorkflowCreate) -> Workflow:  # pragma: no cover - interface only
        """Insert a workflow at priority max+1."""

    @abstractmethod
    async def get(self, workflow_id: int) -> Workflow | None:  # pragma: no cover
        """Fetch one workflow with its triggers and actions."""

    @abstractmethod
    async def list(self) -> Sequence[Workflow]:  # pragma: no cover
        """All workflows ordered by ascending priority."""

    @abstractmethod
    async def update(self, workflow_id: int, data: WorkflowCreate) -> Workflow | None:  # pragma: no cover
        """Replace fields and delete-then-reinsert triggers/actions. None if unknown."""

    @abstractmethod
    async def delete(self, workflow_id: int) -> bool:  # pragma: no cover
        """Delete a workflow and its triggers/actions."""

    @abstractmethod
    async def toggle(self, workflow_id: int) -> Workflow | None:  # pragma: no cover
        """Flip `enabled` atomically. None if unknown."""
