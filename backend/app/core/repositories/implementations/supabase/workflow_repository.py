from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from app.core.models.workflow import Workflow
from app.core.repositories.workflow_repository import WorkflowRepository
from app.utils.logging import get_logger

from .base import SupabaseRepository

if TYPE_CHECKING:
    from collections.abc import Sequence

    from app.core.models.workflow import WorkflowCreate

logger = get_logger(__name__)


class SupabaseWorkflowRepository(SupabaseRepository, WorkflowRepository):
    """Workflow definitions. Trigger/action rows are rewritten by
    `create_workflow`/`update_workflow` inside one transaction.
    """

    TABLE_NAME = "workflows"
    VIEW_NAME = "workflows_full"

    async def create(self, data: WorkflowCreate) -> Workflow:
        workflow_id = await self._rpc("create_workflow", {"p_workflow": data.model_dump(mode="json")})
        created = await self.get(int(workflow_id))
        if created is None:
            raise LookupError(f"workflow {workflow_id} vanished after insert")
        return created

    async def get(self, workflow_id: int) -> Workflow | None:
        resp = await self._run(
            lambda: self._client.table(self.VIEW_NAME).select("*").eq("id", workflow_id).limit(1).execute()
        )
        row = self._first(resp.data)
        return self._row_to_workflow(row) if row else None

    async def list(self) -> Sequence[Workflow]:
        resp = await self._run(
            lambda: self._client.table(self.VIEW_NAME).select("*").order("priority").order("id").execute()
        )
        workflows: list[Workflow] = []
        for row in resp.data or []:
            try:
                workflows.append(self._row_to_workflow(row))
            except ValidationError as err:
                # One corrupt definition must not hide the others.
                logger.warning("Skipping unreadable workflow %s: %s", row.get("id"), err)
        return workflows

    async def update(self, workflow_id: int, data: WorkflowCreate) -> Workflow | None:
        updated_id = await self._rpc(
            "update_workflow", {"p_id": workflow_id, "p_workflow": data.model_dump(mode="json")}
        )
        if updated_id is None:
            return None
        return await self.get(workflow_id)

    async def delete(self, workflow_id: int) -> bool:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME).delete().eq("id", workflow_id).execute()
        )
        return len(resp.data or []) > 0

    async def toggle(self, workflow_id: int) -> Workflow | None:
        toggled_id = await self._rpc("toggle_workflow", {"p_id": workflow_id})
        if toggled_id is None:
            return None
        return await self.get(workflow_id)

    @staticmethod
    def _row_to_workflow(row: dict[str, Any]) -> Workflow:
        normalized = dict(row)
        normalized["triggers"] = normalized.get("triggers") or []
        normalized["actions"] = normalized.get("actions") or []
        if normalized.get("description") is None:
            normalized["description"] = ""
        return Workflow.model_validate(normalized)
