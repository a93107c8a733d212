from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.v1.schemas.workflow import WorkflowApplyRequest
from app.core.exceptions import NotFoundError
from app.core.models.workflow import Workflow, WorkflowCreate
from app.core.schemas.workflow import WorkflowApplyReport
from app.core.services.workflow_engine import WorkflowEngine  # noqa: TCH001
from app.dependencies import get_workflow_engine

router = APIRouter()


@router.get("/", response_model=list[Workflow])
async def list_workflows(engine: WorkflowEngine = Depends(get_workflow_engine)):
    return list(await engine.list_workflows())


@router.post("/", response_model=Workflow, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    payload: WorkflowCreate,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    return await engine.create_workflow(payload)


@router.post("/apply", response_model=WorkflowApplyReport)
async def apply_workflows(
    payload: WorkflowApplyRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    """Run workflows over bookmarks in bulk. This can take a while on large libraries."""
    return await engine.apply_workflows_to_bookmarks(payload.workflow_ids, payload.bookmark_ids)


@router.get("/{workflow_id}", response_model=Workflow)
async def get_workflow(workflow_id: int, engine: WorkflowEngine = Depends(get_workflow_engine)):
    try:
        return await engine.get_workflow(workflow_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Workflow not found") from err


@router.put("/{workflow_id}", response_model=Workflow)
async def update_workflow(
    workflow_id: int,
    payload: WorkflowCreate,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    try:
        return await engine.update_workflow(workflow_id, payload)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Workflow not found") from err


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow(workflow_id: int, engine: WorkflowEngine = Depends(get_workflow_engine)):
    try:
        await engine.delete_workflow(workflow_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Workflow not found") from err
    return None


@router.post("/{workflow_id}/toggle", response_model=Workflow)
async def toggle_workflow(workflow_id: int, engine: WorkflowEngine = Depends(get_workflow_engine)):
    try:
        return await engine.toggle_workflow(workflow_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Workflow not found") from err
