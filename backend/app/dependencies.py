from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import HTTPException, Request, status

if TYPE_CHECKING:
    from app.container import AutomationContainer
    from app.core.services.bookmark_service import BookmarkService
    from app.core.services.tag_optimizer import TagOptimizer
    from app.core.services.workflow_engine import WorkflowEngine


def get_container(request: Request) -> AutomationContainer:
    """Return the container built by the application lifespan."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return container


def get_bookmark_service(request: Request) -> BookmarkService:
    return get_container(request).bookmark_service


def get_workflow_engine(request: Request) -> WorkflowEngine:
    return get_container(request).workflow_engine


def get_tag_optimizer(request: Request) -> TagOptimizer:
    return get_container(request).tag_optimizer
