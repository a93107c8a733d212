from __future__ import annotations

from fastapi import APIRouter

from .endpoints import bookmarks, health, tags, workflows

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(bookmarks.router, prefix="/bookmarks", tags=["bookmarks"])
api_router.include_router(workflows.router, prefix="/workflows", tags=["workflows"])
api_router.include_router(tags.router, prefix="/tags", tags=["tags"])
