from __future__ import annotations

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from app.dependencies import get_container

router = APIRouter()


@router.get("/")
async def health_check():
    """Health check endpoint."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "healthy",
            "service": "bookmark-automation-service",
            "version": "0.1.0"
        }
    )


@router.get("/ready")
async def readiness_check(request: Request):
    """Readiness check endpoint."""
    container = get_container(request)
    db_status = "connected"
    try:
        await container.repositories.bookmarks.count()
    except Exception as e:
        db_status = f"error: {str(e)}"

    pool = container.worker_pool
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "database": db_status,
            "storage_backend": container.settings.storage_backend,
            "ai_service": "enabled" if container.enrichment_service else "disabled",
            "enrichment_pool": pool.state.value if pool else "disabled",
            "enrichment_pending": pool.pending if pool else 0,
            "api_prefix": container.settings.api_prefix
        }
    )
