from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from app.api.v1.schemas.bookmark import BookmarkListResponse, BookmarkRead, EnhanceResponse
from app.core.exceptions import DuplicateUrlError, EnrichmentError, NotFoundError, ValidationFailure
from app.core.models.bookmark import BookmarkCreate, BookmarkUpdate
from app.core.services.bookmark_service import BookmarkService  # noqa: TCH001
from app.dependencies import get_bookmark_service, get_container
from app.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/", response_model=BookmarkRead, status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    payload: BookmarkCreate,
    service: BookmarkService = Depends(get_bookmark_service),
):
    """Create a bookmark. An already stored URL updates that bookmark instead."""
    bookmark = await service.create_bookmark(payload)
    return BookmarkRead.model_validate(bookmark)


@router.get("/", response_model=BookmarkListResponse)
async def list_bookmarks(
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    q: str | None = None,
    unread: bool | None = None,
    shared: bool | None = None,
    service: BookmarkService = Depends(get_bookmark_service),
):
    filters: dict[str, Any] = {}
    if q:
        filters["q"] = q
    if unread is not None:
        filters["unread"] = unread
    if shared is not None:
        filters["shared"] = shared
    items, total = await service.list_bookmarks(limit=limit, offset=offset, filters=filters)
    return BookmarkListResponse(
        items=[BookmarkRead.model_validate(b) for b in items],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{bookmark_id}", response_model=BookmarkRead)
async def get_bookmark(
    bookmark_id: int,
    service: BookmarkService = Depends(get_bookmark_service),
):
    try:
        bookmark = await service.get_bookmark(bookmark_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Bookmark not found") from err
    return BookmarkRead.model_validate(bookmark)


@router.patch("/{bookmark_id}", response_model=BookmarkRead)
async def update_bookmark(
    bookmark_id: int,
    payload: BookmarkUpdate,
    service: BookmarkService = Depends(get_bookmark_service),
):
    try:
        bookmark = await service.update_bookmark(bookmark_id, payload)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Bookmark not found") from err
    except DuplicateUrlError as err:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err)) from err
    except ValidationFailure as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    return BookmarkRead.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: int,
    service: BookmarkService = Depends(get_bookmark_service),
):
    try:
        await service.delete_bookmark(bookmark_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Bookmark not found") from err
    return None


@router.post(
    "/{bookmark_id}/enhance",
    response_model=EnhanceResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def enhance_bookmark(
    bookmark_id: int,
    request: Request,
    service: BookmarkService = Depends(get_bookmark_service),
):
    """Re-run AI enrichment for one bookmark.

    Queued on the worker pool when async enrichment is on; otherwise the
    enrichment runs inline and the response says whether the bookmark changed.
    """
    container = get_container(request)
    if container.enrichment_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI enrichment is disabled",
        )

    try:
        if container.worker_pool is not None:
            queued = await service.request_enrichment(bookmark_id)
            if not queued:
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Enrichment queue is full",
                )
            return EnhanceResponse(bookmark_id=bookmark_id, queued=True)

        await service.get_bookmark(bookmark_id)
        updated = await container.enrichment_service.enrich_bookmark(bookmark_id)
    except NotFoundError as err:
        raise HTTPException(status_code=404, detail="Bookmark not found") from err
    except EnrichmentError as err:
        logger.error("Inline enrichment failed for bookmark %s: %s", bookmark_id, err)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(err)) from err

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=EnhanceResponse(bookmark_id=bookmark_id, updated=updated).model_dump(),
    )
