from __future__ import annotations

from fastapi import APIRouter, Body, Depends

from app.api.v1.schemas.tag import OptimizeRequest
from app.core.schemas.optimization import OptimizationResult, TagStats
from app.core.services.tag_optimizer import TagOptimizer  # noqa: TCH001
from app.dependencies import get_tag_optimizer

router = APIRouter()


@router.get("/stats", response_model=TagStats)
async def tag_stats(optimizer: TagOptimizer = Depends(get_tag_optimizer)):
    return await optimizer.get_stats()


@router.post("/optimize", response_model=OptimizationResult, response_model_exclude_none=True)
async def optimize_tags(
    payload: OptimizeRequest | None = Body(default=None),
    optimizer: TagOptimizer = Depends(get_tag_optimizer),
):
    """Promote and merge tags. Runs as a preview unless `dry_run` is false."""
    options = payload or OptimizeRequest()
    return await optimizer.optimize(
        dry_run=options.dry_run,
        enable_merge=options.enable_merge,
        enable_promotion=options.enable_promotion,
    )
