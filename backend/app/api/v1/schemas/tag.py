from __future__ import annotations

from app.core.models.base import AppBaseModel


class OptimizeRequest(AppBaseModel):
    dry_run: bool = True
    enable_merge: bool = True
    enable_promotion: bool = True
