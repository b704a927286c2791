"""Operator endpoints for invitation expiry and card reconciliation."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from enrollment_api.api.dependencies.security import require_admin_api_key
from enrollment_api.api.dependencies.services import get_enrollment_service
from enrollment_api.services.enrollment import EnrollmentService


router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin_api_key)],
)


@router.post("/enrollments/reconcile", summary="Repair reward cards that drifted from their enrollment")
async def reconcile_enrollments(
    batch_limit: Optional[int] = Query(None, alias="batchLimit", ge=1),
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict[str, Any]:
    summary = await service.reconcile(batch_limit=batch_limit)
    return summary.as_dict()


@router.post("/invitations/expire", summary="Expire pending invitations past their deadline")
async def expire_invitations(
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict[str, int]:
    expired = await service.expire_stale()
    return {"expired": expired}
