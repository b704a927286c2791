"""Observability endpoints for enrollment workflow counters."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from enrollment_api.api.dependencies.security import require_admin_api_key
from enrollment_api.observability.enrollment import get_enrollment_store


router = APIRouter(prefix="/observability", tags=["Observability"])


@router.get(
    "/enrollment",
    dependencies=[Depends(require_admin_api_key)],
    summary="Enrollment workflow observability snapshot",
)
async def get_enrollment_snapshot() -> dict[str, object]:
    """Aggregated invitation, transition and reconciliation counters (requires admin API key)."""
    return get_enrollment_store().snapshot().as_dict()
