"""Read endpoints for program enrollments and reward cards."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from enrollment_api.api.dependencies.services import get_enrollment_service
from enrollment_api.api.errors import http_error
from enrollment_api.domain.exceptions import EnrollmentError
from enrollment_api.services.enrollment import EnrollmentService


router = APIRouter(prefix="/customers/{customer_id}/programs/{program_id}", tags=["Enrollments"])


class EnrollmentResponse(BaseModel):
    id: UUID
    customerId: int
    programId: UUID
    businessId: int
    status: str
    currentPoints: int
    enrolledAt: datetime
    lastActivityAt: Optional[datetime]


class RewardCardResponse(BaseModel):
    id: UUID
    customerId: int
    programId: UUID
    businessId: int
    cardNumber: str
    cardType: str
    tier: str
    pointsMultiplier: Decimal
    pointsBalance: int
    status: str


@router.get("/enrollment", response_model=EnrollmentResponse)
async def get_enrollment(
    customer_id: str,
    program_id: str,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> EnrollmentResponse:
    try:
        enrollment = await service.get_enrollment_status(customer_id, program_id)
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return EnrollmentResponse(
        id=enrollment.id,
        customerId=enrollment.customer_id,
        programId=enrollment.program_id,
        businessId=enrollment.business_id,
        status=enrollment.status.value,
        currentPoints=enrollment.current_points,
        enrolledAt=enrollment.enrolled_at,
        lastActivityAt=enrollment.last_activity_at,
    )


@router.get("/card", response_model=RewardCardResponse)
async def get_card(
    customer_id: str,
    program_id: str,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> RewardCardResponse:
    try:
        card = await service.get_card(customer_id, program_id)
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return RewardCardResponse(
        id=card.id,
        customerId=card.customer_id,
        programId=card.program_id,
        businessId=card.business_id,
        cardNumber=card.card_number,
        cardType=card.card_type,
        tier=card.tier.value,
        pointsMultiplier=card.points_multiplier,
        pointsBalance=card.points_balance,
        status=card.status.value,
    )
