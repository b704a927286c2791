"""API endpoints for enrollment invitations and customer responses."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from enrollment_api.api.dependencies.services import get_enrollment_service
from enrollment_api.api.errors import http_error
from enrollment_api.domain.exceptions import EnrollmentError
from enrollment_api.models.invitation import Invitation
from enrollment_api.services.enrollment import EnrollmentService, InvitationResult


router = APIRouter(tags=["Invitations"])


class InvitationCreateRequest(BaseModel):
    customerId: int | str = Field(..., description="Customer being invited")
    businessId: int | str = Field(..., description="Business issuing the invitation")
    programId: str = Field(..., description="Loyalty program the customer is invited to")
    programName: Optional[str] = Field(None, description="Display name used in the notification")
    businessName: Optional[str] = Field(None, description="Display name used in the notification")
    ttlSeconds: Optional[int] = Field(None, gt=0, description="Override of the default invitation lifetime")


class InvitationCreateResponse(BaseModel):
    invitationId: UUID
    notificationId: UUID
    expiresAt: datetime


class InvitationResponse(BaseModel):
    id: UUID
    customerId: int
    businessId: int
    programId: UUID
    status: str
    requestedAt: datetime
    respondedAt: Optional[datetime]
    expiresAt: datetime
    notificationId: Optional[UUID]


class InvitationRespondRequest(BaseModel):
    decision: str = Field(..., description="Either 'approve' or 'decline'")


class InvitationResultResponse(BaseModel):
    invitationId: UUID
    status: str
    cardId: Optional[UUID] = None
    pointsBalance: Optional[int] = None
    enrollmentStatus: Optional[str] = None


def _to_invitation_response(invitation: Invitation) -> InvitationResponse:
    return InvitationResponse(
        id=invitation.id,
        customerId=invitation.customer_id,
        businessId=invitation.business_id,
        programId=invitation.program_id,
        status=invitation.status.value,
        requestedAt=invitation.requested_at,
        respondedAt=invitation.responded_at,
        expiresAt=invitation.expires_at,
        notificationId=invitation.notification_id,
    )


def _to_result_response(result: InvitationResult) -> InvitationResultResponse:
    return InvitationResultResponse(
        invitationId=result.invitation_id,
        status=result.status.value,
        cardId=result.card_id,
        pointsBalance=result.points_balance,
        enrollmentStatus=result.enrollment_status.value if result.enrollment_status else None,
    )


@router.post(
    "/invitations",
    response_model=InvitationCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a customer to a loyalty program",
)
async def create_invitation(
    payload: InvitationCreateRequest,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> InvitationCreateResponse:
    try:
        created = await service.create_invitation(
            payload.customerId,
            payload.businessId,
            payload.programId,
            ttl=timedelta(seconds=payload.ttlSeconds) if payload.ttlSeconds else None,
            program_name=payload.programName,
            business_name=payload.businessName,
        )
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return InvitationCreateResponse(
        invitationId=created.invitation_id,
        notificationId=created.notification_id,
        expiresAt=created.expires_at,
    )


@router.get("/invitations/{invitation_id}", response_model=InvitationResponse)
async def get_invitation(
    invitation_id: str,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> InvitationResponse:
    try:
        invitation = await service.get_invitation(invitation_id)
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return _to_invitation_response(invitation)


@router.get(
    "/customers/{customer_id}/invitations",
    response_model=list[InvitationResponse],
    summary="Pending invitations awaiting the customer's answer",
)
async def list_pending_invitations(
    customer_id: str,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> list[InvitationResponse]:
    try:
        invitations = await service.list_pending_invitations(customer_id)
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return [_to_invitation_response(invitation) for invitation in invitations]


@router.post(
    "/invitations/{invitation_id}/respond",
    response_model=InvitationResultResponse,
    summary="Approve or decline an invitation",
)
async def respond_to_invitation(
    invitation_id: str,
    payload: InvitationRespondRequest,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> InvitationResultResponse:
    try:
        result = await service.respond(invitation_id, payload.decision)
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return _to_result_response(result)
