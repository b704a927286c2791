"""Builders for the enrollment notifications shown in customer and business inboxes."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from enrollment_api.models.notification import Notification, NotificationAudience, NotificationKind

DEFAULT_PROGRAM_LABEL = "the loyalty program"
DEFAULT_BUSINESS_LABEL = "the business"
DEFAULT_CUSTOMER_LABEL = "A customer"


def _names(payload: dict[str, Any] | None) -> tuple[str, str]:
    payload = payload or {}
    return (
        payload.get("programName") or DEFAULT_PROGRAM_LABEL,
        payload.get("businessName") or DEFAULT_BUSINESS_LABEL,
    )


def build_enrollment_request(
    *,
    invitation_id: UUID,
    customer_id: int,
    business_id: int,
    program_id: UUID,
    expires_at: datetime,
    now: datetime,
    program_name: str | None = None,
    business_name: str | None = None,
) -> Notification:
    """Customer-facing prompt paired 1:1 with an invitation."""

    payload: dict[str, Any] = {
        "invitationId": str(invitation_id),
        "programId": str(program_id),
        "businessId": business_id,
        "expiresAt": expires_at.isoformat(),
    }
    if program_name:
        payload["programName"] = program_name
    if business_name:
        payload["businessName"] = business_name
    program_label, _ = _names(payload)

    return Notification(
        id=uuid4(),
        customer_id=customer_id,
        business_id=business_id,
        audience=NotificationAudience.CUSTOMER,
        kind=NotificationKind.ENROLLMENT_REQUEST,
        title="Program Enrollment Request",
        message=f"{business_name or 'A business'} invited you to join {program_label}",
        payload=payload,
        reference_id=invitation_id,
        requires_action=True,
        action_taken=False,
        is_read=False,
        created_at=now,
    )


def build_decision_notifications(
    *,
    invitation_id: UUID,
    customer_id: int,
    business_id: int,
    program_id: UUID,
    approved: bool,
    now: datetime,
    request_payload: dict[str, Any] | None = None,
    card_id: UUID | None = None,
    card_created: bool = False,
) -> list[Notification]:
    """Informational notifications written by the invitation's resolver."""

    program_label, business_label = _names(request_payload)
    base_payload: dict[str, Any] = {
        "invitationId": str(invitation_id),
        "programId": str(program_id),
        "customerId": customer_id,
        "approved": approved,
    }
    for key in ("programName", "businessName"):
        if request_payload and request_payload.get(key):
            base_payload[key] = request_payload[key]

    def _build(audience: NotificationAudience, kind: NotificationKind, title: str, message: str, **extra: Any) -> Notification:
        return Notification(
            id=uuid4(),
            customer_id=customer_id,
            business_id=business_id,
            audience=audience,
            kind=kind,
            title=title,
            message=message,
            payload={**base_payload, **extra},
            reference_id=invitation_id,
            requires_action=False,
            action_taken=False,
            is_read=False,
            created_at=now,
        )

    if not approved:
        return [
            _build(
                NotificationAudience.CUSTOMER,
                NotificationKind.ENROLLMENT_DECLINED,
                "Enrollment Declined",
                f"You declined to join {program_label}",
            ),
            _build(
                NotificationAudience.BUSINESS,
                NotificationKind.ENROLLMENT_REJECTED,
                "Enrollment Declined",
                f"{DEFAULT_CUSTOMER_LABEL} has declined to join {program_label}",
            ),
        ]

    notifications = [
        _build(
            NotificationAudience.CUSTOMER,
            NotificationKind.ENROLLMENT_SUCCESS,
            "Enrollment Success",
            f"You have been enrolled in {program_label}",
            cardId=str(card_id) if card_id else None,
        ),
    ]
    if card_created:
        notifications.append(
            _build(
                NotificationAudience.CUSTOMER,
                NotificationKind.CARD_CREATED,
                "Loyalty Card Created",
                f"Your loyalty card for {program_label} at {business_label} is ready",
                cardId=str(card_id) if card_id else None,
            )
        )
    notifications.append(
        _build(
            NotificationAudience.BUSINESS,
            NotificationKind.ENROLLMENT_ACCEPTED,
            "Customer Joined Program",
            f"{DEFAULT_CUSTOMER_LABEL} has joined {program_label}",
        )
    )
    return notifications


__all__ = ["build_decision_notifications", "build_enrollment_request"]
