"""Customer and business notification inbox endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from enrollment_api.api.dependencies.services import get_notification_inbox
from enrollment_api.api.errors import http_error
from enrollment_api.domain.exceptions import EnrollmentError
from enrollment_api.domain.identifiers import (
    normalize_business_id,
    normalize_customer_id,
    normalize_notification_id,
)
from enrollment_api.models.notification import Notification
from enrollment_api.services.notifications import NotificationInbox


router = APIRouter(tags=["Notifications"])


class NotificationResponse(BaseModel):
    id: UUID
    customerId: int
    businessId: int
    audience: str
    kind: str
    title: str
    message: Optional[str]
    payload: dict[str, Any]
    referenceId: Optional[UUID]
    requiresAction: bool
    actionTaken: bool
    isRead: bool
    readAt: Optional[datetime]
    createdAt: datetime


class MarkAllReadResponse(BaseModel):
    marked: int


def _to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        customerId=notification.customer_id,
        businessId=notification.business_id,
        audience=notification.audience.value,
        kind=notification.kind.value,
        title=notification.title,
        message=notification.message,
        payload=notification.payload or {},
        referenceId=notification.reference_id,
        requiresAction=notification.requires_action,
        actionTaken=notification.action_taken,
        isRead=notification.is_read,
        readAt=notification.read_at,
        createdAt=notification.created_at,
    )


@router.get("/customers/{customer_id}/notifications", response_model=list[NotificationResponse])
async def list_customer_notifications(
    customer_id: str,
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=200),
    inbox: NotificationInbox = Depends(get_notification_inbox),
) -> list[NotificationResponse]:
    try:
        notifications = await inbox.list_customer_notifications(
            normalize_customer_id(customer_id),
            unread_only=unread_only,
            limit=limit,
        )
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return [_to_response(notification) for notification in notifications]


@router.post("/customers/{customer_id}/notifications/read-all", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    customer_id: str,
    inbox: NotificationInbox = Depends(get_notification_inbox),
) -> MarkAllReadResponse:
    try:
        marked = await inbox.mark_all_as_read(normalize_customer_id(customer_id))
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return MarkAllReadResponse(marked=marked)


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    inbox: NotificationInbox = Depends(get_notification_inbox),
) -> NotificationResponse:
    try:
        notification = await inbox.mark_as_read(normalize_notification_id(notification_id))
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return _to_response(notification)


@router.get("/businesses/{business_id}/notifications", response_model=list[NotificationResponse])
async def list_business_notifications(
    business_id: str,
    limit: int = Query(50, ge=1, le=200),
    inbox: NotificationInbox = Depends(get_notification_inbox),
) -> list[NotificationResponse]:
    try:
        notifications = await inbox.list_business_notifications(normalize_business_id(business_id), limit=limit)
    except EnrollmentError as exc:
        raise http_error(exc) from exc
    return [_to_response(notification) for notification in notifications]
