"""Request-scoped service wiring."""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_api.db.session import get_session
from enrollment_api.services.enrollment import EnrollmentService
from enrollment_api.services.notifications import NotificationInbox, NotificationPublisher


def get_notification_publisher(request: Request) -> NotificationPublisher | None:
    return getattr(request.app.state, "notification_publisher", None)


async def get_enrollment_service(
    session: AsyncSession = Depends(get_session),
    publisher: NotificationPublisher | None = Depends(get_notification_publisher),
) -> EnrollmentService:
    return EnrollmentService(session, publisher=publisher)


async def get_notification_inbox(session: AsyncSession = Depends(get_session)) -> NotificationInbox:
    return NotificationInbox(session)
