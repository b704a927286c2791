"""Read and read-state operations on customer and business inboxes."""

from __future__ import annotations

from datetime import datetime
from typing import Callable
from uuid import UUID

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_api.core.clock import utcnow
from enrollment_api.domain.exceptions import NotificationNotFound
from enrollment_api.models.notification import Notification, NotificationAudience


class NotificationInbox:
    """Listing and read-marking; ``action_taken`` is owned by the enrollment workflow."""

    def __init__(self, session: AsyncSession, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._session = session
        self._clock = clock

    async def list_customer_notifications(
        self,
        customer_id: int,
        *,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(
                Notification.customer_id == customer_id,
                Notification.audience == NotificationAudience.CUSTOMER,
            )
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def list_business_notifications(self, business_id: int, *, limit: int = 50) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(
                Notification.business_id == business_id,
                Notification.audience == NotificationAudience.BUSINESS,
            )
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def mark_as_read(self, notification_id: UUID) -> Notification:
        notification = await self._session.get(Notification, notification_id, populate_existing=True)
        if notification is None:
            raise NotificationNotFound(notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = self._clock()
            await self._session.commit()
        return notification

    async def mark_all_as_read(self, customer_id: int) -> int:
        stmt = (
            update(Notification)
            .where(
                Notification.customer_id == customer_id,
                Notification.audience == NotificationAudience.CUSTOMER,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.commit()
        marked = result.rowcount or 0
        logger.info("Marked customer notifications read", customer_id=customer_id, marked=marked)
        return marked


__all__ = ["NotificationInbox"]
