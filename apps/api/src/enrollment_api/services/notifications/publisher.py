"""Hand-off of committed notification rows to the delivery transport."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Protocol, Sequence

from loguru import logger

from enrollment_api.models.notification import Notification


class NotificationPublisher(Protocol):
    """Receives notification rows after the transaction that wrote them committed."""

    async def publish(self, notifications: Sequence[Notification]) -> None:
        ...


def serialize_notification(notification: Notification) -> dict[str, Any]:
    return {
        "id": str(notification.id),
        "customerId": notification.customer_id,
        "businessId": notification.business_id,
        "audience": notification.audience.value,
        "kind": notification.kind.value,
        "title": notification.title,
        "message": notification.message,
        "payload": dict(notification.payload or {}),
        "requiresAction": notification.requires_action,
        "actionTaken": notification.action_taken,
        "isRead": notification.is_read,
    }


class LoggingNotificationPublisher:
    """Default publisher: records the hand-off; real-time transports plug in instead."""

    async def publish(self, notifications: Sequence[Notification]) -> None:
        for notification in notifications:
            logger.bind(notification=serialize_notification(notification)).info(
                "Notification ready for delivery",
                notification_id=str(notification.id),
                kind=notification.kind.value,
            )


@dataclass
class InMemoryNotificationPublisher:
    """Stores published payloads for inspection in tests."""

    published: List[dict[str, Any]] = field(default_factory=list)

    async def publish(self, notifications: Sequence[Notification]) -> None:
        self.published.extend(serialize_notification(notification) for notification in notifications)


async def publish_safely(publisher: NotificationPublisher, notifications: Sequence[Notification]) -> None:
    """Publish after commit; a transport failure never undoes the committed write."""

    if not notifications:
        return
    try:
        await publisher.publish(notifications)
    except Exception as exc:
        logger.exception(
            "Notification hand-off failed",
            error=str(exc),
            notification_ids=[str(notification.id) for notification in notifications],
        )


__all__ = [
    "InMemoryNotificationPublisher",
    "LoggingNotificationPublisher",
    "NotificationPublisher",
    "publish_safely",
    "serialize_notification",
]
