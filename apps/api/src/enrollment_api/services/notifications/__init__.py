"""Notification service package."""

from .inbox import NotificationInbox
from .messages import build_decision_notifications, build_enrollment_request
from .publisher import (
    InMemoryNotificationPublisher,
    LoggingNotificationPublisher,
    NotificationPublisher,
    publish_safely,
    serialize_notification,
)

__all__ = [
    "InMemoryNotificationPublisher",
    "LoggingNotificationPublisher",
    "NotificationInbox",
    "NotificationPublisher",
    "build_decision_notifications",
    "build_enrollment_request",
    "publish_safely",
    "serialize_notification",
]
