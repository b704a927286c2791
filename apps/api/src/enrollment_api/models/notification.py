"""Customer and business notification records."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Enum as SqlEnum, JSON, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from enrollment_api.db.base import Base, enum_values


class NotificationKind(str, Enum):
    ENROLLMENT_REQUEST = "enrollment_request"
    ENROLLMENT_SUCCESS = "enrollment_success"
    ENROLLMENT_DECLINED = "enrollment_declined"
    CARD_CREATED = "card_created"
    ENROLLMENT_ACCEPTED = "enrollment_accepted"
    ENROLLMENT_REJECTED = "enrollment_rejected"


class NotificationAudience(str, Enum):
    """Who the notification is shown to."""

    CUSTOMER = "customer"
    BUSINESS = "business"


class Notification(Base):
    """Inbox entry; delivery transports receive the row after it is written."""

    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(BigInteger, nullable=False, index=True)
    business_id = Column(BigInteger, nullable=False, index=True)
    audience = Column(
        SqlEnum(NotificationAudience, name="notification_audience", values_callable=enum_values),
        nullable=False,
        default=NotificationAudience.CUSTOMER,
    )
    kind = Column(
        SqlEnum(NotificationKind, name="notification_kind", values_callable=enum_values),
        nullable=False,
    )
    title = Column(String, nullable=False)
    message = Column(Text, nullable=True)
    payload = Column(JSON, nullable=False, default=dict)
    reference_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    requires_action = Column(Boolean, nullable=False, default=False)
    action_taken = Column(Boolean, nullable=False, default=False)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
