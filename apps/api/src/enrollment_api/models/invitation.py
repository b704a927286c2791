"""Enrollment invitations (approval requests) issued by businesses."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import BigInteger, Column, DateTime, Enum as SqlEnum, ForeignKey, Index, func, text
from sqlalchemy.dialects.postgresql import UUID

from enrollment_api.db.base import Base, enum_values


class InvitationStatus(str, Enum):
    """Lifecycle statuses; everything except PENDING is terminal."""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    EXPIRED = "expired"


# Only one open invitation may exist per customer/program pair. The index is the
# duplicate guard; application code never checks first.
PENDING_PAIR_INDEX = "uq_enrollment_invitations_pending_pair"
_PENDING_ONLY = text("status = 'pending'")


class Invitation(Base):
    """Audit-trail record of an enrollment invitation; rows are never deleted."""

    __tablename__ = "enrollment_invitations"
    __table_args__ = (
        Index(
            PENDING_PAIR_INDEX,
            "customer_id",
            "program_id",
            unique=True,
            postgresql_where=_PENDING_ONLY,
            sqlite_where=_PENDING_ONLY,
        ),
        Index("ix_enrollment_invitations_status_expires_at", "status", "expires_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(BigInteger, nullable=False, index=True)
    business_id = Column(BigInteger, nullable=False)
    program_id = Column(UUID(as_uuid=True), nullable=False)
    status = Column(
        SqlEnum(InvitationStatus, name="enrollment_invitation_status", values_callable=enum_values),
        nullable=False,
        default=InvitationStatus.PENDING,
    )
    requested_at = Column(DateTime(timezone=True), nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    notification_id = Column(
        UUID(as_uuid=True),
        ForeignKey("notifications.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
