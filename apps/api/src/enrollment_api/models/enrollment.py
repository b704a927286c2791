"""Program enrollments and the reward cards that mirror them."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    Enum as SqlEnum,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID

from enrollment_api.db.base import Base, enum_values


class EnrollmentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELLED = "cancelled"


class CardStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class CardTier(str, Enum):
    STANDARD = "standard"


class ProgramEnrollment(Base):
    """Accounting record of a customer's participation and points in a program."""

    __tablename__ = "program_enrollments"
    __table_args__ = (
        UniqueConstraint("customer_id", "program_id", name="uq_program_enrollments_customer_program"),
        CheckConstraint("current_points >= 0", name="current_points_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(BigInteger, nullable=False)
    program_id = Column(UUID(as_uuid=True), nullable=False)
    business_id = Column(BigInteger, nullable=False, index=True)
    status = Column(
        SqlEnum(EnrollmentStatus, name="program_enrollment_status", values_callable=enum_values),
        nullable=False,
        default=EnrollmentStatus.ACTIVE,
    )
    current_points = Column(Integer, nullable=False, default=0)
    enrolled_at = Column(DateTime(timezone=True), nullable=False)
    last_activity_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class RewardCard(Base):
    """Customer-facing card; ``points_balance`` mirrors the enrollment's points."""

    __tablename__ = "reward_cards"
    __table_args__ = (
        UniqueConstraint("customer_id", "program_id", name="uq_reward_cards_customer_program"),
        CheckConstraint("points_balance >= 0", name="points_balance_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    customer_id = Column(BigInteger, nullable=False)
    program_id = Column(UUID(as_uuid=True), nullable=False)
    business_id = Column(BigInteger, nullable=False, index=True)
    card_number = Column(String(32), nullable=False)
    card_type = Column(String(32), nullable=False, default="standard")
    tier = Column(
        SqlEnum(CardTier, name="reward_card_tier", values_callable=enum_values),
        nullable=False,
        default=CardTier.STANDARD,
    )
    points_multiplier = Column(Numeric(6, 2), nullable=False, default=1)
    points_balance = Column(Integer, nullable=False, default=0)
    status = Column(
        SqlEnum(CardStatus, name="reward_card_status", values_callable=enum_values),
        nullable=False,
        default=CardStatus.ACTIVE,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
