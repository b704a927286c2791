"""Create notifications, enrollment invitations, program enrollments and reward cards.

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = "20261018_01"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


notification_audience = sa.Enum("customer", "business", name="notification_audience")
notification_kind = sa.Enum(
    "enrollment_request",
    "enrollment_success",
    "enrollment_declined",
    "card_created",
    "enrollment_accepted",
    "enrollment_rejected",
    name="notification_kind",
)
invitation_status = sa.Enum("pending", "approved", "declined", "expired", name="enrollment_invitation_status")
enrollment_status = sa.Enum("active", "inactive", "cancelled", name="program_enrollment_status")
card_tier = sa.Enum("standard", name="reward_card_tier")
card_status = sa.Enum("active", "inactive", name="reward_card_status")


def upgrade() -> None:
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_id", sa.BigInteger(), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("audience", notification_audience, nullable=False),
        sa.Column("kind", notification_kind, nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("reference_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("requires_action", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("action_taken", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_notifications_customer_id", "notifications", ["customer_id"])
    op.create_index("ix_notifications_business_id", "notifications", ["business_id"])
    op.create_index("ix_notifications_reference_id", "notifications", ["reference_id"])

    op.create_table(
        "enrollment_invitations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_id", sa.BigInteger(), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("program_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", invitation_status, nullable=False, server_default="pending"),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notification_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ["notification_id"],
            ["notifications.id"],
            name="fk_enrollment_invitations_notification_id_notifications",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_enrollment_invitations_customer_id", "enrollment_invitations", ["customer_id"])
    op.create_index(
        "ix_enrollment_invitations_status_expires_at",
        "enrollment_invitations",
        ["status", "expires_at"],
    )
    op.create_index(
        "uq_enrollment_invitations_pending_pair",
        "enrollment_invitations",
        ["customer_id", "program_id"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "program_enrollments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_id", sa.BigInteger(), nullable=False),
        sa.Column("program_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("status", enrollment_status, nullable=False, server_default="active"),
        sa.Column("current_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("customer_id", "program_id", name="uq_program_enrollments_customer_program"),
        sa.CheckConstraint(
            "current_points >= 0",
            name="ck_program_enrollments_current_points_non_negative",
        ),
    )
    op.create_index("ix_program_enrollments_business_id", "program_enrollments", ["business_id"])

    op.create_table(
        "reward_cards",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_id", sa.BigInteger(), nullable=False),
        sa.Column("program_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("business_id", sa.BigInteger(), nullable=False),
        sa.Column("card_number", sa.String(length=32), nullable=False),
        sa.Column("card_type", sa.String(length=32), nullable=False, server_default="standard"),
        sa.Column("tier", card_tier, nullable=False, server_default="standard"),
        sa.Column("points_multiplier", sa.Numeric(6, 2), nullable=False, server_default="1"),
        sa.Column("points_balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", card_status, nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("customer_id", "program_id", name="uq_reward_cards_customer_program"),
        sa.CheckConstraint(
            "points_balance >= 0",
            name="ck_reward_cards_points_balance_non_negative",
        ),
    )
    op.create_index("ix_reward_cards_business_id", "reward_cards", ["business_id"])


def downgrade() -> None:
    op.drop_index("ix_reward_cards_business_id", table_name="reward_cards")
    op.drop_table("reward_cards")
    op.drop_index("ix_program_enrollments_business_id", table_name="program_enrollments")
    op.drop_table("program_enrollments")
    op.drop_index("uq_enrollment_invitations_pending_pair", table_name="enrollment_invitations")
    op.drop_index("ix_enrollment_invitations_status_expires_at", table_name="enrollment_invitations")
    op.drop_index("ix_enrollment_invitations_customer_id", table_name="enrollment_invitations")
    op.drop_table("enrollment_invitations")
    op.drop_index("ix_notifications_reference_id", table_name="notifications")
    op.drop_index("ix_notifications_business_id", table_name="notifications")
    op.drop_index("ix_notifications_customer_id", table_name="notifications")
    op.drop_table("notifications")

    bind = op.get_bind()
    for enum_type in (card_status, card_tier, enrollment_status, invitation_status, notification_kind, notification_audience):
        enum_type.drop(bind, checkfirst=True)
