"""Enrollment and reward-card provisioning.

Provisioning runs inside a caller-owned transaction; it never commits. The
decision of what to write is made by the pure ``plan_*`` functions, and the
write itself is an ``INSERT ... ON CONFLICT (customer_id, program_id) DO UPDATE``
whose ``WHERE`` clause repeats the plan's condition. A plan computed from rows
that another transaction has since changed therefore degrades to a no-op or to
the same update, never to a duplicate row.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_api.core.clock import utcnow
from enrollment_api.db.upsert import upsert_insert
from enrollment_api.domain.exceptions import ProvisioningError
from enrollment_api.models.enrollment import (
    CardStatus,
    CardTier,
    EnrollmentStatus,
    ProgramEnrollment,
    RewardCard,
)

CARD_NUMBER_PREFIX = "GC"
DEFAULT_CARD_TYPE = "standard"
DEFAULT_POINTS_MULTIPLIER = Decimal("1.00")


class EnrollmentAction(str, Enum):
    CREATE = "create"
    REACTIVATE = "reactivate"
    NONE = "none"


class CardAction(str, Enum):
    CREATE = "create"
    REACTIVATE = "reactivate"
    SYNC_BALANCE = "sync_balance"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class EnrollmentState:
    status: EnrollmentStatus
    current_points: int


@dataclass(frozen=True, slots=True)
class CardState:
    status: CardStatus
    points_balance: int


def plan_enrollment(existing: EnrollmentState | None) -> EnrollmentAction:
    """Create a missing enrollment, reactivate an inactive one, keep an active one.

    Reactivation keeps ``current_points``: points earned before a decline or
    cancellation stay with the customer.
    """

    if existing is None:
        return EnrollmentAction.CREATE
    if existing.status is not EnrollmentStatus.ACTIVE:
        return EnrollmentAction.REACTIVATE
    return EnrollmentAction.NONE


def plan_card(existing: CardState | None, *, enrollment_points: int) -> CardAction:
    """Decide how to bring the card in line with an active enrollment."""

    if existing is None:
        return CardAction.CREATE
    if existing.status is not CardStatus.ACTIVE:
        return CardAction.REACTIVATE
    if existing.points_balance != enrollment_points:
        return CardAction.SYNC_BALANCE
    return CardAction.NONE


def generate_card_number(now: datetime) -> str:
    """Display number such as ``GC-482913-0571``; not unique and never used as a key."""

    timestamp_part = int(now.timestamp() * 1000) % 1_000_000
    return f"{CARD_NUMBER_PREFIX}-{timestamp_part:06d}-{secrets.randbelow(10_000):04d}"


@dataclass(slots=True)
class ProvisioningOutcome:
    """Rows left behind by a provisioning pass and the actions that produced them."""

    enrollment: ProgramEnrollment
    card: RewardCard
    enrollment_action: EnrollmentAction
    card_action: CardAction

    @property
    def card_created(self) -> bool:
        return self.card_action is CardAction.CREATE

    @property
    def changed(self) -> bool:
        return self.enrollment_action is not EnrollmentAction.NONE or self.card_action is not CardAction.NONE


def _enrollment_state(enrollment: ProgramEnrollment | None) -> EnrollmentState | None:
    if enrollment is None:
        return None
    return EnrollmentState(status=enrollment.status, current_points=enrollment.current_points)


def _card_state(card: RewardCard | None) -> CardState | None:
    if card is None:
        return None
    return CardState(status=card.status, points_balance=card.points_balance)


class CardProvisioner:
    """Applies the provisioning plan for one (customer, program) pair."""

    def __init__(self, session: AsyncSession, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._session = session
        self._clock = clock

    async def provision(
        self,
        *,
        customer_id: int,
        program_id: UUID,
        business_id: int,
    ) -> ProvisioningOutcome:
        """Ensure an active enrollment and a matching active card exist."""

        now = self._clock()
        existing = await self.load_enrollment(customer_id, program_id)
        enrollment_action = plan_enrollment(_enrollment_state(existing))
        if enrollment_action is not EnrollmentAction.NONE:
            await self._upsert_enrollment(
                customer_id=customer_id,
                program_id=program_id,
                business_id=business_id,
                now=now,
            )

        enrollment = await self.load_enrollment(customer_id, program_id)
        if enrollment is None or enrollment.status is not EnrollmentStatus.ACTIVE:
            raise ProvisioningError(
                f"Enrollment for customer {customer_id} in program {program_id} is not active after upsert"
            )

        card, card_action = await self._ensure_card(enrollment, now)
        outcome = ProvisioningOutcome(
            enrollment=enrollment,
            card=card,
            enrollment_action=enrollment_action,
            card_action=card_action,
        )
        if outcome.changed:
            logger.info(
                "Provisioned enrollment and reward card",
                customer_id=customer_id,
                program_id=str(program_id),
                enrollment_action=enrollment_action.value,
                card_action=card_action.value,
                card_id=str(card.id),
                points_balance=card.points_balance,
            )
        return outcome

    async def repair_card(self, *, customer_id: int, program_id: UUID) -> ProvisioningOutcome | None:
        """Bring the card of an *active* enrollment back in line; ``None`` if not active.

        Unlike :meth:`provision` this never reactivates an enrollment.
        """

        enrollment = await self.load_enrollment(customer_id, program_id)
        if enrollment is None or enrollment.status is not EnrollmentStatus.ACTIVE:
            return None
        card, card_action = await self._ensure_card(enrollment, self._clock())
        return ProvisioningOutcome(
            enrollment=enrollment,
            card=card,
            enrollment_action=EnrollmentAction.NONE,
            card_action=card_action,
        )

    async def load_enrollment(self, customer_id: int, program_id: UUID) -> ProgramEnrollment | None:
        stmt = (
            select(ProgramEnrollment)
            .where(
                ProgramEnrollment.customer_id == customer_id,
                ProgramEnrollment.program_id == program_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def load_card(self, customer_id: int, program_id: UUID) -> RewardCard | None:
        stmt = (
            select(RewardCard)
            .where(
                RewardCard.customer_id == customer_id,
                RewardCard.program_id == program_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _ensure_card(self, enrollment: ProgramEnrollment, now: datetime) -> tuple[RewardCard, CardAction]:
        points = enrollment.current_points
        existing = await self.load_card(enrollment.customer_id, enrollment.program_id)
        card_action = plan_card(_card_state(existing), enrollment_points=points)
        if card_action is not CardAction.NONE:
            await self._upsert_card(enrollment, points=points, now=now)

        card = await self.load_card(enrollment.customer_id, enrollment.program_id)
        if card is None or card.status is not CardStatus.ACTIVE or card.points_balance != points:
            raise ProvisioningError(
                f"Reward card for customer {enrollment.customer_id} in program "
                f"{enrollment.program_id} does not mirror its enrollment after upsert"
            )
        return card, card_action

    async def _upsert_enrollment(
        self,
        *,
        customer_id: int,
        program_id: UUID,
        business_id: int,
        now: datetime,
    ) -> None:
        insert = upsert_insert(self._session, ProgramEnrollment)
        stmt = insert.values(
            id=uuid4(),
            customer_id=customer_id,
            program_id=program_id,
            business_id=business_id,
            status=EnrollmentStatus.ACTIVE,
            current_points=0,
            enrolled_at=now,
            last_activity_at=now,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_update(
            index_elements=[ProgramEnrollment.customer_id, ProgramEnrollment.program_id],
            set_={
                "status": EnrollmentStatus.ACTIVE,
                "last_activity_at": now,
                "updated_at": now,
            },
            where=ProgramEnrollment.status != EnrollmentStatus.ACTIVE,
        )
        await self._session.execute(stmt)

    async def _upsert_card(self, enrollment: ProgramEnrollment, *, points: int, now: datetime) -> None:
        insert = upsert_insert(self._session, RewardCard)
        stmt = insert.values(
            id=uuid4(),
            customer_id=enrollment.customer_id,
            program_id=enrollment.program_id,
            business_id=enrollment.business_id,
            card_number=generate_card_number(now),
            card_type=DEFAULT_CARD_TYPE,
            tier=CardTier.STANDARD,
            points_multiplier=DEFAULT_POINTS_MULTIPLIER,
            points_balance=points,
            status=CardStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_update(
            index_elements=[RewardCard.customer_id, RewardCard.program_id],
            set_={
                "status": CardStatus.ACTIVE,
                "points_balance": points,
                "updated_at": now,
            },
            where=or_(
                RewardCard.status != CardStatus.ACTIVE,
                RewardCard.points_balance != points,
            ),
        )
        await self._session.execute(stmt)


__all__ = [
    "CardAction",
    "CardProvisioner",
    "CardState",
    "EnrollmentAction",
    "EnrollmentState",
    "ProvisioningOutcome",
    "generate_card_number",
    "plan_card",
    "plan_enrollment",
]
