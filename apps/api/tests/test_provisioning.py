import re
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from enrollment_api.models.enrollment import (
    CardStatus,
    CardTier,
    EnrollmentStatus,
    ProgramEnrollment,
    RewardCard,
)
from enrollment_api.services.enrollment.provisioning import (
    CardAction,
    CardProvisioner,
    CardState,
    EnrollmentAction,
    EnrollmentState,
    generate_card_number,
    plan_card,
    plan_enrollment,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def test_plan_enrollment_covers_every_state() -> None:
    assert plan_enrollment(None) is EnrollmentAction.CREATE
    assert plan_enrollment(EnrollmentState(EnrollmentStatus.INACTIVE, 10)) is EnrollmentAction.REACTIVATE
    assert plan_enrollment(EnrollmentState(EnrollmentStatus.CANCELLED, 0)) is EnrollmentAction.REACTIVATE
    assert plan_enrollment(EnrollmentState(EnrollmentStatus.ACTIVE, 5)) is EnrollmentAction.NONE


def test_plan_card_covers_every_state() -> None:
    assert plan_card(None, enrollment_points=0) is CardAction.CREATE
    assert plan_card(CardState(CardStatus.INACTIVE, 5), enrollment_points=5) is CardAction.REACTIVATE
    assert plan_card(CardState(CardStatus.ACTIVE, 3), enrollment_points=5) is CardAction.SYNC_BALANCE
    assert plan_card(CardState(CardStatus.ACTIVE, 5), enrollment_points=5) is CardAction.NONE


def test_card_number_format() -> None:
    assert re.fullmatch(r"GC-\d{6}-\d{4}", generate_card_number(NOW))


def test_standard_is_the_only_issued_tier() -> None:
    assert [tier.value for tier in CardTier] == ["standard"]
    assert RewardCard.__table__.c.tier.type.enums == ["standard"]


def _enrollment(customer_id: int, program_id, *, status: EnrollmentStatus, points: int) -> ProgramEnrollment:
    return ProgramEnrollment(
        customer_id=customer_id,
        program_id=program_id,
        business_id=9,
        status=status,
        current_points=points,
        enrolled_at=NOW,
    )


def _card(customer_id: int, program_id, *, status: CardStatus, points: int) -> RewardCard:
    return RewardCard(
        customer_id=customer_id,
        program_id=program_id,
        business_id=9,
        card_number="GC-000001-0001",
        points_balance=points,
        status=status,
    )


@pytest.mark.asyncio
async def test_provision_creates_enrollment_and_card(session_factory) -> None:
    program_id = uuid4()

    async with session_factory() as session:
        provisioner = CardProvisioner(session, clock=lambda: NOW)
        outcome = await provisioner.provision(customer_id=1, program_id=program_id, business_id=9)
        await session.commit()

    assert outcome.enrollment_action is EnrollmentAction.CREATE
    assert outcome.card_action is CardAction.CREATE
    assert outcome.card_created
    assert outcome.enrollment.status is EnrollmentStatus.ACTIVE
    assert outcome.enrollment.current_points == 0
    assert outcome.card.status is CardStatus.ACTIVE
    assert outcome.card.points_balance == 0
    assert outcome.card.tier is CardTier.STANDARD
    assert outcome.card.card_type == "standard"
    assert outcome.card.business_id == 9


@pytest.mark.asyncio
async def test_provision_reactivates_and_keeps_points(session_factory) -> None:
    program_id = uuid4()
    async with session_factory() as session:
        session.add(_enrollment(1, program_id, status=EnrollmentStatus.INACTIVE, points=150))
        session.add(_card(1, program_id, status=CardStatus.INACTIVE, points=150))
        await session.commit()

    async with session_factory() as session:
        outcome = await CardProvisioner(session, clock=lambda: NOW).provision(
            customer_id=1, program_id=program_id, business_id=9
        )
        await session.commit()

    assert outcome.enrollment_action is EnrollmentAction.REACTIVATE
    assert outcome.card_action is CardAction.REACTIVATE
    assert not outcome.card_created
    assert outcome.enrollment.current_points == 150
    assert outcome.card.points_balance == 150

    async with session_factory() as session:
        enrollments = (await session.execute(select(func.count()).select_from(ProgramEnrollment))).scalar_one()
        cards = (await session.execute(select(func.count()).select_from(RewardCard))).scalar_one()
    assert enrollments == 1
    assert cards == 1


@pytest.mark.asyncio
async def test_provision_is_a_no_op_when_consistent(session_factory) -> None:
    program_id = uuid4()
    async with session_factory() as session:
        session.add(_enrollment(1, program_id, status=EnrollmentStatus.ACTIVE, points=20))
        session.add(_card(1, program_id, status=CardStatus.ACTIVE, points=20))
        await session.commit()

    async with session_factory() as session:
        outcome = await CardProvisioner(session, clock=lambda: NOW).provision(
            customer_id=1, program_id=program_id, business_id=9
        )
        await session.commit()

    assert not outcome.changed


@pytest.mark.asyncio
async def test_repair_card_syncs_balance_but_never_reactivates_enrollment(session_factory) -> None:
    active_program, inactive_program = uuid4(), uuid4()
    async with session_factory() as session:
        session.add(_enrollment(1, active_program, status=EnrollmentStatus.ACTIVE, points=40))
        session.add(_card(1, active_program, status=CardStatus.ACTIVE, points=10))
        session.add(_enrollment(1, inactive_program, status=EnrollmentStatus.INACTIVE, points=5))
        await session.commit()

    async with session_factory() as session:
        provisioner = CardProvisioner(session, clock=lambda: NOW)
        synced = await provisioner.repair_card(customer_id=1, program_id=active_program)
        skipped = await provisioner.repair_card(customer_id=1, program_id=inactive_program)
        await session.commit()

    assert synced is not None
    assert synced.card_action is CardAction.SYNC_BALANCE
    assert synced.card.points_balance == 40
    assert skipped is None

    async with session_factory() as session:
        enrollment = (
            await session.execute(
                select(ProgramEnrollment).where(ProgramEnrollment.program_id == inactive_program)
            )
        ).scalar_one()
        card = (await session.execute(select(RewardCard).where(RewardCard.program_id == inactive_program))).scalar_one_or_none()
    assert enrollment.status is EnrollmentStatus.INACTIVE
    assert card is None
