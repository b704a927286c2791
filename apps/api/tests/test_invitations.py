import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from enrollment_api.domain.exceptions import DuplicatePendingInvitation, InvalidIdentifier, InvitationNotFound
from enrollment_api.models.enrollment import ProgramEnrollment, RewardCard
from enrollment_api.models.invitation import Invitation, InvitationStatus
from enrollment_api.models.notification import Notification, NotificationAudience, NotificationKind
from enrollment_api.observability.enrollment import get_enrollment_store
from enrollment_api.services.enrollment import EnrollmentService

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _clock(value: datetime):
    return lambda: value


@pytest.mark.asyncio
async def test_create_invitation_writes_invitation_and_request_notification(session_factory, publisher) -> None:
    program_id = uuid4()

    async with session_factory() as session:
        service = EnrollmentService(session, publisher=publisher, clock=_clock(NOW))
        created = await service.create_invitation(
            "42", 7, str(program_id), program_name="Coffee Club", business_name="Bean There"
        )

    assert created.expires_at == NOW + timedelta(days=7)

    async with session_factory() as session:
        invitation = await session.get(Invitation, created.invitation_id)
        notification = await session.get(Notification, created.notification_id)

    assert invitation.status is InvitationStatus.PENDING
    assert invitation.customer_id == 42
    assert invitation.business_id == 7
    assert invitation.program_id == program_id
    assert invitation.notification_id == notification.id

    assert notification.kind is NotificationKind.ENROLLMENT_REQUEST
    assert notification.audience is NotificationAudience.CUSTOMER
    assert notification.requires_action is True
    assert notification.action_taken is False
    assert notification.payload["programId"] == str(program_id)
    assert notification.payload["businessId"] == 7
    assert notification.payload["invitationId"] == str(created.invitation_id)
    assert "expiresAt" in notification.payload
    assert notification.message == "Bean There invited you to join Coffee Club"

    assert [item["kind"] for item in publisher.published] == ["enrollment_request"]
    assert get_enrollment_store().snapshot().invitations["created"] == 1


@pytest.mark.asyncio
async def test_create_invitation_has_no_enrollment_side_effects(session_factory) -> None:
    async with session_factory() as session:
        await EnrollmentService(session, clock=_clock(NOW)).create_invitation(1, 2, uuid4())

    async with session_factory() as session:
        assert (await session.execute(select(ProgramEnrollment))).first() is None
        assert (await session.execute(select(RewardCard))).first() is None


@pytest.mark.asyncio
async def test_second_pending_invitation_for_the_pair_is_rejected(session_factory, publisher) -> None:
    program_id = uuid4()

    async with session_factory() as session:
        service = EnrollmentService(session, publisher=publisher, clock=_clock(NOW))
        await service.create_invitation(42, 7, program_id)
        with pytest.raises(DuplicatePendingInvitation) as excinfo:
            await service.create_invitation("42", 8, str(program_id))

    assert excinfo.value.reason_code == "duplicate_pending_invitation"
    assert excinfo.value.http_status == 409

    async with session_factory() as session:
        invitations = list((await session.execute(select(Invitation))).scalars())
        notifications = list((await session.execute(select(Notification))).scalars())
    assert len(invitations) == 1
    assert len(notifications) == 1
    assert len(publisher.published) == 1
    assert get_enrollment_store().snapshot().invitations["duplicate"] == 1


@pytest.mark.asyncio
async def test_concurrent_creates_for_the_pair_yield_one_invitation(session_factory, publisher) -> None:
    program_id = uuid4()

    async def _create():
        async with session_factory() as session:
            service = EnrollmentService(session, publisher=publisher, clock=_clock(NOW))
            try:
                return await service.create_invitation(1, 2, program_id)
            except DuplicatePendingInvitation as exc:
                return exc

    results = await asyncio.gather(*[_create() for _ in range(20)])

    created = [result for result in results if not isinstance(result, DuplicatePendingInvitation)]
    rejected = [result for result in results if isinstance(result, DuplicatePendingInvitation)]
    assert len(created) == 1
    assert len(rejected) == 19

    async with session_factory() as session:
        invitations = list((await session.execute(select(Invitation))).scalars())
        notifications = list((await session.execute(select(Notification))).scalars())
    assert [invitation.id for invitation in invitations] == [created[0].invitation_id]
    assert invitations[0].status is InvitationStatus.PENDING
    assert [notification.id for notification in notifications] == [created[0].notification_id]
    assert len(publisher.published) == 1
    assert get_enrollment_store().snapshot().invitations["duplicate"] == 19


@pytest.mark.asyncio
async def test_other_program_or_customer_is_not_a_duplicate(session_factory) -> None:
    program_id = uuid4()
    async with session_factory() as session:
        service = EnrollmentService(session, clock=_clock(NOW))
        await service.create_invitation(42, 7, program_id)
        await service.create_invitation(42, 7, uuid4())
        await service.create_invitation(43, 7, program_id)

    async with session_factory() as session:
        assert len(list((await session.execute(select(Invitation))).scalars())) == 3


@pytest.mark.asyncio
async def test_resolved_invitation_does_not_block_a_new_one(session_factory) -> None:
    program_id = uuid4()
    async with session_factory() as session:
        service = EnrollmentService(session, clock=_clock(NOW))
        first = await service.create_invitation(42, 7, program_id)
        await service.respond(first.invitation_id, "decline")
        second = await service.create_invitation(42, 7, program_id)

    assert second.invitation_id != first.invitation_id


@pytest.mark.asyncio
async def test_stale_pending_invitation_is_superseded(session_factory) -> None:
    program_id = uuid4()
    async with session_factory() as session:
        stale = await EnrollmentService(session, clock=_clock(NOW - timedelta(days=10))).create_invitation(
            42, 7, program_id
        )

    async with session_factory() as session:
        fresh = await EnrollmentService(session, clock=_clock(NOW)).create_invitation(42, 7, program_id)

    async with session_factory() as session:
        old = await session.get(Invitation, stale.invitation_id)
        new = await session.get(Invitation, fresh.invitation_id)
        old_notification = await session.get(Notification, stale.notification_id)

    assert old.status is InvitationStatus.EXPIRED
    assert new.status is InvitationStatus.PENDING
    assert old_notification.action_taken is True
    assert old_notification.is_read is False


@pytest.mark.asyncio
async def test_invalid_identifier_is_rejected_before_any_write(session_factory) -> None:
    async with session_factory() as session:
        service = EnrollmentService(session, clock=_clock(NOW))
        with pytest.raises(InvalidIdentifier) as excinfo:
            await service.create_invitation("abc", 7, uuid4())

    assert excinfo.value.field == "customer_id"
    async with session_factory() as session:
        assert (await session.execute(select(Invitation))).first() is None
        assert (await session.execute(select(Notification))).first() is None


@pytest.mark.asyncio
async def test_list_pending_invitations_skips_resolved_and_overdue(session_factory) -> None:
    async with session_factory() as session:
        old = await EnrollmentService(session, clock=_clock(NOW - timedelta(days=10))).create_invitation(
            42, 7, uuid4()
        )

    async with session_factory() as session:
        service = EnrollmentService(session, clock=_clock(NOW))
        declined = await service.create_invitation(42, 7, uuid4())
        await service.respond(declined.invitation_id, "decline")
        open_one = await service.create_invitation(42, 7, uuid4())
        await service.create_invitation(99, 7, uuid4())

        pending = await service.list_pending_invitations("42")

    assert [invitation.id for invitation in pending] == [open_one.invitation_id]
    assert old.invitation_id not in {invitation.id for invitation in pending}


@pytest.mark.asyncio
async def test_get_invitation_raises_when_missing(session_factory) -> None:
    async with session_factory() as session:
        with pytest.raises(InvitationNotFound):
            await EnrollmentService(session).get_invitation(uuid4())


@pytest.mark.asyncio
async def test_expire_stale_is_idempotent_and_closes_the_prompt(session_factory) -> None:
    async with session_factory() as session:
        overdue = await EnrollmentService(session, clock=_clock(NOW - timedelta(days=8))).create_invitation(
            42, 7, uuid4()
        )
        current = await EnrollmentService(session, clock=_clock(NOW)).create_invitation(42, 7, uuid4())

    async with session_factory() as session:
        service = EnrollmentService(session, clock=_clock(NOW))
        assert await service.expire_stale() == 1
        assert await service.expire_stale() == 0

    async with session_factory() as session:
        expired = await session.get(Invitation, overdue.invitation_id)
        pending = await session.get(Invitation, current.invitation_id)
        prompt = await session.get(Notification, overdue.notification_id)
        assert (await session.execute(select(ProgramEnrollment))).first() is None
        assert (await session.execute(select(RewardCard))).first() is None

    assert expired.status is InvitationStatus.EXPIRED
    assert pending.status is InvitationStatus.PENDING
    assert prompt.action_taken is True
    assert get_enrollment_store().snapshot().invitations["expired"] == 1
