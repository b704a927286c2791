from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from enrollment_api.domain.exceptions import NotificationNotFound
from enrollment_api.models.notification import NotificationKind
from enrollment_api.services.enrollment import EnrollmentService
from enrollment_api.services.notifications import NotificationInbox


async def _approved_invitation(session_factory, customer_id=42, business_id=7):
    async with session_factory() as session:
        service = EnrollmentService(session)
        created = await service.create_invitation(customer_id, business_id, uuid4())
        await service.respond(created.invitation_id, "approve")
    return created


@pytest.mark.asyncio
async def test_customer_and_business_inboxes_are_separate(session_factory) -> None:
    await _approved_invitation(session_factory)

    async with session_factory() as session:
        inbox = NotificationInbox(session)
        customer = await inbox.list_customer_notifications(42)
        business = await inbox.list_business_notifications(7)

    assert {item.kind for item in customer} == {
        NotificationKind.ENROLLMENT_REQUEST,
        NotificationKind.ENROLLMENT_SUCCESS,
        NotificationKind.CARD_CREATED,
    }
    assert [item.kind for item in business] == [NotificationKind.ENROLLMENT_ACCEPTED]


@pytest.mark.asyncio
async def test_marking_read_leaves_action_state_alone(session_factory) -> None:
    async with session_factory() as session:
        created = await EnrollmentService(session).create_invitation(42, 7, uuid4())

    async with session_factory() as session:
        inbox = NotificationInbox(session)
        notification = await inbox.mark_as_read(created.notification_id)

    assert notification.is_read is True
    assert notification.read_at is not None
    assert notification.requires_action is True
    assert notification.action_taken is False


@pytest.mark.asyncio
async def test_mark_all_as_read_only_touches_unread_customer_rows(session_factory) -> None:
    await _approved_invitation(session_factory)

    async with session_factory() as session:
        inbox = NotificationInbox(session)
        unread_before = await inbox.list_customer_notifications(42, unread_only=True)
        marked = await inbox.mark_all_as_read(42)
        unread_after = await inbox.list_customer_notifications(42, unread_only=True)
        business = await inbox.list_business_notifications(7)

    # the request prompt was already read when the invitation was answered
    assert len(unread_before) == 2
    assert marked == 2
    assert unread_after == []
    assert business[0].is_read is False


@pytest.mark.asyncio
async def test_mark_unknown_notification_raises(session_factory) -> None:
    async with session_factory() as session:
        with pytest.raises(NotificationNotFound):
            await NotificationInbox(session).mark_as_read(uuid4())


@pytest.mark.asyncio
async def test_notification_endpoints(app_with_db) -> None:
    app, session_factory = app_with_db
    await _approved_invitation(session_factory)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        listing = await client.get("/api/v1/customers/42/notifications", params={"unreadOnly": "true"})
        assert listing.status_code == 200
        unread = listing.json()
        assert len(unread) == 2

        read_one = await client.post(f"/api/v1/notifications/{unread[0]['id']}/read")
        assert read_one.status_code == 200
        assert read_one.json()["isRead"] is True

        read_all = await client.post("/api/v1/customers/42/notifications/read-all")
        assert read_all.json() == {"marked": 1}

        business = await client.get("/api/v1/businesses/7/notifications")
        assert [item["kind"] for item in business.json()] == ["enrollment_accepted"]

        missing = await client.post(f"/api/v1/notifications/{uuid4()}/read")
        assert missing.status_code == 404
        assert missing.json()["detail"]["code"] == "not_found"
