"""Invitation lifecycle: creation with its paired notification, listing and expiry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Sequence
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_api.core.clock import utcnow
from enrollment_api.core.settings import settings
from enrollment_api.domain.exceptions import DuplicatePendingInvitation, InvitationNotFound
from enrollment_api.domain.identifiers import BusinessId, CustomerId, InvitationId, ProgramId
from enrollment_api.models.invitation import PENDING_PAIR_INDEX, Invitation, InvitationStatus
from enrollment_api.models.notification import Notification
from enrollment_api.observability.enrollment import get_enrollment_store
from enrollment_api.services.notifications import (
    LoggingNotificationPublisher,
    NotificationPublisher,
    build_enrollment_request,
    publish_safely,
)


@dataclass(frozen=True, slots=True)
class CreatedInvitation:
    invitation_id: UUID
    notification_id: UUID
    expires_at: datetime


def _violates_pending_pair(error: IntegrityError) -> bool:
    message = str(error.orig)
    if PENDING_PAIR_INDEX in message:
        return True
    # SQLite names the columns rather than the index.
    return (
        "UNIQUE" in message
        and "enrollment_invitations.customer_id" in message
        and "enrollment_invitations.program_id" in message
    )


async def expire_invitations(session: AsyncSession, invitation_ids: Sequence[UUID], now: datetime) -> list[UUID]:
    """Compare-and-set PENDING -> EXPIRED; returns the ids this call expired.

    The paired request notifications stop prompting (``action_taken``) but stay
    unread. Does not commit.
    """

    if not invitation_ids:
        return []

    expired: list[UUID] = []
    for invitation_id in invitation_ids:
        stmt = (
            update(Invitation)
            .where(Invitation.id == invitation_id, Invitation.status == InvitationStatus.PENDING)
            .values(status=InvitationStatus.EXPIRED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount == 1:
            expired.append(invitation_id)

    if expired:
        notification_ids = select(Invitation.notification_id).where(Invitation.id.in_(expired))
        await session.execute(
            update(Notification)
            .where(Notification.id.in_(notification_ids))
            .values(action_taken=True)
            .execution_options(synchronize_session=False)
        )
    return expired


class InvitationLifecycleManager:
    """Creates, lists and expires enrollment invitations."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        publisher: NotificationPublisher | None = None,
        clock: Callable[[], datetime] = utcnow,
        ttl: timedelta | None = None,
    ) -> None:
        self._session = session
        self._publisher = publisher or LoggingNotificationPublisher()
        self._clock = clock
        self._ttl = ttl or timedelta(seconds=settings.invitation_ttl_seconds)

    async def create_invitation(
        self,
        customer_id: CustomerId,
        business_id: BusinessId,
        program_id: ProgramId,
        *,
        ttl: timedelta | None = None,
        program_name: str | None = None,
        business_name: str | None = None,
    ) -> CreatedInvitation:
        """Create an invitation and its paired request notification in one transaction.

        The partial unique index on pending (customer, program) pairs decides
        duplicates; a stale pending invitation for the pair is expired first so
        it cannot block a fresh one.
        """

        now = self._clock()
        expires_at = now + (ttl or self._ttl)
        invitation_id = uuid4()
        store = get_enrollment_store()

        try:
            stale = await self._stale_pending_for_pair(customer_id, program_id, now)
            expired = await expire_invitations(self._session, stale, now)

            notification = build_enrollment_request(
                invitation_id=invitation_id,
                customer_id=customer_id,
                business_id=business_id,
                program_id=program_id,
                expires_at=expires_at,
                now=now,
                program_name=program_name,
                business_name=business_name,
            )
            self._session.add(notification)
            await self._session.flush()

            self._session.add(
                Invitation(
                    id=invitation_id,
                    customer_id=customer_id,
                    business_id=business_id,
                    program_id=program_id,
                    status=InvitationStatus.PENDING,
                    requested_at=now,
                    expires_at=expires_at,
                    notification_id=notification.id,
                )
            )
            await self._session.flush()
            await self._session.commit()
        except IntegrityError as error:
            await self._session.rollback()
            if _violates_pending_pair(error):
                store.record_invitation_event("duplicate")
                logger.info(
                    "Rejected duplicate pending invitation",
                    customer_id=customer_id,
                    business_id=business_id,
                    program_id=str(program_id),
                )
                raise DuplicatePendingInvitation(customer_id, program_id) from error
            raise
        except Exception:
            await self._session.rollback()
            raise

        store.record_invitation_event("created")
        if expired:
            store.record_invitation_event("expired", len(expired))
        logger.info(
            "Created enrollment invitation",
            invitation_id=str(invitation_id),
            customer_id=customer_id,
            business_id=business_id,
            program_id=str(program_id),
            expires_at=expires_at.isoformat(),
            superseded=[str(item) for item in expired],
        )
        await publish_safely(self._publisher, [notification])
        return CreatedInvitation(
            invitation_id=invitation_id,
            notification_id=notification.id,
            expires_at=expires_at,
        )

    async def get_invitation(self, invitation_id: InvitationId) -> Invitation:
        invitation = await self._session.get(Invitation, invitation_id, populate_existing=True)
        if invitation is None:
            raise InvitationNotFound(invitation_id)
        return invitation

    async def list_pending_invitations(self, customer_id: CustomerId) -> list[Invitation]:
        """Pending invitations a customer can still answer, newest first."""

        stmt = (
            select(Invitation)
            .where(
                Invitation.customer_id == customer_id,
                Invitation.status == InvitationStatus.PENDING,
                Invitation.expires_at > self._clock(),
            )
            .order_by(Invitation.requested_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def expire_stale(self, now: datetime | None = None) -> int:
        """Expire every pending invitation past ``expires_at``; idempotent.

        Enrollments and cards are never touched.
        """

        now = now or self._clock()
        stmt = select(Invitation.id).where(
            Invitation.status == InvitationStatus.PENDING,
            Invitation.expires_at <= now,
        )
        candidates = list((await self._session.execute(stmt)).scalars())
        try:
            expired = await expire_invitations(self._session, candidates, now)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            raise

        if expired:
            get_enrollment_store().record_invitation_event("expired", len(expired))
            logger.info("Expired stale enrollment invitations", expired=len(expired))
        return len(expired)

    async def _stale_pending_for_pair(
        self,
        customer_id: CustomerId,
        program_id: ProgramId,
        now: datetime,
    ) -> list[UUID]:
        stmt = select(Invitation.id).where(
            Invitation.customer_id == customer_id,
            Invitation.program_id == program_id,
            Invitation.status == InvitationStatus.PENDING,
            Invitation.expires_at <= now,
        )
        return list((await self._session.execute(stmt)).scalars())


__all__ = ["CreatedInvitation", "InvitationLifecycleManager", "expire_invitations"]
