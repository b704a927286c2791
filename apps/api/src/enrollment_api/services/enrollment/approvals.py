"""Approval transition engine: resolves an invitation and provisions the enrollment.

``respond`` runs in exactly one transaction. The storage-level compare-and-set on
``status = 'pending'`` decides which of any number of concurrent callers
performs the side effects; every other caller, and every later retry, reads the
already-committed outcome and returns the same result.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable
from uuid import UUID

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from enrollment_api.core.clock import ensure_aware, utcnow
from enrollment_api.domain.exceptions import InvitationExpired, InvitationNotFound
from enrollment_api.domain.identifiers import InvitationId
from enrollment_api.models.enrollment import EnrollmentStatus
from enrollment_api.models.invitation import Invitation, InvitationStatus
from enrollment_api.models.notification import Notification
from enrollment_api.observability.enrollment import get_enrollment_store
from enrollment_api.observability.tracing import get_tracer
from enrollment_api.services.enrollment.invitations import expire_invitations
from enrollment_api.services.enrollment.provisioning import CardProvisioner
from enrollment_api.services.notifications import (
    LoggingNotificationPublisher,
    NotificationPublisher,
    build_decision_notifications,
    publish_safely,
)


class Decision(str, Enum):
    APPROVE = "approve"
    DECLINE = "decline"


_TARGET_STATUS = {
    Decision.APPROVE: InvitationStatus.APPROVED,
    Decision.DECLINE: InvitationStatus.DECLINED,
}


@dataclass(frozen=True, slots=True)
class InvitationResult:
    """Outcome of a response; identical for the first call and every replay."""

    invitation_id: UUID
    status: InvitationStatus
    card_id: UUID | None = None
    points_balance: int | None = None
    enrollment_status: EnrollmentStatus | None = None


class ApprovalTransitionEngine:
    """Moves invitations out of PENDING and applies the decision's side effects."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        publisher: NotificationPublisher | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._publisher = publisher or LoggingNotificationPublisher()
        self._clock = clock
        self._provisioner = CardProvisioner(session, clock=clock)

    async def respond(self, invitation_id: InvitationId, decision: Decision) -> InvitationResult:
        """Apply ``decision`` to the invitation, or return the recorded outcome on replay."""

        with get_tracer().start_as_current_span("enrollment.respond") as span:
            span.set_attribute("enrollment.invitation_id", str(invitation_id))
            span.set_attribute("enrollment.decision", decision.value)
            try:
                result, touched = await self._respond(invitation_id, decision)
                if self._session.in_transaction():
                    # Replays only read; end the read transaction.
                    await self._session.commit()
            except Exception:
                await self._session.rollback()
                raise
            span.set_attribute("enrollment.status", result.status.value)

        await publish_safely(self._publisher, touched)
        return result

    async def _respond(
        self,
        invitation_id: InvitationId,
        decision: Decision,
    ) -> tuple[InvitationResult, list[Notification]]:
        store = get_enrollment_store()
        now = self._clock()

        invitation = await self._load_invitation(invitation_id)
        if invitation.status is InvitationStatus.EXPIRED:
            raise InvitationExpired(invitation_id)
        if invitation.status is not InvitationStatus.PENDING:
            store.record_transition("replayed")
            return await self._replay(invitation), []

        if ensure_aware(invitation.expires_at) <= now:
            expired = await expire_invitations(self._session, [invitation.id], now)
            await self._session.commit()
            if expired:
                store.record_invitation_event("expired")
                logger.info("Expired invitation on response", invitation_id=str(invitation.id))
                raise InvitationExpired(invitation_id)
            # Resolved by a concurrent caller between our read and the expiry attempt.
            invitation = await self._load_invitation(invitation_id)
            if invitation.status is InvitationStatus.EXPIRED:
                raise InvitationExpired(invitation_id)
            store.record_transition("race_lost")
            return await self._replay(invitation), []

        target = _TARGET_STATUS[decision]
        if not await self._compare_and_set(invitation, target, now):
            store.record_transition("race_lost")
            invitation = await self._load_invitation(invitation_id)
            if invitation.status is InvitationStatus.EXPIRED:
                raise InvitationExpired(invitation_id)
            logger.info(
                "Invitation already resolved by a concurrent response",
                invitation_id=str(invitation.id),
                status=invitation.status.value,
            )
            return await self._replay(invitation), []

        if decision is Decision.DECLINE:
            result, touched = await self._apply_decline(invitation, now)
        else:
            result, touched = await self._apply_approve(invitation, now)

        await self._session.commit()
        store.record_transition(result.status.value)
        logger.info(
            "Invitation resolved",
            invitation_id=str(invitation.id),
            customer_id=invitation.customer_id,
            program_id=str(invitation.program_id),
            status=result.status.value,
            card_id=str(result.card_id) if result.card_id else None,
        )
        return result, touched

    async def _apply_decline(
        self,
        invitation: Invitation,
        now: datetime,
    ) -> tuple[InvitationResult, list[Notification]]:
        request = await self._close_request_notification(invitation, now)
        outcome_notifications = build_decision_notifications(
            invitation_id=invitation.id,
            customer_id=invitation.customer_id,
            business_id=invitation.business_id,
            program_id=invitation.program_id,
            approved=False,
            now=now,
            request_payload=request.payload if request else None,
        )
        self._session.add_all(outcome_notifications)
        await self._session.flush()

        touched = ([request] if request else []) + outcome_notifications
        return InvitationResult(invitation_id=invitation.id, status=InvitationStatus.DECLINED), touched

    async def _apply_approve(
        self,
        invitation: Invitation,
        now: datetime,
    ) -> tuple[InvitationResult, list[Notification]]:
        outcome = await self._provisioner.provision(
            customer_id=invitation.customer_id,
            program_id=invitation.program_id,
            business_id=invitation.business_id,
        )
        request = await self._close_request_notification(invitation, now)
        outcome_notifications = build_decision_notifications(
            invitation_id=invitation.id,
            customer_id=invitation.customer_id,
            business_id=invitation.business_id,
            program_id=invitation.program_id,
            approved=True,
            now=now,
            request_payload=request.payload if request else None,
            card_id=outcome.card.id,
            card_created=outcome.card_created,
        )
        self._session.add_all(outcome_notifications)
        await self._session.flush()

        touched = ([request] if request else []) + outcome_notifications
        result = InvitationResult(
            invitation_id=invitation.id,
            status=InvitationStatus.APPROVED,
            card_id=outcome.card.id,
            points_balance=outcome.card.points_balance,
            enrollment_status=outcome.enrollment.status,
        )
        return result, touched

    async def _replay(self, invitation: Invitation) -> InvitationResult:
        """Rebuild the result of an already-resolved invitation without side effects."""

        if invitation.status is not InvitationStatus.APPROVED:
            return InvitationResult(invitation_id=invitation.id, status=invitation.status)

        enrollment = await self._provisioner.load_enrollment(invitation.customer_id, invitation.program_id)
        card = await self._provisioner.load_card(invitation.customer_id, invitation.program_id)
        return InvitationResult(
            invitation_id=invitation.id,
            status=invitation.status,
            card_id=card.id if card else None,
            points_balance=card.points_balance if card else None,
            enrollment_status=enrollment.status if enrollment else None,
        )

    async def _compare_and_set(self, invitation: Invitation, target: InvitationStatus, now: datetime) -> bool:
        stmt = (
            update(Invitation)
            .where(Invitation.id == invitation.id, Invitation.status == InvitationStatus.PENDING)
            .values(status=target, responded_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            return False
        set_committed_value(invitation, "status", target)
        set_committed_value(invitation, "responded_at", now)
        return True

    async def _close_request_notification(self, invitation: Invitation, now: datetime) -> Notification | None:
        if invitation.notification_id is None:
            return None
        notification = await self._session.get(Notification, invitation.notification_id, populate_existing=True)
        if notification is None:
            return None
        notification.action_taken = True
        notification.is_read = True
        notification.read_at = now
        return notification

    async def _load_invitation(self, invitation_id: InvitationId) -> Invitation:
        stmt = (
            select(Invitation)
            .where(Invitation.id == invitation_id)
            .execution_options(populate_existing=True)
        )
        invitation = (await self._session.execute(stmt)).scalar_one_or_none()
        if invitation is None:
            raise InvitationNotFound(invitation_id)
        return invitation


__all__ = ["ApprovalTransitionEngine", "Decision", "InvitationResult"]
