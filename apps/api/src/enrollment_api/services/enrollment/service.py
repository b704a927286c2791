"""Boundary facade over the enrollment workflow.

Callers hand over raw identifiers exactly as they received them; they are
normalised here once and only typed values travel further down.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_api.core.clock import utcnow
from enrollment_api.domain.exceptions import InvalidDecision
from enrollment_api.domain.identifiers import (
    normalize_business_id,
    normalize_customer_id,
    normalize_invitation_id,
    normalize_program_id,
)
from enrollment_api.models.enrollment import ProgramEnrollment, RewardCard
from enrollment_api.models.invitation import Invitation
from enrollment_api.services.enrollment.approvals import ApprovalTransitionEngine, Decision, InvitationResult
from enrollment_api.services.enrollment.invitations import CreatedInvitation, InvitationLifecycleManager
from enrollment_api.services.enrollment.queries import EnrollmentQueries
from enrollment_api.services.enrollment.reconciliation import ReconciliationSummary, ReconciliationSweep
from enrollment_api.services.notifications import NotificationPublisher


def parse_decision(raw: Decision | str) -> Decision:
    if isinstance(raw, Decision):
        return raw
    if isinstance(raw, str):
        try:
            return Decision(raw.strip().lower())
        except ValueError:
            pass
    raise InvalidDecision(raw)


class EnrollmentService:
    """Coordinates invitation, approval, read and repair operations for one session."""

    def __init__(
        self,
        db_session: AsyncSession,
        *,
        publisher: NotificationPublisher | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._db = db_session
        self._invitations = InvitationLifecycleManager(db_session, publisher=publisher, clock=clock)
        self._engine = ApprovalTransitionEngine(db_session, publisher=publisher, clock=clock)
        self._queries = EnrollmentQueries(db_session)
        self._clock = clock

    async def create_invitation(
        self,
        customer_id: Any,
        business_id: Any,
        program_id: Any,
        *,
        ttl: timedelta | None = None,
        program_name: str | None = None,
        business_name: str | None = None,
    ) -> CreatedInvitation:
        return await self._invitations.create_invitation(
            normalize_customer_id(customer_id),
            normalize_business_id(business_id),
            normalize_program_id(program_id),
            ttl=ttl,
            program_name=program_name,
            business_name=business_name,
        )

    async def respond(self, invitation_id: Any, decision: Decision | str) -> InvitationResult:
        return await self._engine.respond(normalize_invitation_id(invitation_id), parse_decision(decision))

    async def get_invitation(self, invitation_id: Any) -> Invitation:
        return await self._invitations.get_invitation(normalize_invitation_id(invitation_id))

    async def list_pending_invitations(self, customer_id: Any) -> list[Invitation]:
        return await self._invitations.list_pending_invitations(normalize_customer_id(customer_id))

    async def get_enrollment_status(self, customer_id: Any, program_id: Any) -> ProgramEnrollment:
        return await self._queries.get_enrollment_status(
            normalize_customer_id(customer_id),
            normalize_program_id(program_id),
        )

    async def get_card(self, customer_id: Any, program_id: Any) -> RewardCard:
        return await self._queries.get_card(
            normalize_customer_id(customer_id),
            normalize_program_id(program_id),
        )

    async def expire_stale(self, now: datetime | None = None) -> int:
        return await self._invitations.expire_stale(now)

    async def reconcile(self, *, batch_limit: int | None = None) -> ReconciliationSummary:
        sweep = ReconciliationSweep(self._db, batch_limit=batch_limit, clock=self._clock)
        return await sweep.reconcile()


__all__ = ["EnrollmentService", "parse_decision"]
