"""Reconciliation sweep: repairs drift between active enrollments and their cards."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from loguru import logger
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_api.core.clock import utcnow
from enrollment_api.core.settings import settings
from enrollment_api.models.enrollment import CardStatus, EnrollmentStatus, ProgramEnrollment, RewardCard
from enrollment_api.observability.enrollment import get_enrollment_store
from enrollment_api.observability.tracing import get_tracer
from enrollment_api.services.enrollment.provisioning import CardProvisioner

_CARD_MATCHES_ENROLLMENT = and_(
    RewardCard.customer_id == ProgramEnrollment.customer_id,
    RewardCard.program_id == ProgramEnrollment.program_id,
)


@dataclass(frozen=True, slots=True)
class ReconciliationFailure:
    customer_id: int
    program_id: UUID
    error: str


@dataclass
class ReconciliationSummary:
    scanned: int = 0
    repaired: int = 0
    failed: int = 0
    orphaned_cards: int = 0
    failures: list[ReconciliationFailure] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "scanned": self.scanned,
            "repaired": self.repaired,
            "failed": self.failed,
            "orphanedCards": self.orphaned_cards,
            "failures": [
                {
                    "customerId": failure.customer_id,
                    "programId": str(failure.program_id),
                    "error": failure.error,
                }
                for failure in self.failures
            ],
        }


class ReconciliationSweep:
    """Finds active enrollments whose card is missing, inactive or out of balance.

    Each offending pair is repaired through :meth:`CardProvisioner.repair_card`
    in its own transaction, so one failing record is logged and skipped without
    undoing the others. A consistent store yields no writes at all.
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        batch_limit: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._batch_limit = batch_limit or settings.reconcile_batch_limit
        self._provisioner = CardProvisioner(session, clock=clock)

    async def reconcile(self) -> ReconciliationSummary:
        with get_tracer().start_as_current_span("enrollment.reconcile") as span:
            summary = ReconciliationSummary()
            summary.scanned = await self._count_active_enrollments()
            drifted = await self._find_drifted_pairs()
            summary.orphaned_cards = await self._count_orphaned_cards()
            # Close the scan transaction before repairing record by record.
            await self._session.commit()

            for customer_id, program_id in drifted:
                await self._repair(customer_id, program_id, summary)

            span.set_attribute("enrollment.reconcile.repaired", summary.repaired)
            span.set_attribute("enrollment.reconcile.failed", summary.failed)

        get_enrollment_store().record_reconciliation(
            scanned=summary.scanned,
            repaired=summary.repaired,
            failed=summary.failed,
            orphaned=summary.orphaned_cards,
        )
        if summary.orphaned_cards:
            logger.warning(
                "Active reward cards without an active enrollment",
                orphaned_cards=summary.orphaned_cards,
            )
        logger.info(
            "Enrollment reconciliation sweep completed",
            scanned=summary.scanned,
            drifted=len(drifted),
            repaired=summary.repaired,
            failed=summary.failed,
        )
        return summary

    async def _repair(self, customer_id: int, program_id: UUID, summary: ReconciliationSummary) -> None:
        try:
            outcome = await self._provisioner.repair_card(customer_id=customer_id, program_id=program_id)
            await self._session.commit()
        except Exception as exc:
            await self._session.rollback()
            summary.failed += 1
            summary.failures.append(
                ReconciliationFailure(customer_id=customer_id, program_id=program_id, error=str(exc))
            )
            logger.exception(
                "Failed to reconcile reward card",
                customer_id=customer_id,
                program_id=str(program_id),
                error=str(exc),
            )
            return

        if outcome is not None and outcome.changed:
            summary.repaired += 1
            logger.info(
                "Reconciled reward card",
                customer_id=customer_id,
                program_id=str(program_id),
                card_action=outcome.card_action.value,
                card_id=str(outcome.card.id),
            )

    async def _count_active_enrollments(self) -> int:
        stmt = select(func.count()).select_from(ProgramEnrollment).where(
            ProgramEnrollment.status == EnrollmentStatus.ACTIVE
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def _find_drifted_pairs(self) -> list[tuple[int, UUID]]:
        stmt = (
            select(ProgramEnrollment.customer_id, ProgramEnrollment.program_id)
            .outerjoin(RewardCard, _CARD_MATCHES_ENROLLMENT)
            .where(
                ProgramEnrollment.status == EnrollmentStatus.ACTIVE,
                or_(
                    RewardCard.id.is_(None),
                    RewardCard.status != CardStatus.ACTIVE,
                    RewardCard.points_balance != ProgramEnrollment.current_points,
                ),
            )
            .order_by(ProgramEnrollment.created_at.asc(), ProgramEnrollment.id.asc())
            .limit(self._batch_limit)
        )
        result = await self._session.execute(stmt)
        return [(row.customer_id, row.program_id) for row in result]

    async def _count_orphaned_cards(self) -> int:
        stmt = (
            select(func.count(RewardCard.id))
            .select_from(RewardCard)
            .outerjoin(ProgramEnrollment, _CARD_MATCHES_ENROLLMENT)
            .where(
                RewardCard.status == CardStatus.ACTIVE,
                or_(
                    ProgramEnrollment.id.is_(None),
                    ProgramEnrollment.status != EnrollmentStatus.ACTIVE,
                ),
            )
        )
        return int((await self._session.execute(stmt)).scalar_one())


__all__ = ["ReconciliationFailure", "ReconciliationSummary", "ReconciliationSweep"]
