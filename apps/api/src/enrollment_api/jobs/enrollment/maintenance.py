"""Job that expires overdue invitations and repairs drifted reward cards."""

# meta: job: enrollment-maintenance

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_api.services.enrollment import EnrollmentService

SessionFactory = Callable[[], AsyncSession] | Callable[[], Awaitable[AsyncSession]]


async def run_enrollment_maintenance(
    *,
    session_factory: SessionFactory,
    batch_limit: int | None = None,
) -> Dict[str, Any]:
    """Expire stale invitations, then run one reconciliation sweep."""

    maybe_session = session_factory()
    session: AsyncSession
    if isinstance(maybe_session, AsyncSession):
        session = maybe_session
    else:
        session = await maybe_session

    async with session as managed_session:
        service = EnrollmentService(managed_session)
        expired = await service.expire_stale()
        reconciliation = await service.reconcile(batch_limit=batch_limit)

        summary: Dict[str, Any] = {"expiredInvitations": expired, **reconciliation.as_dict()}
        logger.bind(summary=summary).info("Enrollment maintenance sweep completed")
        return summary
