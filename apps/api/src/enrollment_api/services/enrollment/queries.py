"""Read-only enrollment and card lookups.

Lookups bypass the session identity map so they always reflect the latest
committed transaction.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_api.domain.exceptions import CardNotFound, EnrollmentNotFound
from enrollment_api.domain.identifiers import CustomerId, ProgramId
from enrollment_api.models.enrollment import ProgramEnrollment, RewardCard
from enrollment_api.services.enrollment.provisioning import CardProvisioner


class EnrollmentQueries:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._provisioner = CardProvisioner(session)

    async def get_enrollment_status(self, customer_id: CustomerId, program_id: ProgramId) -> ProgramEnrollment:
        enrollment = await self._provisioner.load_enrollment(customer_id, program_id)
        if enrollment is None:
            raise EnrollmentNotFound(customer_id, program_id)
        return enrollment

    async def get_card(self, customer_id: CustomerId, program_id: ProgramId) -> RewardCard:
        card = await self._provisioner.load_card(customer_id, program_id)
        if card is None:
            raise CardNotFound(customer_id, program_id)
        return card


__all__ = ["EnrollmentQueries"]
