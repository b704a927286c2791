from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from enrollment_api.jobs.enrollment import run_enrollment_maintenance
from enrollment_api.models.enrollment import EnrollmentStatus, ProgramEnrollment, RewardCard
from enrollment_api.models.invitation import Invitation, InvitationStatus
from enrollment_api.services.enrollment import EnrollmentService
from enrollment_api.workers.enrollment_maintenance import EnrollmentMaintenanceWorker


async def _seed(session_factory):
    now = datetime.now(timezone.utc)
    async with session_factory() as session:
        created = await EnrollmentService(session, clock=lambda: now - timedelta(days=8)).create_invitation(
            42, 7, uuid4()
        )
        session.add(
            ProgramEnrollment(
                customer_id=43,
                program_id=uuid4(),
                business_id=7,
                status=EnrollmentStatus.ACTIVE,
                current_points=25,
                enrolled_at=now,
            )
        )
        await session.commit()
    return created


@pytest.mark.asyncio
async def test_maintenance_job_expires_and_reconciles(session_factory) -> None:
    created = await _seed(session_factory)

    summary = await run_enrollment_maintenance(session_factory=session_factory)

    assert summary["expiredInvitations"] == 1
    assert summary["scanned"] == 1
    assert summary["repaired"] == 1
    assert summary["failed"] == 0

    async with session_factory() as session:
        invitation = await session.get(Invitation, created.invitation_id)
        card = (await session.execute(select(RewardCard))).scalar_one()
    assert invitation.status is InvitationStatus.EXPIRED
    assert card.points_balance == 25


@pytest.mark.asyncio
async def test_worker_run_once_records_success(session_factory) -> None:
    await _seed(session_factory)
    worker = EnrollmentMaintenanceWorker(session_factory, interval_seconds=1, batch_limit=10, trigger_label="unit")

    summary = await worker.run_once(triggered_by="unit-test")

    assert summary["repaired"] == 1
    assert worker.last_success_at is not None
    assert worker.last_error is None

    second = await worker.run_once()
    assert second["expiredInvitations"] == 0
    assert second["repaired"] == 0


@pytest.mark.asyncio
async def test_worker_records_failures(session_factory) -> None:
    def broken_factory():
        raise RuntimeError("database offline")

    worker = EnrollmentMaintenanceWorker(broken_factory, interval_seconds=1)

    with pytest.raises(RuntimeError):
        await worker.run_once()

    assert worker.last_error == "database offline"
    assert worker.last_error_at is not None


@pytest.mark.asyncio
async def test_worker_start_and_stop(session_factory) -> None:
    worker = EnrollmentMaintenanceWorker(session_factory, interval_seconds=60)

    worker.start()
    assert worker.is_running
    await worker.stop()

    assert not worker.is_running
