"""Worker wiring for periodic enrollment maintenance sweeps."""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from enrollment_api.core.clock import utcnow
from enrollment_api.core.settings import settings
from enrollment_api.jobs.enrollment import run_enrollment_maintenance

SessionFactory = Callable[[], Awaitable[AsyncSession]] | Callable[[], AsyncSession]


class EnrollmentMaintenanceWorker:
    """Periodically expires stale invitations and reconciles reward cards."""

    # meta: worker: enrollment-maintenance

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        interval_seconds: int | None = None,
        batch_limit: int | None = None,
        trigger_label: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.interval_seconds = interval_seconds or settings.enrollment_maintenance_interval_seconds
        self._batch_limit = batch_limit or settings.reconcile_batch_limit
        self._trigger_label = trigger_label or settings.enrollment_maintenance_trigger_label
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.is_running: bool = False
        self.last_success_at: datetime | None = None
        self.last_error_at: datetime | None = None
        self.last_error: str | None = None

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop())
        self.is_running = True
        logger.info(
            "Enrollment maintenance worker started",
            interval_seconds=self.interval_seconds,
            batch_limit=self._batch_limit,
        )

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        await self._task
        self._task = None
        self.is_running = False
        logger.info("Enrollment maintenance worker stopped")

    async def run_once(self, *, triggered_by: str | None = None) -> Dict[str, Any]:
        """Execute a single maintenance pass and remember how it went."""

        trigger = triggered_by or self._trigger_label
        try:
            summary = await run_enrollment_maintenance(
                session_factory=self._session_factory,
                batch_limit=self._batch_limit,
            )
        except Exception as exc:
            self.last_error_at = utcnow()
            self.last_error = str(exc)
            logger.exception("Enrollment maintenance sweep failed", trigger=trigger, error=str(exc))
            raise

        self.last_success_at = utcnow()
        self.last_error = None
        logger.info(
            "Enrollment maintenance run completed",
            trigger=trigger,
            expired=summary.get("expiredInvitations", 0),
            repaired=summary.get("repaired", 0),
            failed=summary.get("failed", 0),
        )
        return summary

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except Exception as exc:  # pragma: no cover - defensive logging
                logger.exception("Enrollment maintenance iteration failed", error=str(exc))
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
