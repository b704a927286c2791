"""Run one enrollment maintenance pass: expire stale invitations, repair cards.

Intended usage: schedule via cron or run by hand after an incident that may
have left reward cards out of step with their enrollments.

Example:
    python tooling/scripts/run_enrollment_reconciliation.py --trigger cron --batch-limit 200
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from loguru import logger


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Execute enrollment maintenance once")
    parser.add_argument(
        "--trigger",
        default="manual",
        help="Label logged with the run to describe the invocation source.",
    )
    parser.add_argument(
        "--batch-limit",
        type=int,
        default=None,
        help="Override the number of drifted enrollments repaired in this sweep.",
    )
    return parser.parse_args()


async def _run(trigger: str, batch_limit: int | None) -> dict[str, Any]:
    repo_root = Path(__file__).resolve().parents[2]
    api_src = repo_root / "apps" / "api" / "src"
    if str(api_src) not in sys.path:
        sys.path.insert(0, str(api_src))

    from enrollment_api.core.settings import settings  # type: ignore import-position
    from enrollment_api.db.session import async_session, engine  # type: ignore import-position
    from enrollment_api.workers import EnrollmentMaintenanceWorker  # type: ignore import-position

    worker = EnrollmentMaintenanceWorker(
        async_session,  # type: ignore[arg-type]
        interval_seconds=settings.enrollment_maintenance_interval_seconds,
        batch_limit=batch_limit or settings.reconcile_batch_limit,
        trigger_label=settings.enrollment_maintenance_trigger_label,
    )
    try:
        return await worker.run_once(triggered_by=trigger)
    finally:
        await engine.dispose()


def main() -> int:
    args = parse_args()
    summary = asyncio.run(_run(args.trigger, args.batch_limit))
    logger.success(
        "Enrollment maintenance run completed",
        expired=summary.get("expiredInvitations", 0),
        scanned=summary.get("scanned", 0),
        repaired=summary.get("repaired", 0),
        failed=summary.get("failed", 0),
        orphaned_cards=summary.get("orphanedCards", 0),
        trigger=args.trigger,
    )
    return 1 if summary.get("failed") else 0


if __name__ == "__main__":
    sys.exit(main())
