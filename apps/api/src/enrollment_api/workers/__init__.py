"""Background workers supporting async processing."""

from .enrollment_maintenance import EnrollmentMaintenanceWorker

__all__ = ["EnrollmentMaintenanceWorker"]
