"""Errors raised by the enrollment services.

Every error carries a stable ``reason_code`` for callers and the HTTP status the
API layer reports it with. Storage errors are not wrapped: they propagate after
the surrounding transaction has been rolled back.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID


class EnrollmentError(RuntimeError):
    """Base exception for enrollment workflow failures."""

    reason_code = "enrollment_error"
    http_status = 400

    def as_detail(self) -> dict[str, Any]:
        return {"code": self.reason_code, "message": str(self)}


class InvalidIdentifier(EnrollmentError):
    """Raised when a raw caller-supplied identifier cannot be normalised."""

    reason_code = "invalid_identifier"
    http_status = 422

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"Invalid {field}: {value!r}")
        self.field = field
        self.value = value

    def as_detail(self) -> dict[str, Any]:
        return {**super().as_detail(), "field": self.field}


class InvitationNotFound(EnrollmentError):
    reason_code = "invitation_not_found"
    http_status = 404

    def __init__(self, invitation_id: UUID) -> None:
        super().__init__(f"Invitation {invitation_id} not found")
        self.invitation_id = invitation_id


class InvitationExpired(EnrollmentError):
    reason_code = "invitation_expired"
    http_status = 410

    def __init__(self, invitation_id: UUID) -> None:
        super().__init__(f"Invitation {invitation_id} has expired")
        self.invitation_id = invitation_id


class DuplicatePendingInvitation(EnrollmentError):
    reason_code = "duplicate_pending_invitation"
    http_status = 409

    def __init__(self, customer_id: int, program_id: UUID) -> None:
        super().__init__(
            f"Customer {customer_id} already has a pending invitation for program {program_id}"
        )
        self.customer_id = customer_id
        self.program_id = program_id


class EnrollmentNotFound(EnrollmentError):
    reason_code = "not_found"
    http_status = 404

    def __init__(self, customer_id: int, program_id: UUID) -> None:
        super().__init__(f"No enrollment for customer {customer_id} in program {program_id}")
        self.customer_id = customer_id
        self.program_id = program_id


class CardNotFound(EnrollmentError):
    reason_code = "not_found"
    http_status = 404

    def __init__(self, customer_id: int, program_id: UUID) -> None:
        super().__init__(f"No reward card for customer {customer_id} in program {program_id}")
        self.customer_id = customer_id
        self.program_id = program_id


class NotificationNotFound(EnrollmentError):
    reason_code = "not_found"
    http_status = 404

    def __init__(self, notification_id: UUID) -> None:
        super().__init__(f"Notification {notification_id} not found")
        self.notification_id = notification_id


class InvalidDecision(EnrollmentError):
    reason_code = "invalid_decision"
    http_status = 422

    def __init__(self, value: Any) -> None:
        super().__init__(f"Decision must be 'approve' or 'decline', got {value!r}")
        self.value = value


class ProvisioningError(EnrollmentError):
    """Raised when an upsert did not leave the expected row behind."""

    reason_code = "provisioning_failed"
    http_status = 500


__all__ = [
    "CardNotFound",
    "DuplicatePendingInvitation",
    "EnrollmentError",
    "EnrollmentNotFound",
    "InvalidDecision",
    "InvalidIdentifier",
    "InvitationExpired",
    "InvitationNotFound",
    "NotificationNotFound",
    "ProvisioningError",
]
