"""Enrollment workflow exports."""

from .approvals import ApprovalTransitionEngine, Decision, InvitationResult  # noqa: F401
from .invitations import CreatedInvitation, InvitationLifecycleManager  # noqa: F401
from .provisioning import (  # noqa: F401
    CardAction,
    CardProvisioner,
    EnrollmentAction,
    ProvisioningOutcome,
    plan_card,
    plan_enrollment,
)
from .queries import EnrollmentQueries  # noqa: F401
from .reconciliation import ReconciliationFailure, ReconciliationSummary, ReconciliationSweep  # noqa: F401
from .service import EnrollmentService, parse_decision  # noqa: F401

__all__ = [
    "ApprovalTransitionEngine",
    "CardAction",
    "CardProvisioner",
    "CreatedInvitation",
    "Decision",
    "EnrollmentAction",
    "EnrollmentQueries",
    "EnrollmentService",
    "InvitationLifecycleManager",
    "InvitationResult",
    "ProvisioningOutcome",
    "ReconciliationFailure",
    "ReconciliationSummary",
    "ReconciliationSweep",
    "parse_decision",
    "plan_card",
    "plan_enrollment",
]
