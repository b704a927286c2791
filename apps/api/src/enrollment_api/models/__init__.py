"""SQLAlchemy models package."""

from .enrollment import (  # noqa: F401
    CardStatus,
    CardTier,
    EnrollmentStatus,
    ProgramEnrollment,
    RewardCard,
)
from .invitation import Invitation, InvitationStatus  # noqa: F401
from .notification import Notification, NotificationAudience, NotificationKind  # noqa: F401
