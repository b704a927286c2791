from fastapi import APIRouter

from .endpoints import (
    admin,
    enrollments,
    health,
    invitations,
    notifications,
    observability,
)

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(invitations.router)
router.include_router(enrollments.router)
router.include_router(notifications.router)
router.include_router(admin.router)
router.include_router(observability.router)
