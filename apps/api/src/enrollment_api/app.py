from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from enrollment_api.core.settings import settings
from enrollment_api.db.session import async_session
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing
from .services.notifications import LoggingNotificationPublisher
from .workers import EnrollmentMaintenanceWorker


APP_VERSION = "0.1.0"


def _session_factory():
    return async_session()


@asynccontextmanager
async def lifespan(app: FastAPI):
    maintenance_worker = EnrollmentMaintenanceWorker(
        session_factory=_session_factory,
        interval_seconds=settings.enrollment_maintenance_interval_seconds,
        batch_limit=settings.reconcile_batch_limit,
        trigger_label=settings.enrollment_maintenance_trigger_label,
    )

    app.state.enrollment_maintenance_worker = maintenance_worker
    if getattr(app.state, "notification_publisher", None) is None:
        app.state.notification_publisher = LoggingNotificationPublisher()

    maintenance_enabled = settings.enrollment_maintenance_worker_enabled
    if maintenance_enabled:
        maintenance_worker.start()
        logger.info(
            "Enrollment maintenance worker enabled",
            interval_seconds=maintenance_worker.interval_seconds,
            batch_limit=settings.reconcile_batch_limit,
        )
    else:
        logger.info(
            "Enrollment maintenance worker disabled",
            reason="enrollment_maintenance_worker_enabled is false",
        )

    try:
        yield
    finally:
        if maintenance_enabled and maintenance_worker.is_running:
            await maintenance_worker.stop()


def create_app() -> FastAPI:
    """Application factory for the loyalty enrollment service."""
    configure_logging(
        service_name="enrollment-api",
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="Loyalty Enrollment API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    configure_tracing(
        app,
        service_name="enrollment-api",
        service_version=APP_VERSION,
        environment=settings.environment,
    )

    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
