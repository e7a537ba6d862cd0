from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from campusdesk.api.routes import audit, system, tickets
from campusdesk.audit import AuditLogStore, AuditTrailAnalyzer
from campusdesk.core.config import Settings, get_settings
from campusdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from campusdesk.metrics import metrics_registry
from campusdesk.services.notifications import LoggingNotifier, NotificationBuffer
from campusdesk.storage import SQLModelStorage, Storage, build_storage
from campusdesk.tickets import TicketRepository, TicketService


def build_services(app: FastAPI, settings: Settings, storage: Storage) -> None:
    """Wire the stores, the lifecycle manager and the analyzer onto ``app.state``."""

    notifications = NotificationBuffer(
        maxlen=settings.notification_buffer_size,
        forward_to=(LoggingNotifier(),),
    )
    repository = TicketRepository(
        storage,
        tickets_key=settings.tickets_storage_key,
        replies_key=settings.replies_storage_key,
    )
    audit_store = AuditLogStore(storage, key=settings.system_logs_storage_key)

    app.state.storage = storage
    app.state.notifications = notifications
    app.state.ticket_service = TicketService(
        repository,
        notifier=notifications,
        student_role_id=settings.student_role_id,
        metrics=metrics_registry,
    )
    app.state.audit_store = audit_store
    app.state.audit_analyzer = AuditTrailAnalyzer(
        audit_store,
        brute_force_threshold=settings.brute_force_threshold,
        mass_export_threshold=settings.mass_export_threshold,
        mass_export_window=timedelta(seconds=settings.mass_export_window_seconds),
        trend_days=settings.trend_days,
        metrics=metrics_registry,
    )


def create_app(settings: Settings | None = None, *, storage: Storage | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
        logger = configure_logging(settings)
        tracer_provider = init_tracer(settings)
        app.state.logger = logger
        app.state.tracer_provider = tracer_provider

        active_storage = storage if storage is not None else build_storage(settings.storage_dsn)
        build_services(app, settings, active_storage)
        logger.info("%s started (%s) with %s", settings.app_name, settings.environment, type(active_storage).__name__)
        try:
            yield
        finally:
            if storage is None and isinstance(active_storage, SQLModelStorage):
                active_storage.dispose()
            shutdown_tracer(tracer_provider)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.include_router(system.router)
    app.include_router(tickets.router)
    app.include_router(audit.router)
    return app


app = create_app()
