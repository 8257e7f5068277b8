"""
Main entrypoint for the Turf Platform API.

This module assembles the FastAPI application: it configures logging,
builds the record store, the event bus and the services that share
them, and mounts the versioned routers.  The module-level ``app`` can
be served directly, e.g.::

    uvicorn turf_platform_api.app.main:app --reload
"""

from typing import Optional

from fastapi import FastAPI

from .api.v1.router import router as v1_router
from .core.config import settings
from .core.logging_config import setup_logging
from .core.store import RecordStore, SqliteRecordStore, build_store
from .services.audit_service import AuditService
from .services.checkin_service import CheckInService
from .services.event_bus import EventBus
from .services.moderation_service import ModerationService
from .services.notification_service import (
    NotificationDispatcher,
    NotificationGateway,
    build_gateway,
)


def create_app(
    store: Optional[RecordStore] = None,
    gateway: Optional[NotificationGateway] = None,
) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    store : Optional[RecordStore]
        Record store shared by all services.  Defaults to the store
        selected by ``settings.database_url``.
    gateway : Optional[NotificationGateway]
        Delivery mechanism for user notifications.  Defaults to the
        webhook gateway when ``PUSH_WEBHOOK_URL`` is set, otherwise to
        the logging gateway.

    Returns
    -------
    FastAPI
        A configured application with services on ``app.state``.
    """
    setup_logging(settings.log_level, settings.log_file or None)

    if store is None:
        store = build_store(settings.database_url)
    if gateway is None:
        gateway = build_gateway(
            settings.push_webhook_url,
            token=settings.push_webhook_token,
            timeout=settings.push_timeout_seconds,
        )

    events = EventBus()
    audit_service = AuditService(store)
    audit_service.register(events)
    NotificationDispatcher(gateway).register(events)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    app.state.store = store
    app.state.events = events
    app.state.audit_service = audit_service
    app.state.moderation_service = ModerationService(store, events)
    app.state.checkin_service = CheckInService(store, events)

    app.include_router(v1_router, prefix="/api/v1")

    @app.on_event("startup")
    async def startup_event() -> None:
        # Create the database file and apply migrations.
        if isinstance(store, SqliteRecordStore):
            store.initialise()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        # Let in-flight notifications and audit writes finish.
        await events.drain()

    return app


app = create_app()
