"""
FastAPI dependencies that hand the application's services to endpoints.

The services are built once in ``create_app`` and stored on
``app.state``; these functions simply fetch them from the request's
application so tests can build an app around any record store.
"""

from fastapi import Request

from ..services.audit_service import AuditService
from ..services.checkin_service import CheckInService
from ..services.moderation_service import ModerationService


def get_moderation_service(request: Request) -> ModerationService:
    return request.app.state.moderation_service


def get_checkin_service(request: Request) -> CheckInService:
    return request.app.state.checkin_service


def get_audit_service(request: Request) -> AuditService:
    return request.app.state.audit_service
