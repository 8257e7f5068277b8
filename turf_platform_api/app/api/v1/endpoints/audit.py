"""
Audit log endpoints for API v1.

Every approval, rejection and check-in is recorded in the audit log.
Only administrators may read it.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from turf_platform_api.app.api.deps import get_audit_service
from turf_platform_api.app.core.security import ROLE_ADMIN, require_roles
from turf_platform_api.app.schemas.audit import AuditLogRead
from turf_platform_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs", response_model=List[AuditLogRead])
async def list_audit_logs(
    user_id: Optional[str] = Query(None, description="Filter by acting user ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (turf, booking)"),
    object_id: Optional[str] = Query(None, description="Filter by object ID"),
    action: Optional[str] = Query(None, description="Filter by action (approved, rejected, check_in)"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
    service: AuditService = Depends(get_audit_service),
) -> List[dict]:
    """Retrieve audit logs, newest first, with optional filters."""
    return await service.list_logs(
        user_id=user_id,
        object_type=object_type,
        object_id=object_id,
        action=action,
        limit=limit,
        offset=offset,
    )
