"""Pydantic schema for audit log entries."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class AuditLogRead(BaseModel):
    id: int
    user_id: Optional[str]
    action: str
    object_type: str
    object_id: Optional[str]
    timestamp: str
    details: Optional[Dict[str, Any]] = None
