"""
Domain events emitted by the moderation and check-in services.

Events describe something that already happened.  They are published
on the in-process event bus; the notification gateway and the audit
log subscribe to them.  Delivery failures never reach the service that
published the event.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DomainEvent(BaseModel):
    """Base class for domain events."""

    event_id: str = Field(default_factory=lambda: uuid4().hex)
    occurred_at: datetime = Field(default_factory=_utcnow)

    model_config = {
        "frozen": True,
    }

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["event_type"] = self.__class__.__name__
        return data


class ModerationState(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class ModerationOutcome(DomainEvent):
    turf_id: str
    owner_id: str
    turf_name: str = ""
    state: ModerationState
    reason: Optional[str] = None
    admin_id: Optional[str] = None


class CheckInOutcome(DomainEvent):
    booking_id: str
    user_id: str
    turf_id: str
    turf_name: Optional[str] = None
    checked_in_at: datetime
    checked_in_by: Optional[str] = None
