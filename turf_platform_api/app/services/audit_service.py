"""
Audit service for recording and querying moderation and check-in actions.

The service subscribes to the event bus and writes one entry to the
``audit_logs`` collection for every moderation outcome and every
check-in.  Reading the log is restricted to administrators at the API
layer.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..core.store import RecordStore
from ..schemas.events import CheckInOutcome, ModerationOutcome
from .event_bus import EventBus


class AuditService:
    """Write and retrieve audit log entries."""

    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def register(self, bus: EventBus) -> None:
        bus.subscribe(ModerationOutcome, self.on_moderation_outcome)
        bus.subscribe(CheckInOutcome, self.on_check_in)

    async def log(
        self,
        user_id: Optional[str],
        action: str,
        object_type: str,
        object_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        user_id : Optional[str]
            Actor performing the action; ``None`` for system actions.
        action : str
            Short verb, e.g. ``"approve"``, ``"reject"``, ``"check_in"``.
        object_type : str
            ``"turf"`` or ``"booking"``.
        object_id : Optional[str]
            Identifier of the affected record.
        details : Optional[dict]
            Extra structured data, stored as JSON.
        """
        await self.store.append_audit_log(user_id, action, object_type, object_id, details)

    async def on_moderation_outcome(self, event: ModerationOutcome) -> None:
        details: Dict[str, Any] = {"owner_id": event.owner_id, "event_id": event.event_id}
        if event.reason:
            details["reason"] = event.reason
        await self.log(
            user_id=event.admin_id,
            action=event.state.value,
            object_type="turf",
            object_id=event.turf_id,
            details=details,
        )

    async def on_check_in(self, event: CheckInOutcome) -> None:
        await self.log(
            user_id=event.checked_in_by,
            action="check_in",
            object_type="booking",
            object_id=event.booking_id,
            details={
                "turf_id": event.turf_id,
                "user_id": event.user_id,
                "checked_in_at": event.checked_in_at.isoformat(),
            },
        )

    async def list_logs(
        self,
        user_id: Optional[str] = None,
        object_type: Optional[str] = None,
        object_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve audit records, newest first, with optional filters."""
        return await self.store.list_audit_logs(
            user_id=user_id,
            object_type=object_type,
            object_id=object_id,
            action=action,
            limit=limit,
            offset=offset,
        )
