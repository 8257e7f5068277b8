from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import pytest

from turf_platform_api.app.core.store import InMemoryRecordStore
from turf_platform_api.app.services.audit_service import AuditService
from turf_platform_api.app.services.checkin_service import CheckInService
from turf_platform_api.app.services.event_bus import EventBus
from turf_platform_api.app.services.moderation_service import ModerationService
from turf_platform_api.app.services.notification_service import (
    NotificationDispatcher,
    NotificationGateway,
)

BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)


class RecordingGateway(NotificationGateway):
    """Gateway keeping every notification in memory."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    async def notify(self, user_id: str, title: str, body: str, data: Dict[str, Any]) -> None:
        self.sent.append({"user_id": user_id, "title": title, "body": body, "data": data})


class FakeClock:
    """Clock advancing by one minute on every call."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now = self.now + timedelta(minutes=1)
        return self.now


def turf_doc(turf_id: str, owner_id: str = "owner-1", **overrides: Any) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "id": turf_id,
        "owner_id": owner_id,
        "name": f"Turf {turf_id}",
        "price_per_hour": 40.0,
        "is_verified": False,
        "is_active": False,
        "created_at": BASE_TIME,
        "version": 0,
    }
    doc.update(overrides)
    return doc


def booking_doc(booking_id: str, turf_id: str = "t1", **overrides: Any) -> Dict[str, Any]:
    doc: Dict[str, Any] = {
        "id": booking_id,
        "turf_id": turf_id,
        "user_id": "player-1",
        "user_name": "Sam Player",
        "user_email": "sam@example.com",
        "turf_name": f"Turf {turf_id}",
        "date": "2026-10-19",
        "start_time": "18:00",
        "end_time": "19:00",
        "total_amount": 40.0,
        "status": "confirmed",
        "created_at": BASE_TIME,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def gateway(bus: EventBus) -> RecordingGateway:
    gateway = RecordingGateway()
    NotificationDispatcher(gateway).register(bus)
    return gateway


@pytest.fixture
def audit(store: InMemoryRecordStore, bus: EventBus) -> AuditService:
    service = AuditService(store)
    service.register(bus)
    return service


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def moderation(store: InMemoryRecordStore, bus: EventBus, clock: FakeClock) -> ModerationService:
    return ModerationService(store, bus, clock=clock)


@pytest.fixture
def checkin(store: InMemoryRecordStore, bus: EventBus, clock: FakeClock) -> CheckInService:
    return CheckInService(store, bus, clock=clock)
