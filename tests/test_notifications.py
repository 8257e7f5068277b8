"""Tests for the event bus, the notification gateways and the dispatcher."""

from __future__ import annotations

import logging
from unittest.mock import Mock

import pytest
import requests

from conftest import BASE_TIME
from turf_platform_api.app.schemas.events import (
    CheckInOutcome,
    DomainEvent,
    ModerationOutcome,
    ModerationState,
)
from turf_platform_api.app.services.event_bus import EventBus
from turf_platform_api.app.services.notification_service import (
    LoggingNotificationGateway,
    WebhookNotificationGateway,
    build_gateway,
)


def _rejection() -> ModerationOutcome:
    return ModerationOutcome(
        turf_id="t1",
        owner_id="owner-1",
        turf_name="Green Field",
        state=ModerationState.REJECTED,
        reason="Blurry photos",
        admin_id="admin-1",
    )


@pytest.mark.asyncio
async def test_publish_runs_handlers_without_waiting() -> None:
    bus = EventBus()
    seen = []

    async def handler(event) -> None:
        seen.append(event.turf_id)

    bus.subscribe(ModerationOutcome, handler)
    bus.publish(_rejection())

    assert seen == []
    assert bus.pending == 1
    await bus.drain()
    assert seen == ["t1"]
    assert bus.pending == 0


@pytest.mark.asyncio
async def test_base_class_handlers_receive_every_event() -> None:
    bus = EventBus()
    seen = []
    bus.subscribe(DomainEvent, lambda event: seen.append(type(event).__name__))

    bus.publish(_rejection())
    bus.publish(
        CheckInOutcome(booking_id="b1", user_id="p1", turf_id="t1", checked_in_at=BASE_TIME)
    )
    await bus.drain()

    assert seen == ["ModerationOutcome", "CheckInOutcome"]


@pytest.mark.asyncio
async def test_failing_handler_is_logged_and_others_still_run(caplog) -> None:
    bus = EventBus()
    seen = []

    def broken(event) -> None:
        raise RuntimeError("boom")

    bus.subscribe(ModerationOutcome, broken)
    bus.subscribe(ModerationOutcome, lambda event: seen.append(event.reason))

    with caplog.at_level(logging.ERROR):
        bus.publish(_rejection())
        await bus.drain()

    assert seen == ["Blurry photos"]
    assert "Error in event handler broken" in caplog.text


@pytest.mark.asyncio
async def test_publish_without_handlers_is_ignored() -> None:
    bus = EventBus()
    bus.publish(_rejection())
    assert bus.pending == 0


def test_event_to_dict_names_the_event() -> None:
    data = _rejection().to_dict()
    assert data["event_type"] == "ModerationOutcome"
    assert data["state"] == "rejected"
    assert data["event_id"]


@pytest.mark.asyncio
async def test_webhook_gateway_posts_json_with_token() -> None:
    session = Mock(spec=requests.Session)
    gateway = WebhookNotificationGateway("https://push.example.com/send", token="secret", timeout=3, session=session)

    await gateway.notify("owner-1", "Turf approved", "Your turf is live.", {"type": "turf", "turfId": "t1"})

    session.post.assert_called_once_with(
        "https://push.example.com/send",
        json={
            "user_id": "owner-1",
            "title": "Turf approved",
            "body": "Your turf is live.",
            "data": {"type": "turf", "turfId": "t1"},
        },
        headers={"Authorization": "Bearer secret"},
        timeout=3,
    )


@pytest.mark.asyncio
async def test_webhook_gateway_swallows_delivery_errors(caplog) -> None:
    session = Mock(spec=requests.Session)
    session.post.side_effect = requests.ConnectionError("connection refused")
    gateway = WebhookNotificationGateway("https://push.example.com/send", session=session)

    await gateway.notify("owner-1", "Turf approved", "body", {})

    assert "Push relay unreachable for owner-1" in caplog.text


def test_webhook_gateway_reports_rejected_requests(caplog) -> None:
    response = Mock(status_code=502)
    response.raise_for_status.side_effect = requests.HTTPError("bad gateway", response=response)
    session = Mock(spec=requests.Session)
    session.post.return_value = response
    gateway = WebhookNotificationGateway("https://push.example.com/send", session=session)

    assert gateway._post({"user_id": "owner-1", "title": "t", "body": "b", "data": {}}) is False
    assert "Push relay rejected notification for owner-1 (502)" in caplog.text


def test_build_gateway_follows_configuration() -> None:
    assert isinstance(build_gateway(""), LoggingNotificationGateway)
    webhook = build_gateway("https://push.example.com/send", token="", timeout=5)
    assert isinstance(webhook, WebhookNotificationGateway)
    assert webhook.token is None
    assert webhook.timeout == 5
