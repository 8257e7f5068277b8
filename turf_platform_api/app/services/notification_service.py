"""
Notification gateway and the dispatcher that feeds it.

``NotificationGateway`` is the narrow interface the core relies on:
``notify(user_id, title, body, data)``.  Delivery is best-effort and
at-most-once; choosing between push and local channels, device tokens
and topic routing is the gateway's business.

Two gateways are provided:

* ``LoggingNotificationGateway`` writes notifications to the log.  It
  is the default when no push endpoint is configured.
* ``WebhookNotificationGateway`` POSTs each notification as JSON to a
  push relay using ``requests``.  The blocking call runs in a worker
  thread so the event loop is never held up.

``NotificationDispatcher`` subscribes to the event bus and turns
moderation and check-in outcomes into user-facing messages.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from ..schemas.events import CheckInOutcome, ModerationOutcome, ModerationState
from .event_bus import EventBus


logger = logging.getLogger(__name__)


class NotificationGateway(ABC):
    """Delivers a message to a single user."""

    @abstractmethod
    async def notify(self, user_id: str, title: str, body: str, data: Dict[str, Any]) -> None:
        """Send one notification.  Must not raise for delivery failures."""


class LoggingNotificationGateway(NotificationGateway):
    """Gateway that only logs what would have been sent."""

    async def notify(self, user_id: str, title: str, body: str, data: Dict[str, Any]) -> None:
        logger.info("Notification for %s: %s - %s %s", user_id, title, body, data)


class WebhookNotificationGateway(NotificationGateway):
    """Forward notifications to an HTTP push relay.

    Parameters
    ----------
    url : str
        Endpoint receiving ``{"user_id", "title", "body", "data"}`` as JSON.
    token : Optional[str]
        If set, sent as ``Authorization: Bearer <token>``.
    timeout : float
        Request timeout in seconds.
    session : Optional[requests.Session]
        Session to reuse; one is created when omitted.
    """

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, payload: Dict[str, Any]) -> bool:
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            logger.debug("Sending push notification to %s", self.url)
            response = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return True
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            logger.error("Push relay rejected notification for %s (%s): %s", payload["user_id"], status, exc)
        except requests.RequestException as exc:
            logger.error("Push relay unreachable for %s: %s", payload["user_id"], exc)
        return False

    async def notify(self, user_id: str, title: str, body: str, data: Dict[str, Any]) -> None:
        payload = {"user_id": user_id, "title": title, "body": body, "data": data}
        await asyncio.to_thread(self._post, payload)


class NotificationDispatcher:
    """Translate domain events into notifications."""

    def __init__(self, gateway: NotificationGateway) -> None:
        self.gateway = gateway

    def register(self, bus: EventBus) -> None:
        bus.subscribe(ModerationOutcome, self.on_moderation_outcome)
        bus.subscribe(CheckInOutcome, self.on_check_in)

    async def on_moderation_outcome(self, event: ModerationOutcome) -> None:
        subject = f'Your turf "{event.turf_name}"' if event.turf_name else "Your turf"
        if event.state == ModerationState.APPROVED:
            title = "Turf approved"
            body = f"{subject} has been approved and is now visible to players."
        else:
            title = "Turf not approved"
            body = f"{subject} was rejected: {event.reason}"
        await self.gateway.notify(
            event.owner_id,
            title,
            body,
            {"type": "turf", "turfId": event.turf_id, "state": event.state.value},
        )

    async def on_check_in(self, event: CheckInOutcome) -> None:
        where = f" at {event.turf_name}" if event.turf_name else ""
        await self.gateway.notify(
            event.user_id,
            "Checked in",
            f"You have been checked in{where}. Enjoy your game!",
            {"type": "booking", "bookingId": event.booking_id, "turfId": event.turf_id},
        )


def build_gateway(url: str, token: str = "", timeout: float = 10) -> NotificationGateway:
    """Pick the gateway implied by configuration."""
    if url:
        return WebhookNotificationGateway(url, token=token or None, timeout=timeout)
    return LoggingNotificationGateway()
