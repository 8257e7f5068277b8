"""
Business logic for on-site booking check-in.

A user presents the QR code of a confirmed booking at the venue.  The
turf owner scans it; the scanner decodes the payload and hands the
booking reference to this service.  The service then:

1. verifies that the booking's turf belongs to the scanning owner, using
   the turf record freshly loaded from the store (nothing in the scanned
   payload is trusted for authorization), and
2. on confirmation, moves the booking from ``confirmed`` to
   ``completed`` and stamps ``checked_in_at``.

Scanning the same code twice is harmless: checking in a booking that
is already ``completed`` returns it unchanged and emits no event.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from ..core.exceptions import ConflictError, NotFoundError, UnauthorizedError
from ..core.store import RecordStore
from ..schemas.booking import Booking, BookingStatus, ScannedBookingReference
from ..schemas.events import CheckInOutcome
from ..schemas.turf import Turf
from .event_bus import EventBus
from .moderation_service import utcnow


logger = logging.getLogger(__name__)


class CheckInService:
    """Service authorizing and finalizing booking redemption."""

    def __init__(
        self,
        store: RecordStore,
        events: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.events = events
        self.clock = clock

    async def get_booking(self, booking_id: str) -> Booking:
        booking = await self.store.get_booking(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found", record_id=booking_id)
        return booking

    async def _load_owned_turf(self, turf_id: str, caller_owner_id: str) -> Turf:
        turf = await self.store.get_turf(turf_id)
        if turf is None:
            raise NotFoundError(f"Turf {turf_id} not found", record_id=turf_id)
        if turf.owner_id != caller_owner_id:
            logger.warning("Owner %s tried to check in a booking for turf %s", caller_owner_id, turf_id)
            raise UnauthorizedError("This booking is not for one of your turfs", record_id=turf_id)
        return turf

    async def verify_ownership(self, booking: Booking, caller_owner_id: str) -> Booking:
        """Confirm that ``caller_owner_id`` owns the booking's turf.

        Returns the booking exactly as given; nothing is written.
        """
        await self._load_owned_turf(booking.turf_id, caller_owner_id)
        return booking

    async def resolve_scan(self, reference: ScannedBookingReference, caller_owner_id: str) -> Booking:
        """Load the booking named by a scanned code and verify ownership.

        The booking is read from the store rather than reconstructed
        from the payload, so the returned status and turf are current.
        """
        booking = await self.get_booking(reference.booking_id)
        return await self.verify_ownership(booking, caller_owner_id)

    async def check_in(self, booking_id: str, caller_owner_id: Optional[str] = None) -> Booking:
        """Mark a confirmed booking as completed.

        If ``caller_owner_id`` is given, ownership of the booking's turf
        is checked against the store first.  Bookings that are pending
        or cancelled cannot be checked in.
        """
        booking = await self.get_booking(booking_id)
        if caller_owner_id is not None:
            await self._load_owned_turf(booking.turf_id, caller_owner_id)

        if booking.status == BookingStatus.COMPLETED:
            logger.info("Booking %s already checked in at %s", booking_id, booking.checked_in_at)
            return booking
        if booking.status != BookingStatus.CONFIRMED:
            raise ConflictError(
                f"Booking {booking_id} is {booking.status.value} and cannot be checked in",
                record_id=booking_id,
            )

        updated = await self.store.update_booking(
            booking_id,
            {"status": BookingStatus.COMPLETED, "checked_in_at": self.clock()},
        )
        logger.info("Booking %s checked in for user %s", booking_id, updated.user_id)
        if self.events is not None:
            self.events.publish(
                CheckInOutcome(
                    booking_id=updated.id,
                    user_id=updated.user_id,
                    turf_id=updated.turf_id,
                    turf_name=updated.turf_name,
                    checked_in_at=updated.checked_in_at,
                    checked_in_by=caller_owner_id,
                )
            )
        return updated
