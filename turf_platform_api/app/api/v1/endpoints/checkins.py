"""
Check-in endpoints for API v1.

Turf owners scan the QR code a player shows at the venue.  The client
decodes the code and posts its content to ``/checkins/verify``, which
returns the current booking if it belongs to one of the caller's
turfs.  After the owner confirms, ``/bookings/{id}/check-in`` marks the
booking completed.  Repeating the check-in is harmless.
"""

from fastapi import APIRouter, Depends, HTTPException, Path

from turf_platform_api.app.api.deps import get_checkin_service
from turf_platform_api.app.core.exceptions import TurfPlatformError
from turf_platform_api.app.core.security import ROLE_OWNER, require_roles
from turf_platform_api.app.schemas.booking import Booking, ScannedBookingReference
from turf_platform_api.app.services.checkin_service import CheckInService


router = APIRouter()


@router.post(
    "/checkins/verify",
    response_model=Booking,
    summary="Verify a scanned booking code",
)
async def verify_scanned_booking(
    reference: ScannedBookingReference,
    current_user: dict = Depends(require_roles(ROLE_OWNER)),
    service: CheckInService = Depends(get_checkin_service),
) -> Booking:
    """Look up the scanned booking and confirm the caller owns its turf.

    Nothing is modified.  The response carries the booking's current
    ``status`` so the scanner can warn about codes that were already
    used.
    """
    try:
        return await service.resolve_scan(reference, current_user["user_id"])
    except TurfPlatformError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/bookings/{booking_id}/check-in",
    response_model=Booking,
    summary="Check in a booking",
)
async def check_in_booking(
    booking_id: str = Path(..., description="ID of the booking to check in"),
    current_user: dict = Depends(require_roles(ROLE_OWNER)),
    service: CheckInService = Depends(get_checkin_service),
) -> Booking:
    """Mark a confirmed booking as completed.

    Ownership is checked again against the stored turf.  A booking
    that is already completed is returned unchanged; pending or
    cancelled bookings give 409.
    """
    try:
        return await service.check_in(booking_id, caller_owner_id=current_user["user_id"])
    except TurfPlatformError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
