"""
Pydantic models for bookings and scanned booking references.

Bookings are created elsewhere (status ``confirmed`` after payment);
this package only reads them and moves them to ``completed`` at
check-in.  ``ScannedBookingReference`` is the already-decoded content
of the QR code a user presents at the venue.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


BOOKING_QR_TYPE = "turf_booking"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    # Produced by the cancellation flow; never written here.
    CANCELLED = "cancelled"


class Booking(BaseModel):
    id: str
    turf_id: str
    user_id: str
    user_name: str
    user_email: str
    user_phone: Optional[str] = None
    turf_name: Optional[str] = None
    date: Optional[str] = Field(None, example="2026-10-19")
    start_time: str = Field(..., example="18:00")
    end_time: str = Field(..., example="19:00")
    total_amount: float = Field(..., ge=0)
    status: BookingStatus = BookingStatus.CONFIRMED
    checked_in_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }

    @field_validator("checked_in_at", "created_at", mode="after")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def completed_booking_has_checkin_time(self) -> "Booking":
        if self.status == BookingStatus.COMPLETED and self.checked_in_at is None:
            raise ValueError("A completed booking must have checked_in_at set")
        return self


class ScannedBookingReference(BaseModel):
    """Decoded QR payload presented by the user.

    Only ``booking_id`` is used to look the booking up; everything else
    is informational and never used for authorization.
    """

    booking_id: str = Field(..., alias="bookingId", min_length=1)
    type: str = Field(..., description=f"Must be \"{BOOKING_QR_TYPE}\"")
    turf_name: Optional[str] = Field(None, alias="turfName")
    user_name: Optional[str] = Field(None, alias="userName")
    date: Optional[str] = None
    time: Optional[str] = None

    model_config = {
        "populate_by_name": True,
    }

    @field_validator("type")
    @classmethod
    def must_be_booking_code(cls, v: str) -> str:
        if v != BOOKING_QR_TYPE:
            raise ValueError("This is not a valid booking QR code")
        return v

