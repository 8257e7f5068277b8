"""
Pydantic models for turf listings and their moderation.

``Turf`` is the validated shape of a record in the ``turfs``
collection.  Every read from the record store goes through it exactly
once, so list-valued fields that are missing in storage become empty
lists here and nowhere else.  The model also enforces the moderation
invariant that a verified turf never carries a rejection reason.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class Turf(BaseModel):
    """A bookable sports venue listing."""

    id: str
    owner_id: str = Field(..., description="Identifier of the submitting owner")
    name: str = ""
    description: Optional[str] = None
    sport: Optional[str] = Field(None, example="football")
    price_per_hour: float = Field(0, ge=0)
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    owner_phone: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    is_verified: bool = False
    is_active: bool = False
    rejection_reason: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = Field(None, description="Admin who last approved the turf")
    created_at: datetime
    version: int = Field(0, ge=0, description="Incremented by the store on every update")

    model_config = {
        "from_attributes": True,
    }

    @field_validator("images", "amenities", mode="before")
    @classmethod
    def default_empty_list(cls, v):
        return [] if v is None else v

    @field_validator("created_at", "verified_at", mode="after")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        # Plain SQLite timestamps carry no offset; they are written in UTC.
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def verified_turf_has_no_rejection(self) -> "Turf":
        if self.is_verified and self.rejection_reason is not None:
            raise ValueError("A verified turf cannot carry a rejection reason")
        return self

    @property
    def is_listed(self) -> bool:
        """Whether the turf is visible in public listings."""
        return self.is_verified and self.is_active


class TurfApprove(BaseModel):
    """Body of an approval request."""

    # When supplied, the update only lands if the stored version still
    # matches; otherwise the request fails with 409.
    expected_version: Optional[int] = Field(default=None, ge=0)


class TurfReject(BaseModel):
    """Body of a rejection request."""

    reason: str = Field("", description="Shown to the owner; must not be blank")
    expected_version: Optional[int] = Field(default=None, ge=0)


class BatchResult(BaseModel):
    """Aggregate outcome of a bulk moderation run."""

    total: int = 0
    updated: int = 0
    already_verified: int = 0
    errors: int = 0
    failed_ids: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.errors == 0
