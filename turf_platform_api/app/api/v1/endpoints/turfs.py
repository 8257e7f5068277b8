"""
Turf moderation endpoints for API v1.

Administrators review the queue of unverified turfs and approve or
reject each one.  Approval makes a turf visible in the public listing;
rejection hides it and records a reason for the owner.  The public
listing itself needs no authentication.
"""

from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path

from turf_platform_api.app.api.deps import get_moderation_service
from turf_platform_api.app.core.exceptions import TurfPlatformError
from turf_platform_api.app.core.security import ROLE_ADMIN, require_roles
from turf_platform_api.app.schemas.turf import BatchResult, Turf, TurfApprove, TurfReject
from turf_platform_api.app.services.moderation_service import ModerationService


router = APIRouter()


@router.get(
    "/turfs",
    response_model=List[Turf],
    summary="List publicly visible turfs",
)
async def list_public_turfs(
    service: ModerationService = Depends(get_moderation_service),
) -> List[Turf]:
    """Return verified and active turfs, newest first."""
    try:
        return await service.list_public()
    except TurfPlatformError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/turfs/pending",
    response_model=List[Turf],
    summary="List turfs awaiting moderation",
)
async def list_pending_turfs(
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
    service: ModerationService = Depends(get_moderation_service),
) -> List[Turf]:
    """Return all unverified turfs, including rejected ones, newest first."""
    try:
        return await service.list_pending()
    except TurfPlatformError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/turfs/verify-all",
    response_model=BatchResult,
    summary="Verify every existing turf",
)
async def verify_all_turfs(
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
    service: ModerationService = Depends(get_moderation_service),
) -> BatchResult:
    """Run the one-off verification migration.

    Per-turf failures are counted in the response rather than aborting
    the run.
    """
    try:
        return await service.verify_all_existing()
    except TurfPlatformError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/turfs/{turf_id}",
    response_model=Turf,
    summary="Get a single turf",
)
async def get_turf(
    turf_id: str = Path(..., description="ID of the turf"),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
    service: ModerationService = Depends(get_moderation_service),
) -> Turf:
    try:
        return await service.get_turf(turf_id)
    except TurfPlatformError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/turfs/{turf_id}/approve",
    response_model=Turf,
    summary="Approve a turf",
)
async def approve_turf(
    turf_id: str = Path(..., description="ID of the turf to approve"),
    data: Optional[TurfApprove] = Body(None),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
    service: ModerationService = Depends(get_moderation_service),
) -> Turf:
    """Verify and activate a turf.

    Approving an already approved or previously rejected turf is
    allowed and always leaves it verified.  Pass ``expected_version``
    to fail with 409 if another admin changed the turf meanwhile.
    """
    expected_version = data.expected_version if data else None
    try:
        return await service.approve(
            turf_id,
            admin_id=current_user["user_id"],
            expected_version=expected_version,
        )
    except TurfPlatformError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/turfs/{turf_id}/reject",
    response_model=Turf,
    summary="Reject a turf",
)
async def reject_turf(
    data: TurfReject,
    turf_id: str = Path(..., description="ID of the turf to reject"),
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
    service: ModerationService = Depends(get_moderation_service),
) -> Turf:
    """Hide a turf and tell the owner why.

    A blank ``reason`` is refused with 422 and nothing is changed.
    """
    try:
        return await service.reject(
            turf_id,
            data.reason,
            admin_id=current_user["user_id"],
            expected_version=data.expected_version,
        )
    except TurfPlatformError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
