"""
Top-level router for version 1 of the API.

Aggregates the moderation, check-in and audit routers.  When a new
endpoint module is added, include its router here.
"""

from fastapi import APIRouter

from .endpoints import audit, checkins, turfs

router = APIRouter()

# turfs and checkins define their full paths internally.
router.include_router(turfs.router, tags=["moderation"])
router.include_router(checkins.router, tags=["check-in"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
