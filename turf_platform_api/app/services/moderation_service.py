"""
Business logic for turf moderation.

Owners submit turfs through a separate flow; they are stored unverified
and inactive.  Administrators review the pending queue and either
approve a turf, which makes it publicly listable, or reject it with a
reason the owner will see.

Approval and rejection are toggles rather than one-way transitions: a
rejected turf can later be approved, and approving an already approved
turf simply refreshes ``verified_at``.  Concurrent moderation of the
same turf is last-write-wins.  Callers that want to detect a
concurrent change pass ``expected_version`` and get ``ConflictError``
instead of silently overwriting.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from ..core.exceptions import NotFoundError, TurfPlatformError, ValidationError
from ..core.store import RecordStore
from ..schemas.events import ModerationOutcome, ModerationState
from ..schemas.turf import BatchResult, Turf
from .event_bus import EventBus


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ModerationService:
    """Service gating public visibility of turfs behind admin review."""

    def __init__(
        self,
        store: RecordStore,
        events: Optional[EventBus] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.events = events
        self.clock = clock

    async def get_turf(self, turf_id: str) -> Turf:
        turf = await self.store.get_turf(turf_id)
        if turf is None:
            raise NotFoundError(f"Turf {turf_id} not found", record_id=turf_id)
        return turf

    async def list_pending(self) -> List[Turf]:
        """Return all unverified turfs, newest submission first.

        Includes turfs that were rejected, since rejection also leaves
        ``is_verified`` false.  The result is a snapshot; call again to
        refresh.
        """
        turfs = await self.store.query_turfs(is_verified=False)
        turfs.sort(key=lambda t: t.created_at, reverse=True)
        logger.debug("Loaded %s pending turfs", len(turfs))
        return turfs

    async def list_public(self) -> List[Turf]:
        """Return turfs visible to players (verified and active)."""
        turfs = await self.store.query_turfs(is_verified=True, is_active=True)
        turfs.sort(key=lambda t: t.created_at, reverse=True)
        return turfs

    async def approve(
        self,
        turf_id: str,
        admin_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Turf:
        """Verify and activate a turf, clearing any rejection reason."""
        await self.get_turf(turf_id)
        turf = await self.store.update_turf(
            turf_id,
            {
                "is_verified": True,
                "is_active": True,
                "verified_at": self.clock(),
                "verified_by": admin_id,
                "rejection_reason": None,
            },
            expected_version=expected_version,
        )
        logger.info("Turf %s approved by %s", turf_id, admin_id or "system")
        self._publish(turf, ModerationState.APPROVED, None, admin_id)
        return turf

    async def reject(
        self,
        turf_id: str,
        reason: Optional[str],
        admin_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Turf:
        """Hide a turf and record why.

        ``reason`` is required; blank input is refused before the store
        is touched.  ``verified_at`` keeps its previous value.
        """
        cleaned = (reason or "").strip()
        if not cleaned:
            logger.warning("Rejected moderation of turf %s: empty reason", turf_id)
            raise ValidationError("Please provide a reason for rejection", record_id=turf_id)
        await self.get_turf(turf_id)
        turf = await self.store.update_turf(
            turf_id,
            {
                "is_verified": False,
                "is_active": False,
                "rejection_reason": cleaned,
            },
            expected_version=expected_version,
        )
        logger.info("Turf %s rejected by %s: %s", turf_id, admin_id or "system", cleaned)
        self._publish(turf, ModerationState.REJECTED, cleaned, admin_id)
        return turf

    async def verify_all_existing(self) -> BatchResult:
        """Mark every unverified turf as verified.

        One-off migration for listings created before moderation
        existed.  Verified turfs are also activated.  Failures are
        counted per turf and never stop the run.  No events are
        published: owners are not notified about the migration.
        """
        result = BatchResult()
        turfs = await self.store.list_turfs()
        result.total = len(turfs)
        for turf in turfs:
            if turf.is_verified:
                result.already_verified += 1
                continue
            try:
                await self.store.update_turf(
                    turf.id,
                    {
                        "is_verified": True,
                        "is_active": True,
                        "verified_at": self.clock(),
                        "rejection_reason": None,
                    },
                )
            except TurfPlatformError as exc:
                result.errors += 1
                result.failed_ids.append(turf.id)
                logger.error("Error verifying turf %s: %s", turf.id, exc)
                continue
            result.updated += 1
            logger.info("Turf %s (%s) verified", turf.id, turf.name)
        logger.info(
            "Verification run finished: %s total, %s updated, %s already verified, %s errors",
            result.total,
            result.updated,
            result.already_verified,
            result.errors,
        )
        return result

    def _publish(
        self,
        turf: Turf,
        state: ModerationState,
        reason: Optional[str],
        admin_id: Optional[str],
    ) -> None:
        if self.events is None:
            return
        self.events.publish(
            ModerationOutcome(
                turf_id=turf.id,
                owner_id=turf.owner_id,
                turf_name=turf.name,
                state=state,
                reason=reason,
                admin_id=admin_id,
            )
        )
