"""Tests for turf moderation: pending queue, approve/reject toggles and the batch migration."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from conftest import BASE_TIME, turf_doc
from turf_platform_api.app.core.exceptions import (
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from turf_platform_api.app.core.store import InMemoryRecordStore, RecordStore, SqliteRecordStore
from turf_platform_api.app.schemas.events import ModerationOutcome
from turf_platform_api.app.services.moderation_service import ModerationService


@pytest.mark.asyncio
async def test_list_pending_newest_first_and_fills_missing_lists(store, moderation) -> None:
    store.put_raw_turf(turf_doc("old", created_at=BASE_TIME - timedelta(days=2)))
    store.put_raw_turf(turf_doc("new", created_at=BASE_TIME))
    store.put_raw_turf(turf_doc("live", is_verified=True, is_active=True))

    pending = await moderation.list_pending()

    assert [t.id for t in pending] == ["new", "old"]
    assert pending[0].images == []
    assert pending[0].amenities == []


@pytest.mark.asyncio
async def test_list_pending_includes_rejected_turfs(store, moderation) -> None:
    store.put_raw_turf(turf_doc("t1"))
    await moderation.reject("t1", "Blurry photos")

    assert [t.id for t in await moderation.list_pending()] == ["t1"]


@pytest.mark.asyncio
async def test_list_pending_skips_malformed_records(store, moderation, caplog) -> None:
    store.put_raw_turf(turf_doc("good"))
    store.put_raw_turf({"id": "broken", "is_verified": False})

    pending = await moderation.list_pending()

    assert [t.id for t in pending] == ["good"]
    assert "Skipping malformed turf" in caplog.text


@pytest.mark.asyncio
async def test_approve_removes_turf_from_pending(store, moderation) -> None:
    store.put_raw_turf(turf_doc("t1"))
    store.put_raw_turf(turf_doc("t2"))

    turf = await moderation.approve("t1", admin_id="admin-1")

    assert turf.is_verified and turf.is_active and turf.is_listed
    assert turf.verified_at is not None
    assert turf.verified_by == "admin-1"
    assert [t.id for t in await moderation.list_pending()] == ["t2"]
    assert [t.id for t in await moderation.list_public()] == ["t1"]


@pytest.mark.asyncio
async def test_approve_after_rejection_clears_reason(store, moderation) -> None:
    store.put_raw_turf(turf_doc("t1"))
    await moderation.reject("t1", "bad photos")

    turf = await moderation.approve("t1")

    assert turf.is_verified is True
    assert turf.is_active is True
    assert turf.rejection_reason is None


@pytest.mark.asyncio
async def test_reject_then_approve_round_trip(store, moderation) -> None:
    store.put_raw_turf(turf_doc("t2"))

    rejected = await moderation.reject("t2", "Incomplete information")
    assert rejected.is_verified is False
    assert rejected.is_active is False
    assert rejected.rejection_reason == "Incomplete information"

    approved = await moderation.approve("t2")
    assert approved.is_verified is True
    assert approved.rejection_reason is None


@pytest.mark.asyncio
async def test_reject_trims_reason_and_keeps_verified_at(store, moderation) -> None:
    store.put_raw_turf(turf_doc("t1"))
    approved = await moderation.approve("t1")

    rejected = await moderation.reject("t1", "  Wrong address  ")

    assert rejected.rejection_reason == "Wrong address"
    assert rejected.verified_at == approved.verified_at


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", ["", "   ", None])
async def test_reject_blank_reason_never_touches_store(reason) -> None:
    store = AsyncMock(spec=RecordStore)
    service = ModerationService(store)

    with pytest.raises(ValidationError) as exc_info:
        await service.reject("t1", reason)

    assert exc_info.value.message == "Please provide a reason for rejection"
    assert store.method_calls == []


@pytest.mark.asyncio
async def test_verified_turf_never_keeps_rejection_reason(store, moderation) -> None:
    store.put_raw_turf(turf_doc("t1"))
    steps = ["reject", "approve", "approve", "reject", "reject", "approve"]

    for step in steps:
        if step == "approve":
            turf = await moderation.approve("t1")
        else:
            turf = await moderation.reject("t1", f"reason {len(step)}")
        assert not (turf.is_verified and turf.rejection_reason is not None)


@pytest.mark.asyncio
async def test_approve_twice_advances_verified_at(store, moderation) -> None:
    store.put_raw_turf(turf_doc("t1"))

    first = await moderation.approve("t1")
    second = await moderation.approve("t1")

    assert second.verified_at > first.verified_at
    assert second.version == first.version + 1


@pytest.mark.asyncio
async def test_missing_turf_raises_not_found(moderation) -> None:
    with pytest.raises(NotFoundError):
        await moderation.approve("missing")
    with pytest.raises(NotFoundError):
        await moderation.reject("missing", "spam")


@pytest.mark.asyncio
async def test_concurrent_moderation_is_last_write_wins(store, moderation) -> None:
    store.put_raw_turf(turf_doc("t1"))

    await moderation.approve("t1", admin_id="admin-a")
    final = await moderation.reject("t1", "Duplicate listing", admin_id="admin-b")

    assert final.is_verified is False
    assert final.rejection_reason == "Duplicate listing"


@pytest.mark.asyncio
async def test_expected_version_detects_concurrent_change(store, moderation) -> None:
    store.put_raw_turf(turf_doc("t1"))
    seen = await moderation.get_turf("t1")
    await moderation.approve("t1", admin_id="admin-a")

    with pytest.raises(ConflictError):
        await moderation.reject("t1", "Duplicate listing", expected_version=seen.version)

    turf = await moderation.get_turf("t1")
    assert turf.is_verified is True
    assert turf.rejection_reason is None


@pytest.mark.asyncio
async def test_moderation_outcome_notifies_owner_and_is_audited(store, bus, gateway, audit, moderation) -> None:
    store.put_raw_turf(turf_doc("t1", owner_id="owner-7", name="Green Field"))

    await moderation.reject("t1", "Incomplete information", admin_id="admin-1")
    await moderation.approve("t1", admin_id="admin-1")
    await bus.drain()

    assert [n["title"] for n in gateway.sent] == ["Turf not approved", "Turf approved"]
    assert all(n["user_id"] == "owner-7" for n in gateway.sent)
    assert "Incomplete information" in gateway.sent[0]["body"]
    assert gateway.sent[1]["data"] == {"type": "turf", "turfId": "t1", "state": "approved"}

    logs = await audit.list_logs(object_type="turf", object_id="t1")
    assert [entry["action"] for entry in logs] == ["approved", "rejected"]
    assert logs[1]["details"]["reason"] == "Incomplete information"


@pytest.mark.asyncio
async def test_failed_notification_does_not_fail_approval(store, bus, moderation, caplog) -> None:
    async def broken_handler(event) -> None:
        raise RuntimeError("push relay down")

    bus.subscribe(ModerationOutcome, broken_handler)
    store.put_raw_turf(turf_doc("t1"))

    turf = await moderation.approve("t1")
    await bus.drain()

    assert turf.is_verified is True
    assert "Error in event handler broken_handler" in caplog.text


class FlakyStore(InMemoryRecordStore):
    """In-memory store failing updates for selected turf ids."""

    def __init__(self, failing) -> None:
        super().__init__()
        self.failing = set(failing)

    async def update_turf(self, turf_id, fields, expected_version=None):
        if turf_id in self.failing:
            raise StoreError(f"Write to turf {turf_id} failed", record_id=turf_id)
        return await super().update_turf(turf_id, fields, expected_version)


@pytest.mark.asyncio
async def test_verify_all_existing_collects_per_turf_failures(bus, clock) -> None:
    store = FlakyStore(failing={"t3"})
    store.put_raw_turf(turf_doc("t1", is_verified=True, is_active=True))
    store.put_raw_turf(turf_doc("t2"))
    store.put_raw_turf(turf_doc("t3"))
    store.put_raw_turf(turf_doc("t4", rejection_reason="Old reason"))
    service = ModerationService(store, bus, clock=clock)

    result = await service.verify_all_existing()

    assert result.total == 4
    assert result.already_verified == 1
    assert result.updated == 2
    assert result.errors == 1
    assert result.failed_ids == ["t3"]
    assert result.success is False
    t4 = await store.get_turf("t4")
    assert t4.is_listed and t4.rejection_reason is None
    # The migration publishes nothing.
    assert bus.pending == 0


@pytest.mark.asyncio
async def test_verify_all_existing_on_empty_store(moderation) -> None:
    result = await moderation.verify_all_existing()

    assert result.total == 0
    assert result.success is True


@pytest.mark.asyncio
async def test_list_pending_mixes_naive_and_aware_timestamps(tmp_path) -> None:
    store = SqliteRecordStore(str(tmp_path / "turfs.db"))
    store.initialise()
    doc = turf_doc("aware", created_at=BASE_TIME)
    await store.create_turf(doc)
    # Rows written by the submission flow use SQLite's plain timestamp format.
    with store._cursor() as cursor:
        cursor.execute(
            "INSERT INTO turfs (id, owner_id, created_at) VALUES (?, ?, ?)",
            ("naive", "owner-2", "2026-10-02 08:00:00"),
        )

    pending = await ModerationService(store).list_pending()

    assert [t.id for t in pending] == ["naive", "aware"]
    assert pending[0].created_at == datetime(2026, 10, 2, 8, 0, tzinfo=timezone.utc)
