"""Tests for AuditRecorder."""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from mosque_directory.modules.admin_accounts.store import InMemoryLifecycleStore
from mosque_directory.modules.audit.recorder import AuditRecorder
from mosque_directory.modules.audit.records import (
    AuditActionType,
    AuditOutcome,
    AuditTarget,
    AuditTargetType,
)


def _target():
    return AuditTarget(AuditTargetType.INSTITUTION, uuid4(), "Masjid Al-Noor")


@pytest.mark.asyncio
async def test_record_copies_actor_and_target(recorder, store, clock, super_admin):
    target = _target()

    entry = await recorder.record(
        AuditActionType.INSTITUTION_CREATED,
        super_admin,
        target,
        {"location": "Accra"},
        AuditOutcome.SUCCESS,
    )

    assert entry is not None
    assert entry.actor_id == super_admin.id
    assert entry.actor_role == super_admin.role
    assert entry.actor_name == "Super Admin"
    assert entry.target_id == target.id
    assert entry.target_name == "Masjid Al-Noor"
    assert entry.timestamp == clock()
    assert entry.error_code is None
    assert store.audit_entries() == [entry]


@pytest.mark.asyncio
async def test_details_are_copied(recorder, super_admin):
    details = {"reason": "Closed"}

    entry = await recorder.record(
        AuditActionType.INSTITUTION_DELETED, super_admin, _target(), details, AuditOutcome.SUCCESS
    )
    details["reason"] = "changed afterwards"

    assert entry.details == {"reason": "Closed"}


@pytest.mark.asyncio
async def test_failed_outcome_keeps_error_code(recorder, super_admin):
    entry = await recorder.record(
        AuditActionType.ADMIN_APPROVED,
        super_admin,
        AuditTarget(AuditTargetType.ADMIN, uuid4()),
        None,
        AuditOutcome.FAILED,
        "INVALID_TRANSITION",
    )

    assert entry.outcome == AuditOutcome.FAILED
    assert entry.error_code == "INVALID_TRANSITION"
    assert entry.details == {}


@pytest.mark.asyncio
async def test_store_failure_never_raises(clock, super_admin):
    store = MagicMock(spec=InMemoryLifecycleStore)
    store.append_audit = AsyncMock(side_effect=RuntimeError("disk full"))
    alert_hook = AsyncMock()
    recorder = AuditRecorder(store, clock, uuid4, alert_hook=alert_hook)

    entry = await recorder.record(
        AuditActionType.INSTITUTION_CREATED, super_admin, _target(), {}, AuditOutcome.SUCCESS
    )

    assert entry is None
    alert_hook.assert_awaited_once()


@pytest.mark.asyncio
async def test_slow_store_times_out(clock, super_admin):
    class SlowAuditStore(InMemoryLifecycleStore):
        async def append_audit(self, entry):
            await asyncio.sleep(0.5)

    alert_hook = MagicMock()
    recorder = AuditRecorder(
        SlowAuditStore(), clock, uuid4, timeout_seconds=0.05, alert_hook=alert_hook
    )

    entry = await recorder.record(
        AuditActionType.INSTITUTION_CREATED, super_admin, _target(), {}, AuditOutcome.SUCCESS
    )

    assert entry is None
    alert_hook.assert_called_once()


@pytest.mark.asyncio
async def test_failing_alert_hook_is_contained(clock, super_admin):
    store = MagicMock(spec=InMemoryLifecycleStore)
    store.append_audit = AsyncMock(side_effect=RuntimeError("disk full"))
    recorder = AuditRecorder(
        store, clock, uuid4, alert_hook=MagicMock(side_effect=RuntimeError("pager down"))
    )

    entry = await recorder.record(
        AuditActionType.INSTITUTION_CREATED, super_admin, _target(), {}, AuditOutcome.SUCCESS
    )

    assert entry is None
