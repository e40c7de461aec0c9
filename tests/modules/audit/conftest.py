"""
Fixtures for audit log tests.
"""

from uuid import uuid4

import pytest

from mosque_directory.core.auth import SYSTEM_ACTOR, Actor, ActorRole
from mosque_directory.modules.audit.recorder import AuditRecorder
from mosque_directory.modules.audit.records import (
    AuditActionType,
    AuditOutcome,
    AuditTarget,
    AuditTargetType,
)
from mosque_directory.modules.audit.service import AuditLogService


@pytest.fixture
def recorder(store, clock):
    return AuditRecorder(store, clock, uuid4, timeout_seconds=1.0)


@pytest.fixture
def audit_service(store, clock, recorder):
    return AuditLogService(
        store, recorder=recorder, clock=clock, timeout_seconds=1.0, export_max_rows=1000
    )


@pytest.fixture
def admin_actor():
    return Actor(id=uuid4(), role=ActorRole.ADMIN, name="Imam Yusuf")


@pytest.fixture
def seed_entries(recorder, clock, super_admin, admin_actor):
    """
    Coroutine factory writing a small history spread over ``days`` days:
    per day one successful approval by the super admin, one failed
    reapplication by an applicant and one system code rotation.
    """

    async def _seed(days: int = 3):
        entries = []
        for _ in range(days):
            entries.append(
                await recorder.record(
                    AuditActionType.ADMIN_APPROVED,
                    super_admin,
                    AuditTarget(AuditTargetType.ADMIN, admin_actor.id, admin_actor.name),
                    {"institution_name": "Masjid Al-Noor"},
                    AuditOutcome.SUCCESS,
                )
            )
            entries.append(
                await recorder.record(
                    AuditActionType.ADMIN_REAPPLICATION_SUBMITTED,
                    admin_actor,
                    AuditTarget(AuditTargetType.ADMIN, admin_actor.id, admin_actor.name),
                    {"institution_id": str(uuid4())},
                    AuditOutcome.FAILED,
                    "REAPPLICATION_NOT_GRANTED",
                )
            )
            entries.append(
                await recorder.record(
                    AuditActionType.VERIFICATION_CODE_REGENERATED,
                    SYSTEM_ACTOR,
                    AuditTarget(AuditTargetType.INSTITUTION, uuid4(), "Masjid Al-Huda"),
                    {"reason": "Verification code expired"},
                    AuditOutcome.SUCCESS,
                )
            )
            clock.advance(days=1)
        return entries

    return _seed
