"""
Fixtures for admin account lifecycle tests.

Everything runs against the in-memory store with a fixed clock and a
deterministic code generator.
"""

import itertools
from dataclasses import replace
from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio

from mosque_directory.modules.admin_accounts.records import (
    AdminAccount,
    ApprovedDetail,
    CodeRegeneratedDetail,
    InstitutionDeletedDetail,
    InstitutionSnapshot,
    PendingDetail,
    RejectedDetail,
    RemovedDetail,
)
from mosque_directory.modules.admin_accounts.schemas import ApplicantInfo
from mosque_directory.modules.admin_accounts.service import LifecycleService
from mosque_directory.modules.institutions.records import Institution

INSTITUTION_CODE = "XJ4K9QRT"
OTHER_INSTITUTION_CODE = "PL7M2WZA"


@pytest.fixture
def code_factory():
    counter = itertools.count(1)
    return lambda: f"NEWCODE{next(counter):04d}"


@pytest.fixture
def notifier():
    """Mock notifier recording application_received / transitioned calls."""
    notifier = AsyncMock()
    notifier.application_received = AsyncMock()
    notifier.transitioned = AsyncMock()
    return notifier


@pytest.fixture
def service(store, notifier, clock, code_factory):
    return LifecycleService(
        store,
        notifier=notifier,
        clock=clock,
        code_factory=code_factory,
        timeout_seconds=2.0,
        code_ttl_days=30,
    )


def _institution(name: str, code: str, now: datetime) -> Institution:
    return Institution(
        id=uuid4(),
        name=name,
        location="Accra, Ghana",
        verification_code=code,
        verification_code_expires_at=now + timedelta(days=30),
        created_at=now,
        updated_at=now,
    )


@pytest_asyncio.fixture
async def institution(store, clock):
    """An unclaimed institution whose code is XJ4K9QRT."""
    return await store.create_institution(
        _institution("Masjid Al-Noor", INSTITUTION_CODE, clock())
    )


@pytest_asyncio.fixture
async def other_institution(store, clock):
    return await store.create_institution(
        _institution("Masjid Al-Huda", OTHER_INSTITUTION_CODE, clock())
    )


@pytest.fixture
def applicant_info():
    """Factory for application payloads; ``n`` keeps email and phone unique."""

    def _make(
        institution_id: UUID,
        n: int = 1,
        code: str = INSTITUTION_CODE,
        notes: str | None = None,
    ) -> ApplicantInfo:
        return ApplicantInfo(
            institution_id=institution_id,
            name=f"Applicant {n}",
            email=f"applicant{n}@example.com",
            phone=f"+23320000{n:04d}",
            verification_code=code,
            notes=notes,
        )

    return _make


@pytest.fixture
def pending_applicant(service, institution, applicant_info):
    """Coroutine factory: submit an application for ``institution``."""

    async def _apply(n: int = 1) -> AdminAccount:
        return await service.apply_for_institution(applicant_info(institution.id, n))

    return _apply


@pytest.fixture
def make_account(clock):
    """Build an AdminAccount record directly in any status."""

    def _make(
        status: str = "pending",
        *,
        institution_id: UUID | None = None,
        rejection_count: int = 0,
        can_reapply: bool = False,
        banned: bool = False,
        account_id: UUID | None = None,
    ) -> AdminAccount:
        now = clock()
        actor_id = uuid4()
        snapshot = InstitutionSnapshot(
            id=institution_id or uuid4(), name="Masjid Al-Noor", location="Accra, Ghana"
        )
        details = {
            "pending": PendingDetail(submitted_at=now),
            "approved": ApprovedDetail(approved_at=now, approved_by=actor_id),
            "rejected": RejectedDetail(
                rejected_at=now, rejected_by=actor_id, reason="Incomplete"
            ),
            "removed": RemovedDetail(
                institution=snapshot, removed_at=now, removed_by=actor_id, reason="Inactive"
            ),
            "institution_deleted": InstitutionDeletedDetail(
                institution=snapshot, deleted_at=now, deleted_by=actor_id, reason="Closed"
            ),
            "code_regenerated": CodeRegeneratedDetail(
                institution=snapshot,
                regenerated_at=now,
                regenerated_by=actor_id,
                reason="Leaked",
            ),
        }
        n = uuid4().hex[:6]
        return AdminAccount(
            id=account_id or uuid4(),
            name=f"Admin {n}",
            email=f"admin-{n}@example.com",
            phone=f"+233{n}",
            detail=details[status],
            created_at=now,
            last_transition_at=now,
            institution_id=institution_id,
            rejection_count=rejection_count,
            can_reapply=can_reapply,
            banned=banned,
        )

    return _make


@pytest.fixture
def make_institution(clock):
    def _make(*, code: str = INSTITUTION_CODE, admin_id: UUID | None = None) -> Institution:
        return replace(_institution("Masjid Al-Noor", code, clock()), admin_id=admin_id)

    return _make
