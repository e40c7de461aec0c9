"""Tests for the verification code background jobs."""

from datetime import timedelta
from uuid import uuid4

import pytest
import pytest_asyncio

from mosque_directory.modules.admin_accounts.service import LifecycleService
from mosque_directory.modules.institutions import jobs
from mosque_directory.modules.institutions.records import Institution


@pytest.fixture
def service(store, clock):
    return LifecycleService(store, clock=clock, timeout_seconds=1.0, code_ttl_days=30)


@pytest.fixture(autouse=True)
def patch_service(monkeypatch, service):
    monkeypatch.setattr(jobs, "get_lifecycle_service", lambda: service)


@pytest_asyncio.fixture
async def institutions(store, clock):
    """One code already expired, one expiring in three days, one fresh."""
    now = clock()
    created = []
    for name, expires_in in (("Expired", -1), ("Soon", 3), ("Fresh", 60)):
        created.append(
            await store.create_institution(
                Institution(
                    id=uuid4(),
                    name=f"Masjid {name}",
                    location="Tamale, Ghana",
                    verification_code=f"CODE{name.upper()}",
                    verification_code_expires_at=now + timedelta(days=expires_in),
                    created_at=now,
                    updated_at=now,
                )
            )
        )
    return created


@pytest.mark.asyncio
async def test_rotate_expired_codes(institutions, store, clock):
    expired, soon, fresh = institutions

    result = await jobs.rotate_expired_codes()

    assert result["checked"] == 1
    assert result["regenerated"] == 1
    assert result["institution_ids"] == [expired.id]

    rotated = await store.get_institution(expired.id)
    assert rotated.verification_code != expired.verification_code
    assert rotated.verification_code_expires_at == clock() + timedelta(days=30)
    assert (await store.get_institution(fresh.id)).verification_code == fresh.verification_code


@pytest.mark.asyncio
async def test_rotation_is_idempotent(institutions):
    await jobs.rotate_expired_codes()

    second = await jobs.rotate_expired_codes()

    assert second["checked"] == 0
    assert second["regenerated"] == 0


@pytest.mark.asyncio
async def test_report_expiring_codes(institutions):
    result = await jobs.report_expiring_codes()

    assert result == {"expired": 1, "expiring": 1}


def test_register_institution_jobs(monkeypatch):
    registered = {}
    monkeypatch.setattr(
        jobs, "register_job", lambda job_id, func, trigger: registered.setdefault(job_id, func)
    )

    jobs.register_institution_jobs()

    assert registered == {
        jobs.JOB_ID_ROTATE_CODES: jobs.rotate_expired_codes,
        jobs.JOB_ID_REPORT_EXPIRING: jobs.report_expiring_codes,
    }
