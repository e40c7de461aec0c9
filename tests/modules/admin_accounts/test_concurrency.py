"""
Concurrent lifecycle operations.

The store yields to the event loop on every read so that operations
started together interleave between load and commit; the version check in
``commit`` must then let exactly one of them win.
"""

import asyncio

import pytest

from mosque_directory.modules.admin_accounts.errors import (
    InstitutionAlreadyClaimedError,
    InvalidTransitionError,
    LifecycleError,
)
from mosque_directory.modules.admin_accounts.records import AccountStatus
from mosque_directory.modules.admin_accounts.service import LifecycleService
from mosque_directory.modules.admin_accounts.store import InMemoryLifecycleStore
from mosque_directory.modules.audit.records import AuditActionType, AuditOutcome


class InterleavingStore(InMemoryLifecycleStore):
    async def get_account(self, account_id):
        await asyncio.sleep(0)
        return await super().get_account(account_id)

    async def get_institution(self, institution_id):
        await asyncio.sleep(0)
        return await super().get_institution(institution_id)


@pytest.fixture
def store():
    return InterleavingStore()


@pytest.fixture
def service(store, clock, code_factory):
    return LifecycleService(
        store, clock=clock, code_factory=code_factory, timeout_seconds=2.0, code_ttl_days=30
    )


def _split(results):
    successes = [r for r in results if not isinstance(r, BaseException)]
    failures = [r for r in results if isinstance(r, BaseException)]
    return successes, failures


@pytest.mark.asyncio
async def test_concurrent_approvals_for_one_institution(
    service, store, super_admin, institution, pending_applicant
):
    first = await pending_applicant(1)
    second = await pending_applicant(2)

    results = await asyncio.gather(
        service.approve(first.id, super_admin),
        service.approve(second.id, super_admin),
        return_exceptions=True,
    )

    successes, failures = _split(results)
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InstitutionAlreadyClaimedError)

    winner = successes[0]
    assert (await store.get_institution(institution.id)).admin_id == winner.id
    _, total = await store.list_accounts(status=AccountStatus.APPROVED)
    assert total == 1

    approvals = [
        e for e in store.audit_entries() if e.action_type == AuditActionType.ADMIN_APPROVED
    ]
    assert sorted(e.outcome.value for e in approvals) == ["failed", "success"]


@pytest.mark.asyncio
async def test_concurrent_approvals_of_same_account(service, store, super_admin, pending_applicant):
    account = await pending_applicant()

    results = await asyncio.gather(
        service.approve(account.id, super_admin),
        service.approve(account.id, super_admin),
        return_exceptions=True,
    )

    successes, failures = _split(results)
    assert len(successes) == 1
    assert isinstance(failures[0], InvalidTransitionError)
    assert (await store.get_account(account.id)).version == account.version + 1


@pytest.mark.asyncio
async def test_concurrent_reapply_succeeds_once(service, store, super_admin, institution, pending_applicant):
    account = await pending_applicant()
    await service.reject(account.id, super_admin, "Documents missing")
    await service.grant_reapply(account.id, super_admin)

    results = await asyncio.gather(
        service.reapply(account.id, institution.id, "XJ4K9QRT"),
        service.reapply(account.id, institution.id, "XJ4K9QRT"),
        return_exceptions=True,
    )

    successes, failures = _split(results)
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], LifecycleError)
    assert (await store.get_account(account.id)).status == AccountStatus.PENDING

    reapplications = [
        e
        for e in store.audit_entries()
        if e.action_type == AuditActionType.ADMIN_REAPPLICATION_SUBMITTED
    ]
    assert [e.outcome for e in reapplications].count(AuditOutcome.SUCCESS) == 1
    assert len(reapplications) == 2


@pytest.mark.asyncio
async def test_concurrent_reapply_by_different_accounts(service, store, institution, make_account):
    rejected = await store.create_account(
        make_account("rejected", rejection_count=1, can_reapply=True)
    )
    removed = await store.create_account(make_account("removed", can_reapply=True))

    results = await asyncio.gather(
        service.reapply(rejected.id, institution.id, "XJ4K9QRT"),
        service.reapply(removed.id, institution.id, "XJ4K9QRT"),
        return_exceptions=True,
    )

    successes, failures = _split(results)
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InstitutionAlreadyClaimedError)

    claimants = await store.list_accounts_for_institution(institution.id, [AccountStatus.PENDING])
    assert [a.id for a in claimants] == [successes[0].id]

@pytest.mark.asyncio
async def test_regenerate_races_with_approval(service, store, super_admin, institution, pending_applicant):
    account = await pending_applicant()

    results = await asyncio.gather(
        service.approve(account.id, super_admin),
        service.regenerate_code(institution.id, super_admin, "Routine rotation"),
        return_exceptions=True,
    )

    _, failures = _split(results)
    assert failures == []

    stored_account = await store.get_account(account.id)
    stored_institution = await store.get_institution(institution.id)
    # Whichever ran second saw the other's result
    if stored_account.status == AccountStatus.APPROVED:
        assert stored_institution.admin_id == account.id
    else:
        assert stored_account.status == AccountStatus.CODE_REGENERATED
        assert stored_institution.admin_id is None
